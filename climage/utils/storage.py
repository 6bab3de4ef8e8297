"""
Storage Utilities
=================

Output naming, extension policy and file writing.
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable, Union

from ..core.exceptions import MediaIOError
from ..core.types import MediaKind, NormalizedRequest, OutputFormat, PersistedMedia

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/webm": "webm",
}

FORMAT_MIME_TYPES = {
    OutputFormat.PNG: "image/png",
    OutputFormat.JPG: "image/jpeg",
    OutputFormat.WEBP: "image/webp",
    OutputFormat.GIF: "image/gif",
    OutputFormat.MP4: "video/mp4",
    OutputFormat.WEBM: "video/webm",
}


def extension_for_mime(mime_type: Optional[str]) -> Optional[str]:
    """Map a Content-Type (parameters allowed) to a file extension."""
    if not mime_type:
        return None
    return MIME_EXTENSIONS.get(mime_type.split(";", 1)[0].strip().lower())


def mime_for_format(fmt: OutputFormat) -> str:
    return FORMAT_MIME_TYPES[fmt]


def choose_extension(fmt: OutputFormat, mime_type: Optional[str]) -> str:
    """
    Pick the extension for one item.

    The MIME type the vendor actually returned wins over the requested
    format, so JPEG bytes are never saved as ``.png``.
    """
    actual = extension_for_mime(mime_type)
    if actual and actual != fmt.value:
        logger.debug(f"Vendor returned {mime_type}, saving as .{actual} instead of .{fmt.value}")
        return actual
    return fmt.value


def make_output_path(
    request: NormalizedRequest,
    position: int,
    mime_type: Optional[str] = None,
    batch_size: Optional[int] = None,
) -> Path:
    """
    Build the file path for the item at ``position`` (0-based) of a batch.

    An explicit ``out`` path is used verbatim when the batch holds a single
    item; otherwise ``<out_dir>/<name>-<timestamp>[-NN].<ext>``.
    """
    batch_size = request.n if batch_size is None else batch_size

    if request.out and batch_size == 1:
        return Path(request.out)

    ext = choose_extension(request.format, mime_type)
    suffix = f"-{position + 1:02d}" if batch_size > 1 else ""
    filename = f"{request.name_base}-{request.timestamp}{suffix}.{ext}"
    return Path(request.out_dir) / filename


def save_media(data: bytes, output_path: Union[str, Path]) -> str:
    """
    Write media bytes, creating parent directories.

    Returns:
        Absolute path of the written file
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise MediaIOError(f"Cannot write {output_path}: {e}", path=str(output_path))

    logger.debug(f"Saved {len(data)} bytes to {output_path}")
    return str(output_path.resolve())


def to_json_result(items: Iterable[PersistedMedia]) -> Dict[str, Any]:
    """
    Group results by kind for ``--json`` output.

    Empty groups are left out.
    """
    items = list(items)
    result: Dict[str, List[Dict[str, Any]]] = {}

    images = [item.to_dict() for item in items if item.kind == MediaKind.IMAGE]
    videos = [item.to_dict() for item in items if item.kind == MediaKind.VIDEO]

    if images:
        result["images"] = images
    if videos:
        result["videos"] = videos

    return result
