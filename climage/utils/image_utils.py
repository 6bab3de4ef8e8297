"""
Image Utilities
===============

Turn caller image references into transport-ready strings and back.
"""

import asyncio
import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Optional, Tuple, Union, Sequence, List

from ..core.exceptions import MediaIOError, UnsupportedFormatError

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".avif": "image/avif",
    ".heif": "image/heif",
    ".heic": "image/heic",
}

_DATA_URI = re.compile(r"^data:([^;,]+)?;base64,(.*)$", re.DOTALL)


def is_remote(ref: str) -> bool:
    """True for references that are sent to the vendor as-is."""
    return ref.startswith(("http://", "https://", "data:"))


def get_mime_type(image_path: Union[str, Path]) -> str:
    """
    Get MIME type from file extension.

    Raises:
        UnsupportedFormatError: If the extension is not a supported image type
    """
    ext = Path(image_path).suffix.lower()
    if ext not in IMAGE_MIME_TYPES:
        raise UnsupportedFormatError(str(image_path), ext)
    return IMAGE_MIME_TYPES[ext]


def to_data_uri(image_path: Union[str, Path]) -> str:
    """
    Read a local image fully and encode it as a data URI.

    Args:
        image_path: Path to the image file

    Returns:
        Data URI string (data:image/png;base64,...)
    """
    path = Path(image_path).expanduser()
    mime_type = get_mime_type(path)

    try:
        with open(path, "rb") as f:
            data = base64.b64encode(f.read()).decode("ascii")
    except OSError as e:
        raise MediaIOError(f"Cannot read input image {image_path}: {e}", path=str(image_path))

    return f"data:{mime_type};base64,{data}"


def resolve_image_ref(ref: str) -> str:
    """URLs and data URIs pass through; local paths become data URIs."""
    if is_remote(ref):
        return ref
    return to_data_uri(ref)


async def resolve_image_refs(refs: Sequence[Optional[str]]) -> List[Optional[str]]:
    """
    Resolve several references concurrently.

    ``None`` entries stay ``None`` so callers can resolve optional frames in
    the same batch as the input list.
    """

    async def resolve(ref: Optional[str]) -> Optional[str]:
        if ref is None or is_remote(ref):
            return ref
        return await asyncio.to_thread(resolve_image_ref, ref)

    return list(await asyncio.gather(*(resolve(ref) for ref in refs)))


def parse_data_uri(data_uri: str) -> Optional[Tuple[bytes, str]]:
    """
    Split a base64 data URI into raw bytes and MIME type.

    Returns:
        (bytes, mime_type), or None if the string is not a base64 data URI
    """
    match = _DATA_URI.match(data_uri)
    if not match:
        return None
    mime_type = match.group(1) or "application/octet-stream"
    try:
        data = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        return None
    return data, mime_type


def split_data_uri(data_uri: str) -> Optional[Tuple[str, str]]:
    """Like parse_data_uri but keeps the payload base64-encoded."""
    match = _DATA_URI.match(data_uri)
    if not match:
        return None
    return match.group(2), match.group(1) or "application/octet-stream"
