"""
Request Normalizer
==================

Turns loosely specified ``GenerateOptions`` into a ``NormalizedRequest``.
"""

import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.security import slugify
from ..core.types import (
    MAX_COUNT,
    MIN_COUNT,
    GenerateOptions,
    MediaKind,
    NormalizedRequest,
    OutputFormat,
)
from ..utils.image_utils import resolve_image_refs

logger = logging.getLogger(__name__)


def clamp_count(n: Optional[float]) -> int:
    """``clamp(floor(n or 1), 1, 10)``."""
    if n is None or (isinstance(n, float) and math.isnan(n)):
        return MIN_COUNT
    # Clamp first so infinities never reach floor
    return math.floor(max(MIN_COUNT, min(MAX_COUNT, n)))


def timestamp_local_compact(now: Optional[datetime] = None) -> str:
    """Local time as ``YYYYMMDD-HHMMSS``."""
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def normalize_aspect_ratio(aspect_ratio: Optional[str]) -> Optional[str]:
    """Remove all whitespace; empty strings become None."""
    if aspect_ratio is None:
        return None
    value = re.sub(r"\s+", "", aspect_ratio)
    return value or None


def resolve_dir(path: str) -> str:
    """Relative paths resolve against the working directory."""
    p = Path(path).expanduser()
    return str(p if p.is_absolute() else Path.cwd() / p)


async def normalize(
    prompt: str,
    options: Optional[GenerateOptions] = None,
    *,
    default_provider: str = "auto",
    default_out_dir: str = ".",
    now: Optional[datetime] = None,
) -> NormalizedRequest:
    """
    Resolve every optional field of ``options``.

    Local image files (inputs, start frame, end frame) are read concurrently
    and embedded as data URIs.

    Raises:
        UnsupportedFormatError: A local input has an unsupported extension
        MediaIOError: A local input cannot be read
    """
    opts = options or GenerateOptions()

    kind = MediaKind(opts.kind) if opts.kind else MediaKind.IMAGE
    fmt = OutputFormat(opts.format) if opts.format else OutputFormat.default_for(kind)

    input_refs = list(opts.input_images or ())
    resolved = await resolve_image_refs(input_refs + [opts.start_frame, opts.end_frame])
    input_images = tuple(resolved[: len(input_refs)])
    start_frame, end_frame = resolved[len(input_refs):]

    request = NormalizedRequest(
        prompt=prompt,
        provider=(opts.provider or default_provider).strip().lower(),
        model=opts.model or None,
        n=clamp_count(opts.n),
        kind=kind,
        format=fmt,
        aspect_ratio=normalize_aspect_ratio(opts.aspect_ratio),
        out_dir=resolve_dir(opts.out_dir or default_out_dir),
        out=resolve_dir(opts.out) if opts.out else None,
        name_base=slugify(opts.name or prompt),
        timestamp=timestamp_local_compact(now),
        input_images=input_images,
        start_frame=start_frame,
        end_frame=end_frame,
        duration=opts.duration,
        verbose=bool(opts.verbose),
    )

    logger.debug(
        f"Normalized request: kind={request.kind.value} n={request.n} "
        f"format={request.format.value} inputs={len(request.input_images)} "
        f"start_frame={bool(request.start_frame)} end_frame={bool(request.end_frame)}"
    )
    return request
