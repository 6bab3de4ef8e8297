"""
Capability Validator
====================

Checks a normalized request against a provider's declared capabilities
before anything is sent over the network.
"""

import logging
import re
from typing import Optional

from ..core.exceptions import CapabilityError, CapabilityViolation
from ..core.types import MediaKind, NormalizedRequest, ProviderCapabilities

logger = logging.getLogger(__name__)

_RATIO_SHAPE = re.compile(r"^\d+:\d+$")


def validate(
    request: NormalizedRequest,
    capabilities: ProviderCapabilities,
    provider: Optional[str] = None,
) -> None:
    """
    Raise CapabilityError on the first violated rule.

    Rules are checked in a fixed order: input image count, aspect ratio,
    end frame interpolation, video duration, image editing.
    """
    count = len(request.input_images)
    if count > capabilities.max_input_images:
        raise CapabilityError(
            f"{provider or 'This provider'} supports at most "
            f"{capabilities.max_input_images} input image(s), got {count}",
            reason=CapabilityViolation.INPUT_IMAGE_COUNT,
            provider=provider,
            value=count,
        )

    if request.aspect_ratio is not None:
        _check_aspect_ratio(request.aspect_ratio, capabilities, provider)

    if request.end_frame and not capabilities.supports_video_interpolation:
        raise CapabilityError(
            "End frame interpolation is not supported by this provider; "
            "only a start frame can be used for image-to-video",
            reason=CapabilityViolation.INTERPOLATION,
            provider=provider,
        )

    if (
        request.duration is not None
        and request.kind == MediaKind.VIDEO
        and capabilities.video_duration_range is not None
    ):
        low, high = capabilities.video_duration_range
        if not low <= request.duration <= high:
            raise CapabilityError(
                f"Video duration must be between {low:g} and {high:g} seconds, "
                f"got {request.duration:g}",
                reason=CapabilityViolation.DURATION,
                provider=provider,
                value=request.duration,
            )

    if (
        request.kind == MediaKind.IMAGE
        and request.input_images
        and not capabilities.supports_image_editing
    ):
        raise CapabilityError(
            "Image editing (prompt plus input image) is not supported by this provider",
            reason=CapabilityViolation.IMAGE_EDITING,
            provider=provider,
        )


def _check_aspect_ratio(
    aspect_ratio: str,
    capabilities: ProviderCapabilities,
    provider: Optional[str],
) -> None:
    if capabilities.supports_custom_aspect_ratio:
        return

    ratio = re.sub(r"\s+", "", aspect_ratio)

    if capabilities.supported_aspect_ratios is not None:
        allowed = {re.sub(r"\s+", "", r) for r in capabilities.supported_aspect_ratios}
        if ratio in allowed:
            return
        raise CapabilityError(
            f"Unsupported aspect ratio {aspect_ratio!r}; "
            f"supported: {', '.join(capabilities.supported_aspect_ratios)}",
            reason=CapabilityViolation.ASPECT_RATIO,
            provider=provider,
            value=aspect_ratio,
        )

    if not _RATIO_SHAPE.match(ratio):
        raise CapabilityError(
            f"Invalid aspect ratio {aspect_ratio!r}; expected W:H such as 16:9",
            reason=CapabilityViolation.ASPECT_RATIO,
            provider=provider,
            value=aspect_ratio,
        )
