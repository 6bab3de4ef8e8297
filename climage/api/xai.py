"""
xAI Provider
============

Grok Imagine image and video generation.

- Images: one synchronous call returns every image as a URL or base64.
- Video: a generation request returns a ``request_id`` that is polled
  until the video URL is ready. An empty URL with moderation flagged means
  the content was refused.
"""

import logging
from typing import Optional, List, Dict, Any
from urllib.parse import quote

import httpx

from .base import BaseProvider, MediaRef, JobUpdate, parse_image_data
from .factory import register_provider
from ..core.exceptions import VendorRequestError
from ..core.types import (
    AdapterShape,
    JobStatus,
    MediaKind,
    NormalizedRequest,
    ProviderCapabilities,
)

logger = logging.getLogger(__name__)

XAI_API_BASE = "https://api.x.ai/v1"
DEFAULT_IMAGE_MODEL = "grok-imagine-image"
DEFAULT_VIDEO_MODEL = "grok-imagine-video"
DEFAULT_VIDEO_DURATION = 6


@register_provider
class XaiProvider(BaseProvider):
    """xAI Grok Imagine provider."""

    id = "xai"
    display_name = "xAI"
    kinds = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
    env_names = ("XAI_API_KEY", "XAI_TOKEN", "GROK_API_KEY")
    capabilities = ProviderCapabilities(
        max_input_images=1,
        supported_aspect_ratios=("1:1", "16:9", "9:16", "4:3", "3:4", "3:2", "2:3"),
        supports_video_interpolation=False,
        video_duration_range=(1, 15),
        supports_image_editing=True,
    )

    # ~3 minutes
    poll_interval = 3.0
    max_poll_attempts = 60

    base_url = XAI_API_BASE

    def resolve_model(self, request: NormalizedRequest) -> str:
        if request.model:
            return request.model
        return DEFAULT_VIDEO_MODEL if request.kind == MediaKind.VIDEO else DEFAULT_IMAGE_MODEL

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        if request.kind == MediaKind.VIDEO:
            return AdapterShape.ASYNC_JOB
        return AdapterShape.SYNC_BATCH

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        body: Dict[str, Any] = {
            "model": model,
            "prompt": request.prompt,
            "n": request.n,
            "response_format": "url",
        }
        if request.aspect_ratio:
            body["aspect_ratio"] = request.aspect_ratio
        if request.input_images:
            self.warn_ignored_inputs(len(request.input_images), 1)
            body["image_url"] = request.input_images[0]

        data = await self.post_json(
            client, f"{self.base_url}/images/generations", body, api_key, "image generation"
        )

        images = data.get("data") or []
        logger.debug(f"xAI returned {len(images)} image(s)")
        return parse_image_data(images)

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    async def create_job(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> str:
        duration = request.duration if request.duration is not None else DEFAULT_VIDEO_DURATION
        body: Dict[str, Any] = {
            "model": model,
            "prompt": request.prompt,
            "duration": int(duration) if float(duration).is_integer() else duration,
        }
        if request.aspect_ratio:
            body["aspect_ratio"] = request.aspect_ratio

        # Image-to-video takes a single source image
        sources = ([request.start_frame] if request.start_frame else []) + list(request.input_images)
        if sources:
            body["image_url"] = sources[0]
            self.warn_ignored_inputs(len(sources), 1, "source images")

        data = await self.post_json(
            client, f"{self.base_url}/videos/generations", body, api_key, "video generation"
        )
        request_id = data.get("request_id")
        if not request_id:
            raise VendorRequestError(
                "xAI video generation returned no request_id", provider=self.id
            )
        return request_id

    async def check_job(
        self,
        job_id: str,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> JobUpdate:
        data = await self.get_json(
            client, f"{self.base_url}/videos/{quote(job_id, safe='')}", api_key, "video poll"
        )
        status = JobStatus.from_provider_status(data.get("status"))
        if status != JobStatus.COMPLETED:
            return JobUpdate(status=status, error=_error_text(data))

        response = data.get("response") or {}
        video = response.get("video") or {}
        url: Optional[str] = video.get("url")
        media = (MediaRef(url=url, model=response.get("model")),) if url else ()
        return JobUpdate(
            status=status,
            media=media,
            moderated=video.get("respect_moderation") is False,
        )


def _error_text(data: Dict[str, Any]) -> Optional[str]:
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return error
