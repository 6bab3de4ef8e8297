"""
fal.ai Provider
===============

Unified API provider for many image and video models.

Images go through the synchronous ``fal.run`` endpoint. Video goes through
the queue API: the submit call returns a ``request_id`` whose status is
polled until the result can be fetched.

Default models when none is given:

- text-to-image: ``fal-ai/flux/dev``
- image-to-image: ``fal-ai/flux/dev/image-to-image``
- text-to-video: ``fal-ai/ltxv-2/text-to-video/fast``
- start frame: ``fal-ai/vidu/q2/image-to-video``
- start + end frame: ``fal-ai/vidu/start-end-to-video``
- reference images: ``fal-ai/vidu/q2/reference-to-video``
"""

import logging
from typing import Optional, List, Dict, Any

import httpx

from .base import BaseProvider, MediaRef, JobUpdate
from .factory import register_provider
from ..core.exceptions import CapabilityError, CapabilityViolation, VendorRequestError
from ..core.security import summarize_data_uri
from ..core.types import (
    AdapterShape,
    JobStatus,
    MediaKind,
    NormalizedRequest,
    ProviderCapabilities,
)

logger = logging.getLogger(__name__)

FAL_RUN_URL = "https://fal.run"
FAL_QUEUE_URL = "https://queue.fal.run"

DEFAULT_IMAGE_MODEL = "fal-ai/flux/dev"
DEFAULT_IMAGE_TO_IMAGE_MODEL = "fal-ai/flux/dev/image-to-image"
DEFAULT_VIDEO_MODEL = "fal-ai/ltxv-2/text-to-video/fast"
DEFAULT_IMAGE_TO_VIDEO_MODEL = "fal-ai/vidu/q2/image-to-video"
DEFAULT_START_END_VIDEO_MODEL = "fal-ai/vidu/start-end-to-video"
DEFAULT_REFERENCE_VIDEO_MODEL = "fal-ai/vidu/q2/reference-to-video"

MAX_REFERENCE_IMAGES = 7
IMAGE_TO_IMAGE_STRENGTH = 0.75

# Aspect ratio -> fal image_size enum
ASPECT_RATIO_SIZES = {
    "1:1": "square",
    "4:3": "landscape_4_3",
    "16:9": "landscape_16_9",
    "3:4": "portrait_4_3",
    "9:16": "portrait_16_9",
}

# Per-model duration limits in seconds
KLING_V3_DURATION = (3, 15)
VIDU_DURATION = (2, 8)


def is_kling_v3_model(model: str) -> bool:
    return model.startswith("fal-ai/kling-video/v3/")


def is_vidu_model(model: str) -> bool:
    return "/vidu/" in model


def map_aspect_ratio(aspect_ratio: Optional[str], model: Optional[str] = None) -> Optional[str]:
    """Kling v3 takes literal ratios; other models take fal size enums."""
    if not aspect_ratio:
        return None
    if model and is_kling_v3_model(model):
        return aspect_ratio
    return ASPECT_RATIO_SIZES.get(aspect_ratio, aspect_ratio)


def queue_app_id(model: str) -> str:
    """Queue status URLs use only the ``owner/app`` part of a model id."""
    parts = model.split("/")
    return "/".join(parts[:2])


@register_provider
class FalProvider(BaseProvider):
    """fal.ai unified generation provider."""

    id = "fal"
    display_name = "fal.ai"
    kinds = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
    env_names = ("FAL_API_KEY", "FAL_KEY")
    capabilities = ProviderCapabilities(
        max_input_images=MAX_REFERENCE_IMAGES,
        supports_video_interpolation=True,
        # Most models are 2-8s; Kling v3 goes up to 15s
        video_duration_range=(2, 15),
        supports_image_editing=True,
    )

    # ~10 minutes
    poll_interval = 3.0
    max_poll_attempts = 200

    run_url = FAL_RUN_URL
    queue_url = FAL_QUEUE_URL

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        return {"Authorization": f"Key {api_key}"}

    def resolve_model(self, request: NormalizedRequest) -> str:
        if request.model:
            return request.model

        if request.kind == MediaKind.IMAGE:
            return DEFAULT_IMAGE_TO_IMAGE_MODEL if request.input_images else DEFAULT_IMAGE_MODEL

        if request.start_frame and request.end_frame:
            return DEFAULT_START_END_VIDEO_MODEL
        if request.input_images and not request.start_frame:
            return DEFAULT_REFERENCE_VIDEO_MODEL
        if request.start_frame:
            return DEFAULT_IMAGE_TO_VIDEO_MODEL
        return DEFAULT_VIDEO_MODEL

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        if request.kind == MediaKind.VIDEO:
            return AdapterShape.ASYNC_JOB
        return AdapterShape.SYNC_BATCH

    def check_request(self, request: NormalizedRequest, model: str) -> None:
        if request.kind != MediaKind.VIDEO:
            return

        if request.duration is not None:
            limits = None
            if is_kling_v3_model(model):
                limits = KLING_V3_DURATION
            elif is_vidu_model(model):
                limits = VIDU_DURATION
            if limits and not limits[0] <= request.duration <= limits[1]:
                raise CapabilityError(
                    f"Model {model} supports video duration {limits[0]}-{limits[1]}s, "
                    f"but {request.duration:g}s requested",
                    reason=CapabilityViolation.DURATION,
                    provider=self.id,
                    value=request.duration,
                )

        if is_kling_v3_model(model) and not (request.start_frame or request.input_images):
            raise CapabilityError(
                f"Model {model} is image-to-video only and needs a start frame or input image",
                reason=CapabilityViolation.START_FRAME_REQUIRED,
                provider=self.id,
            )

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def build_image_input(self, request: NormalizedRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"prompt": request.prompt, "num_images": request.n}

        image_size = map_aspect_ratio(request.aspect_ratio)
        if image_size:
            payload["image_size"] = image_size

        if request.input_images:
            self.warn_ignored_inputs(len(request.input_images), 1)
            payload["image_url"] = request.input_images[0]
            payload["strength"] = IMAGE_TO_IMAGE_STRENGTH

        return payload

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        payload = self.build_image_input(request)
        logger.debug(f"fal input: {_summarize(payload)}")
        data = await self.post_json(client, f"{self.run_url}/{model}", payload, api_key, "request")
        return pick_media(data, MediaKind.IMAGE)

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    def build_video_input(self, request: NormalizedRequest, model: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"prompt": request.prompt}
        aspect_ratio = map_aspect_ratio(request.aspect_ratio, model)
        # Vidu and Kling take the duration as a string enum
        duration = f"{request.duration:g}" if request.duration is not None else None

        if request.start_frame and request.end_frame:
            payload["start_image_url"] = request.start_frame
            payload["end_image_url"] = request.end_frame
            self.warn_ignored_inputs(len(request.input_images), 0, "reference images")
        elif request.input_images and not request.start_frame:
            if is_kling_v3_model(model):
                payload["start_image_url"] = request.input_images[0]
                self.warn_ignored_inputs(len(request.input_images), 1)
            else:
                payload["reference_image_urls"] = list(request.input_images[:MAX_REFERENCE_IMAGES])
        elif request.start_frame or request.input_images:
            image_url = request.start_frame or request.input_images[0]
            if is_kling_v3_model(model):
                payload["start_image_url"] = image_url
            else:
                payload["image_url"] = image_url
                aspect_ratio = None
            self.warn_ignored_inputs(len(request.input_images), 0, "reference images")
        else:
            # Text-to-video
            if aspect_ratio:
                payload["image_size"] = aspect_ratio
            payload["num_videos"] = request.n
            return payload

        if aspect_ratio:
            payload["aspect_ratio"] = aspect_ratio
        if duration:
            payload["duration"] = duration
        return payload

    async def create_job(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> str:
        payload = self.build_video_input(request, model)
        logger.debug(f"fal input: {_summarize(payload)}")
        data = await self.post_json(
            client, f"{self.queue_url}/{model}", payload, api_key, "queue submit"
        )
        request_id = data.get("request_id")
        if not request_id:
            raise VendorRequestError("fal queue submit returned no request_id", provider=self.id)
        return request_id

    async def check_job(
        self,
        job_id: str,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> JobUpdate:
        base = f"{self.queue_url}/{queue_app_id(model)}/requests/{job_id}"
        data = await self.get_json(client, f"{base}/status", api_key, "status check")
        status = JobStatus.from_provider_status(data.get("status"))

        if status != JobStatus.COMPLETED:
            return JobUpdate(status=status, error=data.get("error"))

        if data.get("error"):
            return JobUpdate(status=JobStatus.FAILED, error=str(data["error"]))

        result = await self.get_json(client, base, api_key, "result fetch")
        logger.debug(f"fal result keys: {list(result.keys())}")
        return JobUpdate(status=status, media=tuple(pick_media(result, MediaKind.VIDEO)))


def pick_media(result: Dict[str, Any], kind: MediaKind) -> List[MediaRef]:
    """Collect ``images``/``image`` or ``videos``/``video`` entries from a fal result."""
    plural, single = ("videos", "video") if kind == MediaKind.VIDEO else ("images", "image")

    entries = result.get(plural)
    if not isinstance(entries, list) or not entries:
        entry = result.get(single)
        entries = [entry] if isinstance(entry, dict) and entry.get("url") else []

    return [
        MediaRef(url=entry.get("url"), mime_type=entry.get("content_type"))
        if isinstance(entry, dict) else MediaRef()
        for entry in entries
    ]


def _summarize(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a payload with data URIs shortened for logging."""
    summary = {}
    for key, value in payload.items():
        if isinstance(value, list):
            summary[key] = [summarize_data_uri(v) for v in value]
        else:
            summary[key] = summarize_data_uri(value)
    return summary
