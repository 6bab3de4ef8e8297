"""
Google Provider
===============

Gemini native image generation, Imagen and Veo over the Generative
Language REST API.

- Gemini (``gemini-*``): one image per ``generateContent`` call, so ``n``
  calls are made in turn. The first input image is sent for editing.
- Imagen (``imagen-*``): ``predict`` returns ``sampleCount`` images inline.
- Veo (``veo-*``): ``predictLongRunning`` returns an operation that is
  polled until the videos are ready. First frame, last frame and reference
  images are only honoured by Veo 3.1 models.
"""

import base64
import logging
from typing import Optional, List, Dict, Any

import httpx

from .base import BaseProvider, MediaRef, JobUpdate
from .factory import register_provider
from ..core.exceptions import CapabilityError, CapabilityViolation, VendorRequestError
from ..core.types import (
    AdapterShape,
    JobStatus,
    MediaKind,
    NormalizedRequest,
    ProviderCapabilities,
)
from ..utils.image_utils import split_data_uri
from ..utils.storage import mime_for_format

logger = logging.getLogger(__name__)

GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_VIDEO_MODEL = "veo-2.0-generate-001"
DEFAULT_ADVANCED_VIDEO_MODEL = "veo-3.1-generate-preview"

MAX_REFERENCE_IMAGES = 3

MODEL_ALIASES = {
    "nano-banana": "gemini-2.5-flash-image",
    "nano-banana-pro": "gemini-3-pro-image-preview",
    "nano-banana-2": "gemini-3.1-flash-image-preview",
    "veo2": "veo-2.0-generate-001",
    "veo-2": "veo-2.0-generate-001",
    "veo3": "veo-3.0-generate-001",
    "veo-3": "veo-3.0-generate-001",
    "veo-3.1": "veo-3.1-generate-preview",
    "veo31": "veo-3.1-generate-preview",
}


def resolve_alias(model: Optional[str]) -> Optional[str]:
    if not model:
        return None
    return MODEL_ALIASES.get(model, model)


def is_gemini_image_model(model: str) -> bool:
    return model.startswith("gemini-")


def is_veo31_model(model: str) -> bool:
    """Veo 3.1 models accept frames and reference images."""
    return "veo-3.1" in model


@register_provider
class GoogleProvider(BaseProvider):
    """Google Gemini / Imagen / Veo provider."""

    id = "google"
    display_name = "Google"
    kinds = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
    env_names = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENAI_API_KEY")
    capabilities = ProviderCapabilities(
        # Veo 3.1 reference images
        max_input_images=MAX_REFERENCE_IMAGES,
        supported_aspect_ratios=("1:1", "4:3", "3:4", "16:9", "9:16"),
        supports_video_interpolation=True,
        video_duration_range=(4, 8),
        supports_image_editing=True,
    )

    # ~10 minutes
    poll_interval = 10.0
    max_poll_attempts = 60

    base_url = GOOGLE_API_BASE

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        return {"x-goog-api-key": api_key}

    def download_headers(self, url: str, api_key: str) -> Dict[str, str]:
        # Veo file URIs are served from the API host and need the key
        if url.startswith(self.base_url.split("/v1beta")[0]):
            return self.auth_headers(api_key)
        return {}

    def resolve_model(self, request: NormalizedRequest) -> str:
        model = resolve_alias(request.model)
        if model:
            return model
        if request.kind == MediaKind.VIDEO:
            advanced = request.start_frame or request.end_frame or request.input_images
            return DEFAULT_ADVANCED_VIDEO_MODEL if advanced else DEFAULT_VIDEO_MODEL
        return DEFAULT_IMAGE_MODEL

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        if request.kind == MediaKind.VIDEO:
            return AdapterShape.ASYNC_JOB
        if is_gemini_image_model(model):
            return AdapterShape.PER_ITEM
        return AdapterShape.SYNC_BATCH

    def check_request(self, request: NormalizedRequest, model: str) -> None:
        # Veo takes whole seconds only
        duration = request.duration
        if request.kind == MediaKind.VIDEO and duration is not None and duration != int(duration):
            raise CapabilityError(
                f"Veo supports whole-second durations only, but {duration:g}s requested",
                reason=CapabilityViolation.DURATION,
                provider=self.id,
                value=duration,
            )

    # -------------------------------------------------------------------------
    # Gemini native image generation
    # -------------------------------------------------------------------------

    def build_contents(self, request: NormalizedRequest) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = []
        if request.input_images:
            self.warn_ignored_inputs(len(request.input_images), 1)
            parts.append(image_part(request.input_images[0]))
        parts.append({"text": request.prompt})
        return [{"role": "user", "parts": parts}]

    async def request_item(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
        index: int,
    ) -> Optional[MediaRef]:
        generation_config: Dict[str, Any] = {"responseModalities": ["IMAGE"]}
        if request.aspect_ratio:
            generation_config["imageConfig"] = {"aspectRatio": request.aspect_ratio}

        payload = {
            "contents": self.build_contents(request),
            "generationConfig": generation_config,
        }
        data = await self.post_json(
            client,
            f"{self.base_url}/models/{model}:generateContent",
            payload,
            api_key,
            "generateContent",
        )

        candidates = data.get("candidates") or []
        parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
        logger.debug(f"Gemini response for image {index + 1} has {len(parts)} parts")

        for part in parts:
            inline = part.get("inlineData") or {}
            if inline.get("data"):
                return MediaRef.from_base64(
                    inline["data"],
                    mime_type=inline.get("mimeType") or mime_for_format(request.format),
                )
        return None

    # -------------------------------------------------------------------------
    # Imagen
    # -------------------------------------------------------------------------

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        mime_type = mime_for_format(request.format)
        parameters: Dict[str, Any] = {
            "sampleCount": request.n,
            "outputOptions": {"mimeType": mime_type},
        }
        if request.aspect_ratio:
            parameters["aspectRatio"] = request.aspect_ratio
        if request.input_images:
            self.warn_ignored_inputs(len(request.input_images), 0)

        data = await self.post_json(
            client,
            f"{self.base_url}/models/{model}:predict",
            {"instances": [{"prompt": request.prompt}], "parameters": parameters},
            api_key,
            "predict",
        )

        predictions = data.get("predictions") or []
        logger.debug(f"Imagen returned {len(predictions)} prediction(s)")
        return [
            MediaRef.from_base64(p["bytesBase64Encoded"], mime_type=p.get("mimeType") or mime_type)
            if isinstance(p, dict) and p.get("bytesBase64Encoded") else MediaRef()
            for p in predictions
        ]

    # -------------------------------------------------------------------------
    # Veo
    # -------------------------------------------------------------------------

    async def build_video_instance(
        self,
        request: NormalizedRequest,
        model: str,
        client: httpx.AsyncClient,
    ) -> Dict[str, Any]:
        instance: Dict[str, Any] = {"prompt": request.prompt}
        advanced = request.start_frame or request.end_frame or request.input_images

        if not is_veo31_model(model):
            if advanced:
                logger.warning(
                    f"Start frame, end frame and reference images need a Veo 3.1 model; "
                    f"{model} ignores them"
                )
            return instance

        first_frame = request.start_frame
        if not first_frame and len(request.input_images) == 1:
            first_frame = request.input_images[0]
        if first_frame:
            instance["image"] = await self.veo_image(first_frame, client)
        if request.end_frame:
            instance["lastFrame"] = await self.veo_image(request.end_frame, client)

        if request.input_images and first_frame != request.input_images[0]:
            self.warn_ignored_inputs(len(request.input_images), MAX_REFERENCE_IMAGES)
            instance["referenceImages"] = [
                {"image": await self.veo_image(ref, client), "referenceType": "asset"}
                for ref in request.input_images[:MAX_REFERENCE_IMAGES]
            ]
        return instance

    async def veo_image(self, ref: str, client: httpx.AsyncClient) -> Dict[str, str]:
        """Veo takes inline bytes or a Cloud Storage URI; HTTP URLs are fetched."""
        if ref.startswith("gs://"):
            return {"gcsUri": ref}
        split = split_data_uri(ref) if ref.startswith("data:") else None
        if split:
            b64, mime_type = split
            return {"bytesBase64Encoded": b64, "mimeType": mime_type}
        data, mime_type = await self.fetch_input(ref, client)
        return {"bytesBase64Encoded": base64.b64encode(data).decode(), "mimeType": mime_type}

    async def create_job(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> str:
        parameters: Dict[str, Any] = {"sampleCount": request.n}
        if request.aspect_ratio:
            parameters["aspectRatio"] = request.aspect_ratio
        if request.duration is not None:
            parameters["durationSeconds"] = int(request.duration)

        payload = {
            "instances": [await self.build_video_instance(request, model, client)],
            "parameters": parameters,
        }
        data = await self.post_json(
            client,
            f"{self.base_url}/models/{model}:predictLongRunning",
            payload,
            api_key,
            "predictLongRunning",
        )
        name = data.get("name")
        if not name:
            raise VendorRequestError("Veo returned no operation name", provider=self.id)
        return name

    async def check_job(
        self,
        job_id: str,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> JobUpdate:
        data = await self.get_json(client, f"{self.base_url}/{job_id}", api_key, "operation poll")

        if not data.get("done"):
            return JobUpdate(status=JobStatus.PROCESSING)

        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            return JobUpdate(status=JobStatus.FAILED, error=message)

        response = (data.get("response") or {}).get("generateVideoResponse") or {}
        samples = response.get("generatedSamples") or []
        logger.debug(f"Veo returned {len(samples)} sample(s)")

        media = tuple(video_ref(sample) for sample in samples)
        return JobUpdate(
            status=JobStatus.COMPLETED,
            media=media,
            moderated=(response.get("raiMediaFilteredCount") or 0) > 0,
        )


def image_part(ref: str) -> Dict[str, Any]:
    """A generateContent part for an input image."""
    split = split_data_uri(ref) if ref.startswith("data:") else None
    if split:
        b64, mime_type = split
        return {"inlineData": {"mimeType": mime_type, "data": b64}}
    return {"fileData": {"fileUri": ref}}


def video_ref(sample: Dict[str, Any]) -> MediaRef:
    video = (sample.get("video") or {}) if isinstance(sample, dict) else {}
    if video.get("bytesBase64Encoded"):
        return MediaRef.from_base64(
            video["bytesBase64Encoded"], mime_type=video.get("mimeType") or "video/mp4"
        )
    return MediaRef(url=video.get("uri"), mime_type=video.get("mimeType"))
