"""
Vercel AI Gateway Provider
==========================

OpenAI-compatible gateway in front of several vendors. Model ids carry the
upstream vendor as a prefix (``xai/grok-imagine-image``). Both images and
videos come back inline in a single call.
"""

import dataclasses
import logging
from typing import List, Dict, Any

import httpx

from .base import BaseProvider, MediaRef, parse_image_data
from .factory import register_provider
from ..core.types import AdapterShape, MediaKind, NormalizedRequest, ProviderCapabilities

logger = logging.getLogger(__name__)

VERCEL_GATEWAY_BASE = "https://ai-gateway.vercel.sh/v1"
DEFAULT_IMAGE_MODEL = "xai/grok-imagine-image"
DEFAULT_VIDEO_MODEL = "xai/grok-imagine-video"


@register_provider
class VercelProvider(BaseProvider):
    """Vercel AI Gateway provider."""

    id = "vercel"
    display_name = "Vercel AI Gateway"
    kinds = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
    env_names = ("AI_GATEWAY_API_KEY",)
    capabilities = ProviderCapabilities(
        max_input_images=1,
        supports_custom_aspect_ratio=True,
        supports_video_interpolation=False,
        video_duration_range=(1, 15),
        supports_image_editing=True,
    )

    base_url = VERCEL_GATEWAY_BASE

    def resolve_model(self, request: NormalizedRequest) -> str:
        if request.model:
            return request.model
        return DEFAULT_VIDEO_MODEL if request.kind == MediaKind.VIDEO else DEFAULT_IMAGE_MODEL

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        return AdapterShape.SYNC_BATCH

    def build_body(self, request: NormalizedRequest, model: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model,
            "prompt": request.prompt,
            "n": request.n,
            "response_format": "b64_json",
        }
        if request.aspect_ratio:
            body["aspect_ratio"] = request.aspect_ratio

        if request.kind == MediaKind.VIDEO:
            if request.duration is not None:
                body["duration"] = request.duration
            sources = ([request.start_frame] if request.start_frame else []) + list(request.input_images)
            if sources:
                body["image"] = sources[0]
                self.warn_ignored_inputs(len(sources), 1, "source images")
        elif request.input_images:
            body["image"] = request.input_images[0]
        return body

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        endpoint = "videos" if request.kind == MediaKind.VIDEO else "images"
        data = await self.post_json(
            client,
            f"{self.base_url}/{endpoint}/generations",
            self.build_body(request, model),
            api_key,
            f"{request.kind.value} generation",
        )

        refs = parse_image_data(data.get("data") or [])
        logger.debug(f"Vercel gateway returned {len(refs)} {request.kind.value}(s)")

        # Inline payloads carry no type; the gateway emits PNG and MP4
        default_mime = "video/mp4" if request.kind == MediaKind.VIDEO else "image/png"
        return [
            dataclasses.replace(ref, mime_type=default_mime) if ref.data is not None else ref
            for ref in refs
        ]
