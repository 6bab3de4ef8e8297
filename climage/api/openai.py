"""
OpenAI Provider
===============

GPT Image and DALL-E image generation.

Text-only requests go to ``images/generations``. Requests carrying input
images go to ``images/edits`` as multipart: the first input is the image to
edit and an optional second input is the mask.
"""

import logging
from typing import Optional, List, Dict, Any

import httpx

from .base import BaseProvider, MediaRef, parse_image_data
from .factory import register_provider
from ..core.types import AdapterShape, MediaKind, NormalizedRequest, ProviderCapabilities

logger = logging.getLogger(__name__)

OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-image-1"

# Pixel sizes per model family
GPT_IMAGE_SIZES = {
    "1:1": "1024x1024",
    "3:2": "1536x1024", "4:3": "1536x1024", "16:9": "1536x1024",
    "2:3": "1024x1536", "3:4": "1024x1536", "9:16": "1024x1536",
}
DALLE3_SIZES = {
    "1:1": "1024x1024",
    "16:9": "1792x1024", "4:3": "1792x1024",
    "9:16": "1024x1792", "3:4": "1024x1792",
}


def map_aspect_ratio_to_size(aspect_ratio: Optional[str], model: str) -> Optional[str]:
    """Translate ``W:H`` into the pixel size the model accepts, if any."""
    if not aspect_ratio:
        return None
    if model.startswith("gpt-image"):
        return GPT_IMAGE_SIZES.get(aspect_ratio)
    if model == "dall-e-3":
        return DALLE3_SIZES.get(aspect_ratio)
    return None


@register_provider
class OpenAIProvider(BaseProvider):
    """OpenAI image provider (GPT Image / DALL-E)."""

    id = "openai"
    display_name = "OpenAI"
    kinds = frozenset({MediaKind.IMAGE})
    env_names = ("OPENAI_API_KEY", "OPENAI_KEY")
    capabilities = ProviderCapabilities(
        # image + optional mask
        max_input_images=2,
        supports_video_interpolation=False,
        supports_image_editing=True,
    )

    base_url = OPENAI_API_BASE

    def resolve_model(self, request: NormalizedRequest) -> str:
        return request.model or DEFAULT_MODEL

    def shape_for(self, request: NormalizedRequest, model: str) -> AdapterShape:
        return AdapterShape.SYNC_BATCH

    async def request_batch(
        self,
        request: NormalizedRequest,
        model: str,
        api_key: str,
        client: httpx.AsyncClient,
    ) -> List[MediaRef]:
        size = map_aspect_ratio_to_size(request.aspect_ratio, model)
        if request.aspect_ratio and not size:
            logger.warning(
                f"OpenAI model {model} has no size for aspect ratio {request.aspect_ratio}; "
                f"using the model default"
            )

        if request.input_images:
            data = await self._edit(request, model, size, api_key, client)
        else:
            body: Dict[str, Any] = {"model": model, "prompt": request.prompt, "n": request.n}
            if size:
                body["size"] = size
            # gpt-image models always answer with b64_json
            if not model.startswith("gpt-image"):
                body["response_format"] = "url"
            logger.debug(f"OpenAI request body: {body}")
            data = await self.post_json(
                client, f"{self.base_url}/images/generations", body, api_key, "generations"
            )

        images = data.get("data") or []
        logger.debug(f"OpenAI returned {len(images)} image(s)")
        return parse_image_data(images)

    async def _edit(
        self,
        request: NormalizedRequest,
        model: str,
        size: Optional[str],
        api_key: str,
        client: httpx.AsyncClient,
    ) -> Dict[str, Any]:
        logger.debug("Using edit endpoint for image editing")
        form = {"model": model, "prompt": request.prompt, "n": str(request.n)}
        if size:
            form["size"] = size

        image, image_type = await self.fetch_input(request.input_images[0], client)
        files = {"image": ("image.png", image, image_type)}
        if len(request.input_images) > 1:
            mask, mask_type = await self.fetch_input(request.input_images[1], client)
            files["mask"] = ("mask.png", mask, mask_type)
            logger.debug("Added mask image to form data")

        response = await self.send(
            client,
            "POST",
            f"{self.base_url}/images/edits",
            "edit",
            data=form,
            files=files,
            headers=self.auth_headers(api_key),
        )
        return self.parse_response(response, "edit")
