"""
API Integration Layer
=====================

Unified access to the supported generative-media vendors.

Supported Providers:
- xAI (Grok Imagine images and video)
- fal.ai (Flux, Vidu, LTX, Kling)
- Google (Gemini native images, Imagen, Veo)
- OpenAI (GPT Image, DALL-E)
- Vercel AI Gateway

Usage:
    from climage.api import pick_provider
    from climage.core import Credentials

    provider = pick_provider("auto", Credentials.from_env())
"""

from .base import BaseProvider, MediaRef, JobUpdate
from .factory import (
    AUTO,
    PROVIDER_PRIORITY,
    ProviderRegistry,
    register_provider,
    get_registry,
    get_provider,
    list_providers,
    pick_provider,
)

__all__ = [
    "BaseProvider",
    "MediaRef",
    "JobUpdate",
    "AUTO",
    "PROVIDER_PRIORITY",
    "ProviderRegistry",
    "register_provider",
    "get_registry",
    "get_provider",
    "list_providers",
    "pick_provider",
]
