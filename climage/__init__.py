"""
climage
=======

Generate images and videos from a prompt with xAI, fal.ai, Google,
OpenAI or the Vercel AI Gateway, and write one file per result.

Quick Start:
    import asyncio
    from climage import generate_image, GenerateOptions

    results = asyncio.run(
        generate_image("A cat in a tree", GenerateOptions(provider="xai", n=2))
    )
    for item in results:
        print(item.file_path)

Keys are read from the environment, ``.env`` and ``.env.local``.
"""

__version__ = "0.4.0"

from .core.config import Config, Credentials, load_env
from .core.exceptions import (
    ClimageError,
    ConfigurationError,
    UnknownProviderError,
    ProviderUnavailableError,
    NoProviderAvailableError,
    UnsupportedKindError,
    CapabilityError,
    CapabilityViolation,
    UnsupportedFormatError,
    MediaIOError,
    ProviderError,
    VendorRequestError,
    VendorEmptyResultError,
    VendorTimeoutError,
    ModerationBlockedError,
)
from .core.types import (
    MediaKind,
    OutputFormat,
    GenerateOptions,
    NormalizedRequest,
    ProviderCapabilities,
    RawMediaItem,
    PersistedMedia,
)
from .api import BaseProvider, ProviderRegistry, get_provider, list_providers, pick_provider
from .workflow import (
    MediaGenerator,
    generate_media,
    generate_image,
    generate_video,
    normalize,
    validate,
)

__all__ = [
    # Version
    "__version__",

    # Generation
    "MediaGenerator",
    "generate_media",
    "generate_image",
    "generate_video",
    "normalize",
    "validate",

    # Providers
    "BaseProvider",
    "ProviderRegistry",
    "get_provider",
    "list_providers",
    "pick_provider",

    # Data model
    "MediaKind",
    "OutputFormat",
    "GenerateOptions",
    "NormalizedRequest",
    "ProviderCapabilities",
    "RawMediaItem",
    "PersistedMedia",

    # Core
    "Config",
    "Credentials",
    "load_env",

    # Exceptions
    "ClimageError",
    "ConfigurationError",
    "UnknownProviderError",
    "ProviderUnavailableError",
    "NoProviderAvailableError",
    "UnsupportedKindError",
    "CapabilityError",
    "CapabilityViolation",
    "UnsupportedFormatError",
    "MediaIOError",
    "ProviderError",
    "VendorRequestError",
    "VendorEmptyResultError",
    "VendorTimeoutError",
    "ModerationBlockedError",
]
