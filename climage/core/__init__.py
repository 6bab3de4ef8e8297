"""
Core Module
===========

Configuration, data model, exceptions and security helpers.
"""

from .config import Config, Credentials, load_env
from .exceptions import (
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
from .security import slugify, redact_url, redact_api_key
from .types import (
    MediaKind,
    OutputFormat,
    AdapterShape,
    JobStatus,
    GenerateOptions,
    NormalizedRequest,
    ProviderCapabilities,
    RawMediaItem,
    PersistedMedia,
)

__all__ = [
    # Configuration
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
    # Security
    "slugify",
    "redact_url",
    "redact_api_key",
    # Types
    "MediaKind",
    "OutputFormat",
    "AdapterShape",
    "JobStatus",
    "GenerateOptions",
    "NormalizedRequest",
    "ProviderCapabilities",
    "RawMediaItem",
    "PersistedMedia",
]
