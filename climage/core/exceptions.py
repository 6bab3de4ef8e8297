"""
Custom Exceptions
=================

Unified exception hierarchy for consistent error handling across climage.

Every error is fatal to the enclosing generation call. ``recoverable`` marks
the ones a caller can reasonably fix by changing the request (re-prompting,
picking another provider) rather than the ones caused by a system fault.
"""

from enum import Enum
from typing import Optional, Dict, Any

# Vendor error bodies are clipped to this many characters
MAX_RESPONSE_BODY = 500


class ClimageError(Exception):
    """Base exception for all climage errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(ClimageError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Provider selection
# =============================================================================


class UnknownProviderError(ClimageError):
    """The requested provider id is not registered."""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            f"Unknown provider: {provider}",
            details={"provider": provider},
            **kwargs,
        )
        self.provider = provider


class ProviderUnavailableError(ClimageError):
    """The provider exists but none of its credential variables are set."""

    def __init__(self, provider: str, env_names=(), **kwargs):
        hint = f" Set {' or '.join(env_names)}." if env_names else ""
        super().__init__(
            f"Provider {provider} is not available (missing API key).{hint}",
            details={"provider": provider, "env_names": list(env_names)},
            recoverable=True,
            **kwargs,
        )
        self.provider = provider


class NoProviderAvailableError(ClimageError):
    """Auto-selection found no provider with credentials."""

    def __init__(self, env_names=(), **kwargs):
        hint = f" Set one of: {', '.join(env_names)}." if env_names else ""
        super().__init__(
            f"No providers available.{hint} Keys can live in .env or the environment.",
            details={"env_names": list(env_names)},
            recoverable=True,
            **kwargs,
        )


class UnsupportedKindError(ClimageError):
    """The selected provider cannot produce the requested media kind."""

    def __init__(self, provider: str, kind: str, **kwargs):
        super().__init__(
            f"Provider {provider} does not support {kind} generation",
            details={"provider": provider, "kind": kind},
            recoverable=True,
            **kwargs,
        )
        self.provider = provider
        self.kind = kind


# =============================================================================
# Request validation
# =============================================================================


class CapabilityViolation(Enum):
    """Machine-readable reason for a CapabilityError."""

    INPUT_IMAGE_COUNT = "input_image_count"
    ASPECT_RATIO = "aspect_ratio"
    INTERPOLATION = "interpolation"
    DURATION = "duration"
    IMAGE_EDITING = "image_editing"
    START_FRAME_REQUIRED = "start_frame_required"


class CapabilityError(ClimageError):
    """A request asks for something the provider cannot do."""

    def __init__(
        self,
        message: str,
        reason: CapabilityViolation,
        provider: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["reason"] = reason.value
        if provider:
            details["provider"] = provider
        if value is not None:
            details["value"] = str(value)[:100]
        super().__init__(message, details=details, recoverable=True, **kwargs)
        self.reason = reason


class UnsupportedFormatError(ClimageError):
    """A local input file has an extension outside the supported image types."""

    def __init__(self, path: str, extension: str, **kwargs):
        super().__init__(
            f"Unsupported image format '{extension or '(none)'}' for input file: {path}",
            details={"path": path, "extension": extension},
            recoverable=True,
            **kwargs,
        )


class MediaIOError(ClimageError):
    """Reading an input file or writing an output file failed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if path:
            details["path"] = path
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Vendor failures
# =============================================================================


class ProviderError(ClimageError):
    """Provider/API-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        super().__init__(message, details=details, **kwargs)
        self.provider = provider


class VendorRequestError(ProviderError):
    """The vendor answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code:
            details["status_code"] = status_code
        body = truncate(response_body or "")
        if body:
            message = f"{message} ({status_code}): {body}"
            details["response_body"] = body
        elif status_code:
            message = f"{message} ({status_code})"
        super().__init__(message, provider=provider, details=details, **kwargs)
        self.status_code = status_code


class VendorEmptyResultError(ProviderError):
    """The vendor reported success but returned no usable media."""


class VendorTimeoutError(ProviderError):
    """A polled job did not finish within its attempt budget."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        job_id: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        if attempts:
            details["attempts"] = attempts
        super().__init__(message, provider=provider, details=details, **kwargs)
        self.job_id = job_id


class ModerationBlockedError(ProviderError):
    """The vendor explicitly refused the content."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, provider=provider, recoverable=True, **kwargs)


def truncate(text: str, limit: int = MAX_RESPONSE_BODY) -> str:
    """Clip vendor text to a bounded length."""
    return text[:limit] if len(text) > limit else text
