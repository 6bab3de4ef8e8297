"""
Data Model
==========

Request, capability and result types shared by the normalizer, the
validator, the provider adapters and the orchestrator.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Tuple, Sequence, Dict, Any

from .security import redact_url

MIN_COUNT = 1
MAX_COUNT = 10


class MediaKind(str, Enum):
    """What a request produces."""

    IMAGE = "image"
    VIDEO = "video"


class OutputFormat(str, Enum):
    """File formats a caller may request."""

    PNG = "png"
    JPG = "jpg"
    WEBP = "webp"
    MP4 = "mp4"
    WEBM = "webm"
    GIF = "gif"

    @classmethod
    def default_for(cls, kind: MediaKind) -> "OutputFormat":
        return cls.MP4 if kind == MediaKind.VIDEO else cls.PNG


class AdapterShape(Enum):
    """Request/response pattern an adapter uses for one request."""

    SYNC_BATCH = "sync_batch"
    ASYNC_JOB = "async_job"
    PER_ITEM = "per_item"


class JobStatus(Enum):
    """Status of a polled vendor job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_provider_status(cls, status: Optional[str]) -> "JobStatus":
        """
        Normalize provider-specific status strings to JobStatus.

        Unknown strings count as still processing.
        """
        status_lower = (status or "").lower().strip()

        if status_lower in ("completed", "succeeded", "done", "success", "finished"):
            return cls.COMPLETED

        if status_lower in (
            "failed", "error", "failure", "errored", "expired",
            "cancelled", "canceled",
        ):
            return cls.FAILED

        if status_lower in ("pending", "queued", "in_queue", "waiting", "scheduled"):
            return cls.PENDING

        return cls.PROCESSING


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class GenerateOptions:
    """Caller-supplied options; everything but the prompt is optional."""

    provider: Optional[str] = None
    model: Optional[str] = None
    n: Optional[float] = None
    aspect_ratio: Optional[str] = None
    kind: Optional[MediaKind] = None
    format: Optional[OutputFormat] = None
    out: Optional[str] = None
    out_dir: Optional[str] = None
    name: Optional[str] = None
    input_images: Sequence[str] = ()
    start_frame: Optional[str] = None
    end_frame: Optional[str] = None
    duration: Optional[float] = None
    verbose: bool = False


@dataclass(frozen=True)
class NormalizedRequest:
    """
    Fully resolved request.

    Image references are already data URIs or remote URLs and all paths are
    absolute, so validation and adapters never touch the filesystem or the
    environment.
    """

    prompt: str
    provider: str
    n: int
    kind: MediaKind
    format: OutputFormat
    out_dir: str
    name_base: str
    timestamp: str
    model: Optional[str] = None
    aspect_ratio: Optional[str] = None
    out: Optional[str] = None
    input_images: Tuple[str, ...] = ()
    start_frame: Optional[str] = None
    end_frame: Optional[str] = None
    duration: Optional[float] = None
    verbose: bool = False

    @property
    def has_image_inputs(self) -> bool:
        return bool(self.input_images or self.start_frame or self.end_frame)


# =============================================================================
# Capabilities
# =============================================================================


@dataclass(frozen=True)
class ProviderCapabilities:
    """Static limits and feature flags of one provider."""

    max_input_images: int = 0
    # None means aspect ratios are not pre-validated against a list
    supported_aspect_ratios: Optional[Tuple[str, ...]] = None
    supports_custom_aspect_ratio: bool = False
    supports_video_interpolation: bool = False
    # None means the provider cannot make video
    video_duration_range: Optional[Tuple[float, float]] = None
    supports_image_editing: bool = False

    @property
    def supports_video(self) -> bool:
        return self.video_duration_range is not None


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class RawMediaItem:
    """One decoded item from an adapter, before it is written to disk."""

    kind: MediaKind
    provider: str
    index: int
    data: bytes = field(repr=False)
    model: Optional[str] = None
    source_url: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def byte_length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PersistedMedia(RawMediaItem):
    """A generated item after it has been written to ``file_path``."""

    file_path: str = ""

    @classmethod
    def from_raw(cls, item: RawMediaItem, file_path: str) -> "PersistedMedia":
        return cls(**{**asdict(item), "file_path": file_path})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization (payload bytes omitted)."""
        return {
            "kind": self.kind.value,
            "provider": self.provider,
            "model": self.model,
            "index": self.index,
            "file_path": self.file_path,
            "source_url": redact_url(self.source_url) if self.source_url else None,
            "byte_length": self.byte_length,
            "mime_type": self.mime_type,
        }
