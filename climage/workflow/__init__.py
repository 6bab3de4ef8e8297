"""
Workflow Orchestration
======================

From prompt to files on disk.

Components:
- normalize: Resolves caller options into a NormalizedRequest
- validate: Checks a request against provider capabilities
- MediaGenerator: Routes a request to a provider and persists the output
"""

from .normalizer import normalize
from .validator import validate
from .generator import (
    MediaGenerator,
    generate_media,
    generate_image,
    generate_video,
    list_providers,
)

__all__ = [
    "normalize",
    "validate",
    "MediaGenerator",
    "generate_media",
    "generate_image",
    "generate_video",
    "list_providers",
]
