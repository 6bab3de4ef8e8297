"""
Utilities
=========

Image reference resolution and output file handling.
"""

from .image_utils import to_data_uri, resolve_image_refs, parse_data_uri
from .storage import make_output_path, save_media, to_json_result

__all__ = [
    "to_data_uri",
    "resolve_image_refs",
    "parse_data_uri",
    "make_output_path",
    "save_media",
    "to_json_result",
]
