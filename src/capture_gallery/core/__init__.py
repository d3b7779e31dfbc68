"""Core data models for the capture gallery.

- **MediaItem**: the canonical unit stored in the gallery
- **Errors**: the ingestion exception hierarchy
"""

from capture_gallery.core.errors import (
    FileAccessError,
    GalleryError,
    InvalidPayloadError,
    MetadataExtractionError,
    NoValidSourceError,
    ResolutionFailedError,
    VideoResolutionError,
)
from capture_gallery.core.media import (
    MediaItem,
    MediaKind,
    SourceKind,
    base64_body,
    build_data_url,
    data_url_prefix,
    decode_base64_payload,
    split_data_url,
)

__all__ = [
    # Media models
    "MediaItem",
    "MediaKind",
    "SourceKind",
    # Embedded-data helpers
    "base64_body",
    "build_data_url",
    "data_url_prefix",
    "decode_base64_payload",
    "split_data_url",
    # Errors
    "GalleryError",
    "FileAccessError",
    "VideoResolutionError",
    "ResolutionFailedError",
    "NoValidSourceError",
    "InvalidPayloadError",
    "MetadataExtractionError",
]
