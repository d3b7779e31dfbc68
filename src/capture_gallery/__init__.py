"""Capture gallery: normalize camera captures into an in-memory gallery.

Example:
    >>> from capture_gallery import GalleryStore, LocalCaptureAccess
    >>> gallery = GalleryStore(LocalCaptureAccess())
    >>> item = await gallery.add_photo("/data/user/0/app/cache/IMG_0001.jpg")
    >>> item.parsed_metadata
"""

from capture_gallery.config import GallerySettings, get_settings, load_settings
from capture_gallery.core import (
    FileAccessError,
    GalleryError,
    InvalidPayloadError,
    MediaItem,
    MediaKind,
    MetadataExtractionError,
    NoValidSourceError,
    ResolutionFailedError,
    SourceKind,
    VideoResolutionError,
)
from capture_gallery.gallery import GalleryEvent, GalleryStore, IngestStatus
from capture_gallery.ingest import (
    CaptureAccessService,
    ExifMetadataParser,
    LocalCaptureAccess,
    MetadataExtractor,
    MetadataParser,
    SourceResolver,
)

__version__ = "0.1.0"

__all__ = [
    "GalleryStore",
    "GalleryEvent",
    "IngestStatus",
    "MediaItem",
    "MediaKind",
    "SourceKind",
    "SourceResolver",
    "MetadataExtractor",
    "MetadataParser",
    "ExifMetadataParser",
    "CaptureAccessService",
    "LocalCaptureAccess",
    "GallerySettings",
    "get_settings",
    "load_settings",
    "GalleryError",
    "FileAccessError",
    "VideoResolutionError",
    "ResolutionFailedError",
    "NoValidSourceError",
    "InvalidPayloadError",
    "MetadataExtractionError",
]
