"""Capture ingestion pipeline.

- **SourceResolver**: classifies capture references and normalizes them
- **MetadataExtractor**: decodes photo bytes and parses their EXIF
- **CaptureAccessService**: the file-access collaborator both rely on
"""

from capture_gallery.ingest.access import CaptureAccessService, LocalCaptureAccess
from capture_gallery.ingest.metadata import (
    ExifMetadataParser,
    MetadataExtractor,
    MetadataParser,
)
from capture_gallery.ingest.sources import SourceResolver

__all__ = [
    "CaptureAccessService",
    "LocalCaptureAccess",
    "MetadataParser",
    "ExifMetadataParser",
    "MetadataExtractor",
    "SourceResolver",
]
