"""Exception hierarchy for capture ingestion.

Photo ingestion only ever fails with FileAccessError (raised while converting a
file capture to base64). Video ingestion aborts with one of the three
VideoResolutionError subclasses. MetadataExtractionError never escapes the
metadata extractor; it exists so the failure can be logged with a type.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base exception for gallery ingestion issues.

    Attributes:
        message: Error message
        source: Capture reference or source string that caused the issue
    """

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.message = message
        self.source = source


class FileAccessError(GalleryError):
    """Source file unreadable or inaccessible."""

    pass


class VideoResolutionError(GalleryError):
    """A video capture could not be resolved; nothing is inserted."""

    pass


class ResolutionFailedError(VideoResolutionError):
    """File path could not be converted to a streamable URL."""

    pass


class NoValidSourceError(VideoResolutionError):
    """Resolution produced an empty source."""

    pass


class InvalidPayloadError(VideoResolutionError):
    """Embedded-data source with a missing or empty base64 body."""

    pass


class MetadataExtractionError(GalleryError):
    """Bytes could not be obtained or parsed for metadata."""

    pass
