"""Source resolution for camera captures.

Turns a capture reference of unknown encoding into a display-ready ``src``
string. Classification looks only at the reference's prefix, never at file
contents:

- ``data:`` prefix: already an embedded-data string
- file prefix (``/data/``, ``file://``, ``content://`` by default): a capture
  file, read through the ``CaptureAccessService``
- anything else: a bare base64 payload

Photos are always embedded; the capture file is deleted in the background once
it has been read. Videos taken from files are streamed through a URL from
``convert_file_src`` and the file is kept, since the URL points at it.

Typical usage:
    >>> resolver = SourceResolver(LocalCaptureAccess())
    >>> await resolver.resolve_photo_source("SGVsbG8=")
    'data:image/jpeg;base64,SGVsbG8='
"""

from __future__ import annotations

import asyncio
import logging

from capture_gallery.config import GallerySettings, get_settings
from capture_gallery.core.errors import (
    InvalidPayloadError,
    NoValidSourceError,
    ResolutionFailedError,
)
from capture_gallery.core.media import (
    DATA_URL_PREFIX,
    MediaKind,
    SourceKind,
    base64_body,
    build_data_url,
    data_url_prefix,
)
from capture_gallery.ingest.access import CaptureAccessService

logger = logging.getLogger(__name__)


class SourceResolver:
    """Classifies capture references and normalizes them to ``src`` strings.

    Attributes:
        access: Collaborator used to read, delete, and address capture files.
        settings: MIME types, file prefixes, and cleanup policy.
    """

    def __init__(
        self,
        access: CaptureAccessService,
        settings: GallerySettings | None = None,
    ) -> None:
        self.access = access
        self.settings = settings or get_settings()
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    # =========================================================================
    # Classification
    # =========================================================================

    def is_file_reference(self, reference: str) -> bool:
        """Whether the reference names a capture file or URI."""
        return reference.startswith(self.settings.file_prefixes)

    def classify(self, reference: str, kind: MediaKind = MediaKind.PHOTO) -> SourceKind:
        """Classify a capture reference by prefix.

        Photos check the embedded-data prefix before file prefixes. Videos check
        file prefixes first and only treat the exact video embedded-data prefix
        as embedded; any other string is a raw payload.
        """
        if kind == MediaKind.PHOTO:
            if reference.startswith(DATA_URL_PREFIX):
                return SourceKind.EMBEDDED
            if self.is_file_reference(reference):
                return SourceKind.FILE
            return SourceKind.RAW

        if self.is_file_reference(reference):
            return SourceKind.FILE
        if reference.startswith(data_url_prefix(self.settings.video_mime_type)):
            return SourceKind.EMBEDDED
        return SourceKind.RAW

    # =========================================================================
    # Photos
    # =========================================================================

    async def resolve_photo_source(self, reference: str) -> str:
        """Resolve a photo capture reference to an embedded-data string.

        Args:
            reference: Embedded-data string, capture file path/URI, or raw
                base64 payload.

        Returns:
            Embedded-data string for the photo.

        Raises:
            FileAccessError: If a capture file cannot be read.
        """
        source_kind = self.classify(reference, MediaKind.PHOTO)
        logger.debug(f"Photo reference classified as {source_kind.value}")

        if source_kind == SourceKind.EMBEDDED:
            return reference

        if source_kind == SourceKind.FILE:
            payload = await self.access.get_base64_from_file_path(reference)
            src = build_data_url(self.settings.photo_mime_type, payload)
            if self.settings.delete_after_import:
                self._schedule_cleanup(reference)
            return src

        return build_data_url(self.settings.photo_mime_type, reference)

    def _schedule_cleanup(self, path: str) -> None:
        task = asyncio.create_task(self._delete_source_file(path))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _delete_source_file(self, path: str) -> None:
        try:
            await self.access.delete_file(path)
        except Exception as e:
            logger.warning(f"Failed to delete capture file {path}: {e}")

    @property
    def pending_cleanups(self) -> int:
        """Number of background deletions still running."""
        return len(self._cleanup_tasks)

    async def wait_for_cleanups(self) -> None:
        """Wait for background deletions to finish (shutdown and tests)."""
        if self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks))

    # =========================================================================
    # Videos
    # =========================================================================

    def resolve_video_source(self, path: str, inline_data: str | None = None) -> str:
        """Resolve a video capture to an embedded-data string or streamable URL.

        Args:
            path: Capture file path/URI, embedded-data string, or raw payload.
            inline_data: Base64 payload (with or without prefix) that takes
                precedence over ``path`` when non-empty.

        Returns:
            Display-ready source string.

        Raises:
            ResolutionFailedError: A file path yielded no streamable URL.
            NoValidSourceError: Resolution produced an empty source.
            InvalidPayloadError: Embedded-data source has no base64 body.
        """
        prefix = data_url_prefix(self.settings.video_mime_type)

        if inline_data:
            src = inline_data if inline_data.startswith(prefix) else f"{prefix}{inline_data}"
        else:
            source_kind = self.classify(path, MediaKind.VIDEO)
            logger.debug(f"Video reference classified as {source_kind.value}")

            if source_kind == SourceKind.FILE:
                src = self._convert_video_path(path)
            elif source_kind == SourceKind.EMBEDDED:
                src = path
            else:
                src = f"{prefix}{path}"

        if not src or not src.strip():
            raise NoValidSourceError("No valid video source available", source=path)

        if src.startswith(DATA_URL_PREFIX) and not (base64_body(src) or "").strip():
            raise InvalidPayloadError("Video data has no base64 payload", source=path)

        return src

    def _convert_video_path(self, path: str) -> str:
        try:
            url = self.access.convert_file_src(path)
        except Exception as e:
            raise ResolutionFailedError(
                f"Error converting video path to a file URL: {e}", source=path
            ) from e

        if not url or not url.strip():
            raise ResolutionFailedError("Failed to convert video path to a file URL", source=path)
        return url
