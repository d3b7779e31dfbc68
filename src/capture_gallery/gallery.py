"""In-memory gallery of normalized captures.

The GalleryStore owns an ordered, append-only sequence of MediaItems. Ingestion
runs the source resolver (and, for photos, the metadata extractor) and then
commits the item in a single step with no suspension point, so concurrent
ingestions on the same event loop never interleave their appends. Items appear
in the order their commit runs, which is not necessarily the order the calls
were made.

Readers only ever get tuples: ``items`` is the current snapshot, and the
``photos`` / ``videos`` views are filters over it, recomputed lazily the first
time they are read after a change.

Example:
    >>> gallery = GalleryStore(LocalCaptureAccess())
    >>> await gallery.add_photo("SGVsbG8=")
    >>> await gallery.add_video("", "Zm9vYmFy")
    >>> len(gallery.photos), len(gallery.videos)
    (1, 1)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from capture_gallery.config import GallerySettings, get_settings
from capture_gallery.core.errors import FileAccessError, GalleryError, VideoResolutionError
from capture_gallery.core.media import MediaItem, MediaKind
from capture_gallery.ingest.access import CaptureAccessService, LocalCaptureAccess
from capture_gallery.ingest.metadata import MetadataExtractor, MetadataParser
from capture_gallery.ingest.sources import SourceResolver

logger = logging.getLogger(__name__)


class IngestStatus(str, Enum):
    """Outcome of a single ingestion call."""

    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class GalleryEvent:
    """Notification sent to subscribers after each ingestion.

    Attributes:
        status: Whether the capture was committed or aborted
        kind: Kind of capture being ingested
        item: The committed item (None when aborted)
        error: The abort reason (None when committed)
    """

    status: IngestStatus
    kind: MediaKind
    item: MediaItem | None = None
    error: GalleryError | None = None


GallerySubscriber = Callable[[GalleryEvent], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class GalleryStore:
    """Ordered store of captures with derived photo and video views.

    Without an explicit ``access`` service, captures are read from the local
    filesystem and videos are served under the configured ``file_server_base``.

    Attributes:
        resolver: Classifies and normalizes capture references.
        extractor: Extracts parsed metadata for photos.
    """

    def __init__(
        self,
        access: CaptureAccessService | None = None,
        parser: MetadataParser | None = None,
        settings: GallerySettings | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        settings = settings or get_settings()
        if access is None:
            access = LocalCaptureAccess.from_settings(settings)
        self.resolver = SourceResolver(access, settings)
        self.extractor = MetadataExtractor(parser, settings)
        self._clock = clock

        self._items: tuple[MediaItem, ...] = ()
        self._version = 0
        self._views: dict[MediaKind, tuple[int, tuple[MediaItem, ...]]] = {}
        self._subscribers: list[GallerySubscriber] = []
        self._last_captured_at = 0

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def add_photo(
        self,
        photo_ref: str,
        raw_metadata: dict[Any, Any] | None = None,
    ) -> MediaItem:
        """Ingest a photo capture.

        Metadata extraction failures are absorbed: the photo is committed with
        ``parsed_metadata`` set to None.

        Args:
            photo_ref: Embedded-data string, capture file path/URI, or raw
                base64 payload.
            raw_metadata: Metadata returned by the camera, stored verbatim.

        Returns:
            The committed item.

        Raises:
            FileAccessError: If a capture file cannot be read.
        """
        try:
            src = await self.resolver.resolve_photo_source(photo_ref)
        except FileAccessError as e:
            logger.error(f"Photo capture could not be read: {e.message}")
            self._publish(GalleryEvent(IngestStatus.ABORTED, MediaKind.PHOTO, error=e))
            raise

        parsed_metadata = await self.extractor.extract_metadata(src)
        return self._commit(
            src,
            MediaKind.PHOTO,
            raw_metadata=raw_metadata,
            parsed_metadata=parsed_metadata,
        )

    async def add_video(self, video_path: str, inline_data: str | None = None) -> MediaItem | None:
        """Ingest a video capture.

        Args:
            video_path: Capture file path/URI, embedded-data string, or raw
                base64 payload.
            inline_data: Base64 payload that takes precedence over the path.

        Returns:
            The committed item, or None if resolution aborted. An aborted call
            leaves the store unchanged.
        """
        try:
            src = self.resolver.resolve_video_source(video_path, inline_data)
        except VideoResolutionError as e:
            logger.error(f"Video capture not added ({type(e).__name__}): {e.message}")
            self._publish(GalleryEvent(IngestStatus.ABORTED, MediaKind.VIDEO, error=e))
            return None

        return self._commit(src, MediaKind.VIDEO)

    def _commit(self, src: str, kind: MediaKind, **metadata: Any) -> MediaItem:
        # No await in here: the append must not interleave with other ingestions.
        captured_at = max(self._clock(), self._last_captured_at)
        item = MediaItem(
            src=src,
            kind=kind,
            captured_at=captured_at,
            sequence=len(self._items) + 1,
            **metadata,
        )
        self._items = (*self._items, item)
        self._version += 1
        self._last_captured_at = captured_at

        logger.info(f"Added {kind.value} #{item.sequence} to gallery")
        self._publish(GalleryEvent(IngestStatus.COMMITTED, kind, item=item))
        return item

    async def wait_for_cleanups(self) -> None:
        """Wait for background capture-file deletions to finish."""
        await self.resolver.wait_for_cleanups()

    # =========================================================================
    # Read Views
    # =========================================================================

    @property
    def items(self) -> tuple[MediaItem, ...]:
        """All items, oldest first."""
        return self._items

    @property
    def photos(self) -> tuple[MediaItem, ...]:
        return self._view(MediaKind.PHOTO)

    @property
    def videos(self) -> tuple[MediaItem, ...]:
        return self._view(MediaKind.VIDEO)

    def _view(self, kind: MediaKind) -> tuple[MediaItem, ...]:
        cached = self._views.get(kind)
        if cached is not None and cached[0] == self._version:
            return cached[1]
        view = tuple(item for item in self._items if item.kind == kind)
        self._views[kind] = (self._version, view)
        return view

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self._items)

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, callback: GallerySubscriber) -> Callable[[], None]:
        """Register a callback for ingestion outcomes.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, event: GalleryEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Gallery subscriber failed: {e}", exc_info=True)
