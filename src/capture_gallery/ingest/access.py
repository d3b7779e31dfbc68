"""File/capture access collaborator.

The gallery never touches capture files directly. It goes through a
``CaptureAccessService``, which on a device is backed by the native camera
plugin. ``LocalCaptureAccess`` is the filesystem-backed implementation used on
desktop hosts and in tests.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import quote, unquote, urlparse

from capture_gallery.core.errors import FileAccessError

if TYPE_CHECKING:
    from capture_gallery.config import GallerySettings

logger = logging.getLogger(__name__)


@runtime_checkable
class CaptureAccessService(Protocol):
    """Access to capture files produced by the camera subsystem."""

    async def get_base64_from_file_path(self, path: str) -> str:
        """Read a capture file and return its contents as base64.

        Raises:
            FileAccessError: If the file cannot be read.
        """
        ...

    async def delete_file(self, path: str) -> None:
        """Delete a capture file. Best-effort; callers log failures."""
        ...

    def convert_file_src(self, path: str) -> str | None:
        """Map a capture path to a URL the display layer can stream."""
        ...


class LocalCaptureAccess:
    """Capture access backed by the local filesystem.

    Accepts absolute paths and ``file://`` URIs. ``content://`` URIs need a
    platform content resolver and are rejected.

    Attributes:
        file_server_base: Base URL that absolute paths are served under, for
            hosts that proxy local files over HTTP. When None, videos are
            addressed with ``file://`` URIs.
    """

    def __init__(self, file_server_base: str | None = None) -> None:
        self.file_server_base = file_server_base.rstrip("/") if file_server_base else None

    @classmethod
    def from_settings(cls, settings: GallerySettings) -> LocalCaptureAccess:
        """Build an access service serving files under ``settings.file_server_base``."""
        return cls(file_server_base=settings.file_server_base)

    def to_path(self, reference: str) -> Path:
        """Turn a path or ``file://`` URI into a filesystem path.

        Raises:
            FileAccessError: For URIs this service cannot resolve.
        """
        if reference.startswith("file://"):
            return Path(unquote(urlparse(reference).path))
        if "://" in reference:
            raise FileAccessError(
                f"Unsupported capture URI scheme: {reference.split('://', 1)[0]}",
                source=reference,
            )
        return Path(reference)

    async def get_base64_from_file_path(self, path: str) -> str:
        file_path = self.to_path(path)
        try:
            data = await asyncio.to_thread(file_path.read_bytes)
        except OSError as e:
            raise FileAccessError(f"Cannot read capture file {file_path}: {e}", source=path) from e
        return base64.b64encode(data).decode("ascii")

    async def delete_file(self, path: str) -> None:
        file_path = self.to_path(path)
        try:
            await asyncio.to_thread(file_path.unlink)
        except OSError as e:
            raise FileAccessError(f"Cannot delete capture file {file_path}: {e}", source=path) from e
        logger.debug(f"Deleted capture file {file_path}")

    def convert_file_src(self, path: str) -> str | None:
        try:
            file_path = self.to_path(path)
        except FileAccessError as e:
            logger.debug(f"No streamable URL for {path}: {e}")
            return None

        if not file_path.is_absolute():
            return None
        if self.file_server_base:
            return f"{self.file_server_base}{quote(file_path.as_posix())}"
        return file_path.as_uri()
