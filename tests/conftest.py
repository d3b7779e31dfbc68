"""Shared pytest fixtures for the capture gallery tests.

Fixtures included:
- Settings: settings (defaults, isolated from the environment)
- Collaborators: fake_access, fake_parser
- Images: jpeg_bytes, jpeg_with_exif, jpeg_data_url
"""

import base64
import io
from datetime import datetime
from typing import Any

import pytest
from PIL import Image

from capture_gallery.config import GallerySettings
from capture_gallery.core.errors import FileAccessError

STREAM_BASE = "http://localhost/_capacitor_file_"


# =============================================================================
# Helper Functions
# =============================================================================


def create_test_jpeg(
    width: int = 10,
    height: int = 10,
    color: str = "red",
    make: str | None = None,
    model: str | None = None,
    exif_datetime: datetime | None = None,
) -> bytes:
    """Create an in-memory JPEG with optional EXIF tags.

    Args:
        width: Width in pixels.
        height: Height in pixels.
        color: Solid color for the image.
        make: Camera make (EXIF tag 271).
        model: Camera model (EXIF tag 272).
        exif_datetime: Datetime to embed as DateTimeOriginal (tag 36867).

    Returns:
        JPEG-encoded bytes.
    """
    img = Image.new("RGB", (width, height), color=color)
    exif = img.getexif()
    if make:
        exif[271] = make
    if model:
        exif[272] = model
    if exif_datetime:
        exif[36867] = exif_datetime.strftime("%Y:%m:%d %H:%M:%S")

    buffer = io.BytesIO()
    if len(exif):
        img.save(buffer, format="JPEG", exif=exif)
    else:
        img.save(buffer, format="JPEG")
    return buffer.getvalue()


# =============================================================================
# Fakes
# =============================================================================


class FakeCaptureAccess:
    """In-memory stand-in for the camera plugin's file access."""

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        convertible: bool = True,
        fail_delete: bool = False,
        fail_convert: bool = False,
    ) -> None:
        self.files = dict(files or {})
        self.convertible = convertible
        self.fail_delete = fail_delete
        self.fail_convert = fail_convert
        self.read_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.convert_calls: list[str] = []

    async def get_base64_from_file_path(self, path: str) -> str:
        self.read_calls.append(path)
        if path not in self.files:
            raise FileAccessError(f"No such capture: {path}", source=path)
        return base64.b64encode(self.files[path]).decode("ascii")

    async def delete_file(self, path: str) -> None:
        self.delete_calls.append(path)
        if self.fail_delete:
            raise FileAccessError("File is locked", source=path)
        self.files.pop(path, None)

    def convert_file_src(self, path: str) -> str | None:
        self.convert_calls.append(path)
        if self.fail_convert:
            raise RuntimeError("plugin unavailable")
        if not self.convertible:
            return None
        return f"{STREAM_BASE}{path}"


class FakeParser:
    """Metadata parser that returns a canned result and records its input."""

    def __init__(self, result: Any = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.buffers: list[bytes] = []

    async def parse(self, buffer: bytes) -> Any:
        self.buffers.append(buffer)
        if self.error is not None:
            raise self.error
        return self.result


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> GallerySettings:
    """Default settings, unaffected by CAPTURE_GALLERY_* variables."""
    return GallerySettings(
        photo_mime_type="image/jpeg",
        video_mime_type="video/mp4",
        file_prefixes=("/data/", "file://", "content://"),
        delete_after_import=True,
        fetch_timeout_seconds=5,
        file_server_base=None,
    )


@pytest.fixture
def fake_access() -> FakeCaptureAccess:
    return FakeCaptureAccess()


@pytest.fixture
def fake_parser() -> FakeParser:
    return FakeParser(result={"width": 10, "height": 10})


@pytest.fixture
def jpeg_bytes() -> bytes:
    return create_test_jpeg()


@pytest.fixture
def jpeg_with_exif() -> bytes:
    return create_test_jpeg(
        make="Canon",
        model="EOS R5",
        exif_datetime=datetime(2024, 6, 15, 14, 30, 22),
    )


@pytest.fixture
def jpeg_data_url(jpeg_with_exif: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_with_exif).decode("ascii")
