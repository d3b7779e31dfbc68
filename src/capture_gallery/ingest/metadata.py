"""Metadata extraction for photo captures.

``MetadataExtractor`` turns a finalized photo ``src`` into bytes and hands them
to a ``MetadataParser``. Embedded image data is decoded directly from the
string; other sources are dereferenced (HTTP via httpx, local files off the
event loop). Any failure along the way yields ``None`` and a warning, never an
exception, so a photo is always ingested even when its EXIF is unreadable.

``ExifMetadataParser`` is the default parser. It reads EXIF with Pillow and
returns plain data (tag names as keys, rationals as floats, bytes as text).
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx
from PIL import ExifTags, Image
from PIL.ExifTags import GPSTAGS, TAGS

from capture_gallery.config import GallerySettings, get_settings
from capture_gallery.core.errors import MetadataExtractionError
from capture_gallery.core.media import DATA_URL_PREFIX, decode_base64_payload, split_data_url

logger = logging.getLogger(__name__)

EMBEDDED_IMAGE_PREFIX = "data:image/"

# IFD pointer tags; their sub-IFDs are merged in separately
_IFD_POINTER_TAGS = {ExifTags.IFD.Exif.value, ExifTags.IFD.GPSInfo.value, ExifTags.IFD.Interop.value}


# =============================================================================
# Parsers
# =============================================================================


@runtime_checkable
class MetadataParser(Protocol):
    """Parses structured metadata out of an image buffer."""

    async def parse(self, buffer: bytes) -> dict[str, Any] | None:
        """Return a metadata mapping, or None if the image carries none."""
        ...


class ExifMetadataParser:
    """Pillow-based EXIF parser.

    Attributes:
        include_image_info: Also report width, height, and format, so that
            images without EXIF still produce a mapping.
    """

    def __init__(self, include_image_info: bool = False) -> None:
        self.include_image_info = include_image_info

    async def parse(self, buffer: bytes) -> dict[str, Any] | None:
        return await asyncio.to_thread(self.parse_sync, buffer)

    def parse_sync(self, buffer: bytes) -> dict[str, Any] | None:
        """Parse EXIF from an in-memory image.

        Raises:
            PIL.UnidentifiedImageError: If the buffer is not a readable image.
        """
        with Image.open(io.BytesIO(buffer)) as img:
            exif = img.getexif()
            metadata: dict[str, Any] = {}

            for tag_id, value in exif.items():
                if tag_id in _IFD_POINTER_TAGS:
                    continue
                metadata[str(TAGS.get(tag_id, tag_id))] = _to_plain(value)

            for tag_id, value in exif.get_ifd(ExifTags.IFD.Exif).items():
                metadata[str(TAGS.get(tag_id, tag_id))] = _to_plain(value)

            gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo)
            if gps_ifd:
                gps = {str(GPSTAGS.get(k, k)): _to_plain(v) for k, v in gps_ifd.items()}
                metadata["GPSInfo"] = gps
                metadata.update(_gps_to_decimal(gps_ifd))

            if not metadata and not self.include_image_info:
                return None

            if self.include_image_info:
                metadata["width"] = img.width
                metadata["height"] = img.height
                metadata["format"] = img.format

            return metadata


def _to_plain(value: Any) -> Any:
    """Convert Pillow EXIF values to plain Python data."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").replace("\x00", "").strip()
    if isinstance(value, str):
        return value.replace("\x00", "").strip()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (tuple, list)):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_plain(v) for k, v in value.items()}
    # IFDRational and other numbers.Rational values
    denominator = getattr(value, "denominator", None)
    if denominator is not None:
        return float(value) if denominator else None
    return str(value)


def _gps_to_decimal(gps_ifd: dict[int, Any]) -> dict[str, float]:
    """Decimal latitude/longitude from a raw GPS IFD, when complete."""
    lat_ref, lat_dms = gps_ifd.get(1), gps_ifd.get(2)
    lon_ref, lon_dms = gps_ifd.get(3), gps_ifd.get(4)
    if not all([lat_ref, lat_dms, lon_ref, lon_dms]):
        return {}
    try:
        return {
            "latitude": _dms_to_decimal(lat_dms, lat_ref),
            "longitude": _dms_to_decimal(lon_dms, lon_ref),
        }
    except (TypeError, ValueError, ZeroDivisionError) as e:
        logger.debug(f"Unusable GPS coordinates: {e}")
        return {}


def _dms_to_decimal(dms: tuple, ref: str | bytes) -> float:
    degrees, minutes, seconds = (float(part) for part in dms)
    decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref.strip().upper() in ("S", "W"):
        decimal = -decimal
    return decimal


# =============================================================================
# Extractor
# =============================================================================


class MetadataExtractor:
    """Extracts parsed metadata from a photo source without ever raising.

    Attributes:
        parser: Metadata parser the bytes are handed to.
        settings: Supplies the dereference timeout.
    """

    def __init__(
        self,
        parser: MetadataParser | None = None,
        settings: GallerySettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.parser = parser or ExifMetadataParser()
        self.settings = settings or get_settings()
        self._http_client = http_client

    async def extract_metadata(self, src: str) -> dict[str, Any] | None:
        """Parse metadata from the bytes behind ``src``.

        Returns:
            Metadata mapping, or None on any failure or when there is none.
        """
        try:
            buffer = await self.read_bytes(src)
            parsed = await self.parser.parse(buffer)
            if parsed is not None and not isinstance(parsed, Mapping):
                raise MetadataExtractionError(
                    f"Parser returned {type(parsed).__name__}, expected a mapping"
                )
            metadata = {str(k): v for k, v in parsed.items()} if parsed else None
        except Exception as e:
            logger.warning(f"Failed to parse EXIF from bytes: {type(e).__name__}: {e}")
            return None

        if not metadata:
            logger.warning("No metadata found in photo bytes")
            return None
        return metadata

    async def read_bytes(self, src: str) -> bytes:
        """Get the binary content behind a source string.

        Raises:
            MetadataExtractionError: If the bytes cannot be obtained.
        """
        if src.startswith(EMBEDDED_IMAGE_PREFIX):
            return self._decode_embedded(src)
        return await self._dereference(src)

    def _decode_embedded(self, src: str) -> bytes:
        _, payload = split_data_url(src)
        try:
            return decode_base64_payload(payload)
        except ValueError as e:
            raise MetadataExtractionError(str(e), source=src[:64]) from e

    async def _dereference(self, src: str) -> bytes:
        if src.startswith(DATA_URL_PREFIX):
            header = src.partition(",")[0]
            if ";base64" in header:
                return self._decode_embedded(src)
            return unquote_to_bytes(src.partition(",")[2])

        scheme = urlparse(src).scheme.lower()
        if scheme in ("http", "https"):
            return await self._fetch(src)
        if scheme == "file" or src.startswith("/"):
            path = Path(unquote(urlparse(src).path)) if scheme == "file" else Path(src)
            try:
                return await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise MetadataExtractionError(f"Cannot read {path}: {e}", source=src) from e

        raise MetadataExtractionError(f"Cannot dereference source scheme {scheme!r}", source=src)

    async def _fetch(self, url: str) -> bytes:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.fetch_timeout_seconds, follow_redirects=True
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MetadataExtractionError(f"Failed to fetch {url}: {e}", source=url) from e
        return response.content
