"""Canonical media item model for the capture gallery.

A MediaItem is one normalized capture: a photo or a video clip whose ``src`` can
be handed straight to a display layer. Photos may carry the metadata the camera
returned at capture time (``raw_metadata``) and the EXIF decoded from their
bytes (``parsed_metadata``). Videos never carry metadata.

Embedded-data strings (``data:<mime>;base64,<payload>``) are built and taken
apart with the helpers at the bottom of this module.

Example:
    >>> item = MediaItem(
    ...     src=build_data_url("image/jpeg", "SGVsbG8="),
    ...     kind=MediaKind.PHOTO,
    ...     captured_at=1718000000000,
    ... )
    >>> item.mime_type
    'image/jpeg'
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

DATA_URL_PREFIX = "data:"
BASE64_MARKER = "base64,"

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Enums
# =============================================================================


class MediaKind(str, Enum):
    """Kinds of media held by the gallery.

    Attributes:
        PHOTO: Still image, stored as an embedded-data string
        VIDEO: Video clip, stored embedded or as a streamable URL
    """

    PHOTO = "photo"
    VIDEO = "video"


class SourceKind(str, Enum):
    """Syntactic classification of a capture reference.

    Attributes:
        EMBEDDED: Already an embedded-data string (``data:`` prefix)
        FILE: Filesystem path or file/content URI
        RAW: Anything else, assumed to be a bare base64 payload
    """

    EMBEDDED = "embedded"
    FILE = "file"
    RAW = "raw"


# =============================================================================
# Media Item
# =============================================================================


class MediaItem(BaseModel):
    """A single normalized capture in the gallery.

    Items are immutable; corrections mean inserting a new item.
    ``parsed_metadata`` is a read-only view over a copy owned by the item.
    ``raw_metadata`` is kept exactly as the caller passed it, so the caller
    must not mutate it after ingestion.

    Attributes:
        src: Display-ready source (embedded-data string or resolvable URL)
        kind: Photo or video
        captured_at: Ingestion time in milliseconds since the epoch
        sequence: Insertion counter assigned by the owning store
        raw_metadata: Metadata the capture subsystem returned (photos only)
        parsed_metadata: EXIF decoded from the image bytes (photos only)
    """

    model_config = ConfigDict(frozen=True)

    src: str
    kind: MediaKind
    captured_at: int = Field(ge=0)
    sequence: int = Field(default=0, ge=0)
    raw_metadata: Any = None
    parsed_metadata: Any = None

    @field_validator("src")
    @classmethod
    def validate_src(cls, v: str) -> str:
        """Reject empty or whitespace-only sources."""
        if not v or not v.strip():
            raise ValueError("src must be a non-empty source string")
        return v

    @field_validator("parsed_metadata")
    @classmethod
    def freeze_parsed_metadata(cls, v: Any) -> Mapping[str, Any] | None:
        """Store parsed metadata as a read-only mapping with string keys."""
        if v is None:
            return None
        if not isinstance(v, Mapping):
            raise ValueError("parsed_metadata must be a mapping")
        return MappingProxyType({str(k): value for k, value in v.items()})

    @field_serializer("parsed_metadata")
    def serialize_parsed_metadata(self, v: Mapping[str, Any] | None) -> dict[str, Any] | None:
        return dict(v) if v is not None else None

    @model_validator(mode="after")
    def validate_video_has_no_metadata(self) -> MediaItem:
        """Metadata fields only apply to photos."""
        if self.kind == MediaKind.VIDEO and (
            self.raw_metadata is not None or self.parsed_metadata is not None
        ):
            raise ValueError("video items cannot carry metadata")
        return self

    @property
    def is_embedded(self) -> bool:
        """Whether the source is a self-contained embedded-data string."""
        return self.src.startswith(DATA_URL_PREFIX)

    @property
    def mime_type(self) -> str | None:
        """MIME type of an embedded source, None for URL sources."""
        if not self.is_embedded:
            return None
        return split_data_url(self.src)[0] or None


# =============================================================================
# Embedded-data helpers
# =============================================================================


def build_data_url(mime_type: str, payload: str) -> str:
    """Wrap a base64 payload in an embedded-data prefix."""
    return f"{DATA_URL_PREFIX}{mime_type};{BASE64_MARKER}{payload}"


def data_url_prefix(mime_type: str) -> str:
    """Prefix that ``build_data_url`` puts in front of a payload."""
    return f"{DATA_URL_PREFIX}{mime_type};{BASE64_MARKER}"


def split_data_url(src: str) -> tuple[str, str]:
    """Split an embedded-data string into (mime type, payload).

    The payload is everything after the first comma, matching how browsers
    read data URLs.

    Raises:
        ValueError: If ``src`` is not an embedded-data string.
    """
    if not src.startswith(DATA_URL_PREFIX):
        raise ValueError("not an embedded-data string")
    header, _, payload = src.partition(",")
    mime_type = header[len(DATA_URL_PREFIX):].split(";", 1)[0]
    return mime_type, payload


def base64_body(src: str) -> str | None:
    """Text following the ``base64,`` marker, or None if there is no marker."""
    _, marker, body = src.partition(BASE64_MARKER)
    return body if marker else None


def decode_base64_payload(payload: str) -> bytes:
    """Decode a standard-alphabet base64 string straight into bytes.

    Whitespace is ignored and missing ``=`` padding is restored. Characters
    outside the alphabet are an error.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    cleaned = _WHITESPACE.sub("", payload)
    if len(cleaned) % 4 == 1:
        raise ValueError("truncated base64 payload")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e
