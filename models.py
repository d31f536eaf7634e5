#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pydantic models and Dataclasses for Playlist Purge API requests, responses,
and internal data structures.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from config import config
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

PRIVACY_STATUSES = ("public", "private", "unlisted", "unknown")
DEFAULT_PLAYLIST_TITLE = "Untitled playlist"

HeaderMap = Dict[str, str]


class Backend(str, Enum):
    """Upstream API a request is routed to."""

    OFFICIAL = "official"
    INTERNAL = "internal"


def normalize_privacy_status(value: Optional[str]) -> str:
    """Coerce any upstream privacy value into one of PRIVACY_STATUSES."""
    if isinstance(value, str) and value.strip().lower() in PRIVACY_STATUSES:
        return value.strip().lower()
    return "unknown"


def coerce_item_count(value) -> int:
    """Non-negative integer item count, 0 when the value cannot be parsed."""
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


@dataclass(frozen=True)
class Playlist:
    """Uniform playlist record produced by both backends."""

    id: str
    title: str = DEFAULT_PLAYLIST_TITLE
    description: str = ""
    channel_title: str = ""
    privacy_status: str = "unknown"
    item_count: int = 0
    updated_at: str = ""
    thumbnail_url: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Playlist id must be non-empty")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "privacy_status", normalize_privacy_status(self.privacy_status))
        object.__setattr__(self, "item_count", coerce_item_count(self.item_count))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class HeaderClassification:
    """Which backend a header set selects and what it is missing."""

    backend: Optional[Backend]
    missing_required: List[str] = field(default_factory=list)
    advisory: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.backend is not None and not self.missing_required and not self.errors

    @property
    def problems(self) -> List[str]:
        """Blocking problems in display order: malformed first, then missing."""
        return list(self.errors) + [f"Missing required header: {name}" for name in self.missing_required]


# --- API request models ---

class HeadersRequest(BaseModel):
    """Credentials copied from an authenticated youtube.com request.

    Accepts either the raw header block pasted from the browser's developer
    tools or an already-split name/value object.
    """

    headers: Union[str, Dict[str, str]] = Field(
        ...,
        description="Raw 'Name: value' lines or a header object."
    )

    @field_validator("headers")
    @classmethod
    def headers_must_not_be_empty(cls, v: Union[str, Dict[str, str]]) -> Union[str, Dict[str, str]]:
        """Reject an empty header block before it reaches the parser."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("Headers are required")
        if isinstance(v, dict) and not v:
            raise ValueError("Headers are required")
        return v


class DeletePlaylistsRequest(HeadersRequest):
    """Batch delete request; ids are deleted one at a time in the given order."""

    playlist_ids: List[str] = Field(
        ...,
        description="Ids of the playlists to delete, processed sequentially."
    )

    @field_validator("playlist_ids")
    @classmethod
    def validate_playlist_ids(cls, v: List[str]) -> List[str]:
        """Strip ids, drop blanks and duplicates while keeping order.

        Raises:
            ValueError: If no usable id remains or the batch is too large
        """
        cleaned: List[str] = []
        for playlist_id in v:
            playlist_id = (playlist_id or "").strip()
            if playlist_id and playlist_id not in cleaned:
                cleaned.append(playlist_id)
        if not cleaned:
            raise ValueError("At least one playlist id is required")
        if len(cleaned) > config.MAX_PLAYLISTS_PER_DELETE:
            raise ValueError(f"Too many playlist ids (max {config.MAX_PLAYLISTS_PER_DELETE})")
        return cleaned


# --- API response models ---

class PlaylistModel(BaseModel):
    """Serialized Playlist."""

    id: str
    title: str
    description: str
    channel_title: str
    privacy_status: str
    item_count: int
    updated_at: str
    thumbnail_url: Optional[str] = None


class HeaderInspectionResponse(BaseModel):
    """Result of parsing and classifying a header block without network access."""

    backend: Optional[str] = Field(None, description="'official', 'internal' or null.")
    header_names: List[str] = Field(default_factory=list, description="Canonical names of the parsed headers.")
    parse_errors: List[str] = Field(default_factory=list)
    missing_required: List[str] = Field(default_factory=list)
    advisory: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    ready: bool = Field(False, description="True when the headers can be sent upstream.")


class PlaylistsResponse(BaseModel):
    """Model for the playlist listing response."""

    backend: str = Field(..., description="Backend selected from the Authorization header.")
    count: int
    playlists: List[PlaylistModel]
    processing_time_ms: Optional[float] = None


class BatchDeleteResponse(BaseModel):
    """Model for the batch delete response."""

    status: str = Field(..., description="'completed', 'failed' or 'cancelled'.")
    total: int
    completed: int
    deleted_ids: List[str]
    failed_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class ErrorResponse(BaseModel):
    """Model for error responses."""

    detail: str = Field(
        ...,
        description="Detailed error message."
    )
    error_code: Optional[str] = Field(
        None,
        description="Optional internal error code."
    )
