#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Playlist extraction from InnerTube browse responses.

The internal API returns a deeply nested document whose layout changes with
experiments, locales and client versions. Instead of following a schema, the
walker visits every dict/list once and tests each dict against a table of
known renderer shapes, collecting playlist records and the first
continuation token it meets. Unknown shapes are ignored, never raised on.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from logging_config import StructuredLogger
from models import DEFAULT_PLAYLIST_TITLE, Playlist

logger = StructuredLogger(__name__)

UNKNOWN_CHANNEL = "Unknown channel"

Path = Tuple[str, ...]


def dig(node: Any, path: Sequence[Any]) -> Any:
    """Follow ``path`` (dict keys / list indexes) through ``node``; None on any miss."""
    current = node
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        elif isinstance(current, dict):
            current = current.get(key)
        else:
            return None
    return current


def get_text(value: Any) -> Optional[str]:
    """Text of a rich-text field.

    Tries, in order: a plain string, ``{simpleText}``, ``{content}`` and
    ``{runs: [{text}]}`` joined without separators. Empty results count as
    missing so callers can fall back to the next candidate.
    """
    if not value:
        return None
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return None
    if isinstance(value.get("simpleText"), str):
        return value["simpleText"] or None
    if isinstance(value.get("content"), str):
        return value["content"] or None
    runs = value.get("runs")
    if isinstance(runs, list):
        text = "".join(
            run["text"] for run in runs if isinstance(run, dict) and isinstance(run.get("text"), str)
        )
        return text or None
    return None


def first_text(*values: Any) -> Optional[str]:
    for value in values:
        text = get_text(value)
        if text:
            return text
    return None


def parse_count(value: Any) -> int:
    """Digits of a short count string ("12 videos", "1,204 Videos") as an int; 0 if none."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0)
    digits = re.sub(r"\D", "", value if isinstance(value, str) else "")
    return int(digits) if digits else 0


def last_url(entries: Any) -> Optional[str]:
    """URL of the last entry (highest resolution), falling back to the first."""
    if not isinstance(entries, list) or not entries:
        return None
    for candidate in (entries[-1], entries[0]):
        if isinstance(candidate, dict) and isinstance(candidate.get("url"), str) and candidate["url"]:
            return candidate["url"]
    return None


# --- Shape tables ---

NON_PLAYLIST_LOCKUP_TYPES = frozenset({
    "LOCKUP_CONTENT_TYPE_VIDEO",
    "LOCKUP_CONTENT_TYPE_SHORT",
    "LOCKUP_CONTENT_TYPE_CHANNEL",
})


def _is_playlist_lockup(node: Dict[str, Any]) -> bool:
    """A lockupViewModel wrapper that describes a playlist-like card.

    A PLAYLIST content type always matches. Otherwise the lockup metadata
    shape is taken as a playlist card, unless the content type names
    something that is never a playlist (videos, shorts, channels).
    """
    lockup = node.get("lockupViewModel")
    if not isinstance(lockup, dict):
        return False
    content_types = [str(value) for value in (node.get("contentType"), lockup.get("contentType")) if value]
    if any("PLAYLIST" in value for value in content_types):
        return True
    if any(value in NON_PLAYLIST_LOCKUP_TYPES for value in content_types):
        return False
    return isinstance(dig(lockup, ("metadata", "lockupMetadataViewModel")), dict)


@dataclass(frozen=True)
class RendererKind:
    """One recognized playlist record shape.

    ``key`` is the field holding the record. When ``wrapper`` is set the whole
    node is the record and ``matches`` must accept it.
    """

    key: str
    wrapper: bool = False
    matches: Optional[Callable[[Dict[str, Any]], bool]] = None

    def record(self, node: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.wrapper:
            return node if self.matches is not None and self.matches(node) else None
        candidate = node.get(self.key)
        return candidate if isinstance(candidate, dict) else None


RENDERER_KINDS: Tuple[RendererKind, ...] = (
    RendererKind("playlistRenderer"),
    RendererKind("gridPlaylistRenderer"),
    RendererKind("compactPlaylistRenderer"),
    RendererKind("gridRadioRenderer"),
    RendererKind("lockupViewModel", wrapper=True, matches=_is_playlist_lockup),
)

CONTINUATION_PATHS: Tuple[Path, ...] = (
    ("nextContinuationData", "continuation"),
    ("reloadContinuationData", "continuation"),
    ("continuationEndpoint", "continuationCommand", "token"),
    ("continuationItemRenderer", "continuationEndpoint", "continuationCommand", "token"),
)

CONTAINER_PATHS: Tuple[Path, ...] = (
    ("richItemRenderer", "content"),
    ("gridRenderer", "items"),
    ("itemSectionRenderer", "contents"),
    ("shelfRenderer", "content"),
    ("horizontalListRenderer", "items"),
    ("expandedShelfContentsRenderer", "items"),
)


def continuation_token(node: Dict[str, Any]) -> Optional[str]:
    """First continuation token stored directly under ``node``, per CONTINUATION_PATHS."""
    for path in CONTINUATION_PATHS:
        token = dig(node, path)
        if isinstance(token, str) and token:
            return token
    return None


def _children(node: Any) -> Iterator[Any]:
    """Child containers of ``node``: known wrappers first, then every other dict/list value."""
    if isinstance(node, list):
        yield from (item for item in node if isinstance(item, (dict, list)))
        return
    for path in CONTAINER_PATHS:
        child = dig(node, path)
        if isinstance(child, (dict, list)):
            yield child
    for value in node.values():
        if isinstance(value, (dict, list)):
            yield value


def walk(document: Any) -> Iterator[Dict[str, Any]]:
    """Yield every dict in ``document`` once, in depth-first pre-order.

    Visited nodes are tracked by identity, so shared sub-objects are visited
    once and self-referential graphs terminate. Uses an explicit stack, so
    depth is bounded by memory rather than the interpreter's recursion limit.
    """
    if not isinstance(document, (dict, list)):
        return
    visited = set()
    stack: List[Any] = [document]
    while stack:
        node = stack.pop()
        if id(node) in visited:
            continue
        visited.add(id(node))
        if isinstance(node, dict):
            yield node
        children = list(_children(node))
        stack.extend(reversed(children))


# --- Record conversion ---

def extract_playlist_id(renderer: Any) -> Optional[str]:
    """Playlist id from a direct field, else from a navigation endpoint."""
    if not isinstance(renderer, dict):
        return None
    for path in (("playlistId",), ("contentId",),
                 ("navigationEndpoint", "watchEndpoint", "playlistId"),
                 ("onTap", "watchEndpoint", "playlistId")):
        value = dig(renderer, path)
        if isinstance(value, str) and value:
            return value
    return None


def convert_legacy_renderer(renderer: Dict[str, Any]) -> Optional[Playlist]:
    """Playlist from a playlistRenderer-style record, or None without an id."""
    playlist_id = extract_playlist_id(renderer)
    if not playlist_id:
        return None

    video_count = renderer.get("videoCount")
    if isinstance(video_count, (int, float)) and not isinstance(video_count, bool):
        item_count = parse_count(video_count)
    else:
        item_count = parse_count(
            first_text(renderer.get("videoCountShortText"), renderer.get("videoCountText"), video_count)
        )

    privacy = renderer.get("privacyStatus")
    if not isinstance(privacy, str) or not privacy:
        privacy = "private" if renderer.get("isEditable") else "unknown"

    return Playlist(
        id=playlist_id,
        title=first_text(renderer.get("title")) or DEFAULT_PLAYLIST_TITLE,
        description=first_text(renderer.get("descriptionSnippet"), renderer.get("description")) or "",
        channel_title=first_text(renderer.get("shortBylineText"), renderer.get("longBylineText")) or UNKNOWN_CHANNEL,
        privacy_status=privacy,
        item_count=item_count,
        updated_at=first_text(renderer.get("publishedTimeText"), renderer.get("thumbnailText")) or "",
        thumbnail_url=last_url(dig(renderer, ("thumbnail", "thumbnails"))),
    )


# Keyword -> status, checked in order; German terms cover the de-DE web client
PRIVACY_ROW_PATTERN = re.compile(r"\b(private|privat|public|öffentlich|unlisted|nicht gelistet)\b", re.IGNORECASE)
PRIVACY_KEYWORDS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"privat", re.IGNORECASE), "private"),
    (re.compile(r"öffentlich|public", re.IGNORECASE), "public"),
    (re.compile(r"nicht gelistet|unlisted", re.IGNORECASE), "unlisted"),
)
UPDATED_ROW_PATTERN = re.compile(r"\b(updated|aktualisiert)\b", re.IGNORECASE)
CHANNEL_ROW_PATTERN = re.compile(r"\bkanal\b|\bchannel\b", re.IGNORECASE)

LOCKUP_THUMBNAIL_PATH: Path = ("contentImage", "collectionThumbnailViewModel", "primaryThumbnail", "thumbnailViewModel")


def metadata_rows(metadata: Dict[str, Any]) -> List[str]:
    """Flatten lockup metadata rows into one text line per non-empty row."""
    rows = dig(metadata, ("metadata", "contentMetadataViewModel", "metadataRows"))
    flattened: List[str] = []
    for row in rows if isinstance(rows, list) else []:
        parts = row.get("metadataParts") if isinstance(row, dict) else None
        texts = [get_text(part.get("text")) for part in parts or [] if isinstance(part, dict)]
        combined = " ".join(text for text in texts if text).strip()
        if combined:
            flattened.append(combined)
    return flattened


def privacy_from_rows(rows: Sequence[str]) -> str:
    """Privacy status from the first row naming one, else "unknown"."""
    for row in rows:
        if PRIVACY_ROW_PATTERN.search(row):
            for pattern, status in PRIVACY_KEYWORDS:
                if pattern.search(row):
                    return status
            break
    return "unknown"


def convert_lockup(node: Dict[str, Any]) -> Optional[Playlist]:
    """Playlist from a lockupViewModel wrapper, or None without an id."""
    lockup = node.get("lockupViewModel") if isinstance(node.get("lockupViewModel"), dict) else {}
    playlist_id = extract_playlist_id(node) or extract_playlist_id(lockup)
    if not playlist_id:
        return None

    metadata = dig(lockup, ("metadata", "lockupMetadataViewModel"))
    metadata = metadata if isinstance(metadata, dict) else {}
    rows = metadata_rows(metadata)

    description = first_text(metadata.get("description")) or next((row for row in rows if len(row) > 60), "")
    updated_at = next((row for row in rows if UPDATED_ROW_PATTERN.search(row)), "")
    channel_title = next((row for row in rows if CHANNEL_ROW_PATTERN.search(row)), UNKNOWN_CHANNEL)

    thumbnail = dig(lockup, LOCKUP_THUMBNAIL_PATH)
    badge_texts = [
        get_text(dig(overlay, ("thumbnailOverlayBadgeViewModel", "thumbnailBadges", 0, "thumbnailBadgeViewModel", "text")))
        for overlay in (dig(thumbnail, ("overlays",)) or [])
    ]
    badge_text = next((text for text in badge_texts if text), None)

    return Playlist(
        id=playlist_id,
        title=first_text(metadata.get("title"), lockup.get("title")) or DEFAULT_PLAYLIST_TITLE,
        description=description,
        channel_title=channel_title,
        privacy_status=privacy_from_rows(rows),
        item_count=parse_count(badge_text),
        updated_at=updated_at,
        thumbnail_url=last_url(dig(thumbnail, ("image", "sources"))),
    )


def convert_record(kind: RendererKind, record: Dict[str, Any]) -> Optional[Playlist]:
    if kind.wrapper:
        return convert_lockup(record)
    return convert_legacy_renderer(record)


# --- Page extraction ---

@dataclass
class BrowsePage:
    """Playlists found in one browse response and the next continuation token."""

    playlists: List[Playlist] = field(default_factory=list)
    continuation: Optional[str] = None


def extract_browse_page(document: Any) -> BrowsePage:
    """Collect playlists and the first continuation token from a browse response.

    Records are returned in discovery order, de-duplicated by id (first seen
    wins). Only the first continuation token in traversal order is kept, even
    when several shelves carry one.
    """
    page = BrowsePage()
    seen_ids = set()
    renderers_seen = 0

    for node in walk(document):
        for kind in RENDERER_KINDS:
            record = kind.record(node)
            if record is None:
                continue
            renderers_seen += 1
            playlist = convert_record(kind, record)
            if playlist is None or playlist.id in seen_ids:
                continue
            seen_ids.add(playlist.id)
            page.playlists.append(playlist)

        if page.continuation is None:
            page.continuation = continuation_token(node)

    logger.debug(
        "Extracted browse page",
        renderers=renderers_seen,
        playlists=len(page.playlists),
        has_continuation=page.continuation is not None,
    )
    return page
