#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
YouTube Data API v3 client for Playlist Purge.

Authenticates with the caller's OAuth bearer token (passed through as a
header, not as google-auth credentials) and runs the blocking
googleapiclient requests in a worker thread.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import httplib2
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from config import Config
from exceptions import APIConfigurationError, UpstreamError
from logging_config import StructuredLogger
from models import DEFAULT_PLAYLIST_TITLE, Backend, Playlist
from services.headers import PreparedHeaders
from services.upstream import error_message_from_body
from utils import CancellationToken, performance_timer, run_cancellable

logger = StructuredLogger(__name__)

PLAYLIST_PARTS = "snippet,contentDetails,status"
MAX_RESULTS_PER_PAGE = 50
THUMBNAIL_PREFERENCE = ("standard", "high", "medium", "default")


def best_thumbnail(thumbnails: Optional[Dict[str, Any]]) -> Optional[str]:
    """URL of the preferred thumbnail size, or None."""
    for size in THUMBNAIL_PREFERENCE:
        entry = (thumbnails or {}).get(size)
        if isinstance(entry, dict) and entry.get("url"):
            return entry["url"]
    return None


def playlist_from_resource(item: Dict[str, Any]) -> Optional[Playlist]:
    """Convert a Data API playlist resource; None when it has no id."""
    playlist_id = item.get("id")
    if not playlist_id:
        return None
    snippet = item.get("snippet") or {}
    return Playlist(
        id=playlist_id,
        title=snippet.get("title") or DEFAULT_PLAYLIST_TITLE,
        description=snippet.get("description") or "",
        channel_title=snippet.get("channelTitle") or "",
        privacy_status=(item.get("status") or {}).get("privacyStatus") or "unknown",
        item_count=(item.get("contentDetails") or {}).get("itemCount") or 0,
        updated_at=snippet.get("publishedAt") or "",
        thumbnail_url=best_thumbnail(snippet.get("thumbnails")),
    )


class OfficialApiClient:
    """Client for the playlists collection of the YouTube Data API.

    Args:
        settings: Supplies the endpoint and request timeout
        http_factory: Returns the httplib2-compatible transport for each
            operation; tests pass a scripted one
    """

    backend = Backend.OFFICIAL

    def __init__(self, settings: Config, http_factory: Optional[Callable[[], Any]] = None):
        self.settings = settings
        self._http_factory = http_factory or self._default_http
        logger.info("Official API client initialized.", endpoint=settings.official_api_endpoint)

    def _default_http(self) -> httplib2.Http:
        return httplib2.Http(timeout=self.settings.API_TIMEOUT_SECONDS)

    def _service(self) -> Resource:
        """Build the youtube/v3 resource from the bundled discovery document.

        Raises:
            APIConfigurationError: If the service object cannot be built
        """
        try:
            return build(
                "youtube", "v3",
                http=self._http_factory(),
                cache_discovery=False,
                static_discovery=True,
                client_options={"api_endpoint": self.settings.official_api_endpoint},
            )
        except Exception as e:
            logger.error(f"Failed to build YouTube Data API service: {e}")
            raise APIConfigurationError(f"Failed to initialize YouTube Data API client: {e}") from e

    async def _execute(self, request: Any, prepared: PreparedHeaders, operation: str,
                       cancellation: Optional[CancellationToken], pages_fetched: int = 0) -> dict:
        """Execute a prepared googleapiclient request off the event loop.

        Raises:
            UpstreamError: For a non-2xx response
            CancellationError: If ``cancellation`` fires first
        """
        request.headers.update(prepared.wire)
        try:
            with performance_timer(f"official_api.{operation}"):
                response = await run_cancellable(asyncio.to_thread(request.execute), cancellation,
                                                 f"official_api.{operation}")
        except HttpError as http_err:
            status_code = int(getattr(http_err.resp, "status", 500))
            message = error_message_from_body(http_err.content, default=http_err.resp.reason or "Unknown error")
            logger.warning(
                f"YouTube Data API returned {status_code} for {operation}",
                status=status_code,
                operation=operation,
            )
            raise UpstreamError(status_code, message, backend=self.backend.value,
                                pages_fetched=pages_fetched) from http_err
        return response or {}

    async def list_playlists(self, prepared: PreparedHeaders,
                             cancellation: Optional[CancellationToken] = None) -> List[Playlist]:
        """All playlists owned by the authenticated user, following nextPageToken."""
        service = self._service()
        playlists: List[Playlist] = []
        page_token: Optional[str] = None
        pages = 0

        while True:
            if cancellation is not None:
                cancellation.raise_if_cancelled("official_api.list")

            request = service.playlists().list(
                part=PLAYLIST_PARTS,
                mine=True,
                maxResults=MAX_RESULTS_PER_PAGE,
                pageToken=page_token,
            )
            data = await self._execute(request, prepared, "list", cancellation, pages_fetched=pages)
            pages += 1

            for item in data.get("items") or []:
                playlist = playlist_from_resource(item)
                if playlist is not None:
                    playlists.append(playlist)

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(playlists)} playlists from the Data API in {pages} page(s).",
                    playlists=len(playlists), pages=pages)
        return playlists

    async def delete_playlist(self, playlist_id: str, prepared: PreparedHeaders,
                              cancellation: Optional[CancellationToken] = None) -> None:
        """Delete one playlist; the API answers 204 No Content."""
        request = self._service().playlists().delete(id=playlist_id)
        await self._execute(request, prepared, "delete", cancellation)
        logger.info("Deleted playlist through the Data API.", playlist_id=playlist_id)
