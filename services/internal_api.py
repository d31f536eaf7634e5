#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
InnerTube (youtubei/v1) client for Playlist Purge.

Talks to the undocumented API the youtube.com web client uses, authenticated
with the session cookie and SAPISIDHASH header copied from the browser. Every
request carries a client-context block derived from those headers.
"""

import re
from typing import Any, Dict, List, Optional

import httpx

from config import Config
from exceptions import UpstreamError
from logging_config import StructuredLogger
from models import Backend, Playlist
from services.extractor import extract_browse_page
from services.headers import CLIENT_NAME, CLIENT_VERSION, VISITOR_ID, PreparedHeaders
from services.upstream import build_endpoint, error_message_from_body
from utils import CancellationToken, performance_timer, run_cancellable

logger = StructuredLogger(__name__)

PLAYLIST_BROWSE_ID = "FEplaylist_aggregation"
PLAYLISTS_FEED_PATH = "/feed/playlists"
DEFAULT_LOCALE = "en-US"
DEFAULT_REGION = "US"

CLIENT_NAME_BY_CODE: Dict[str, str] = {
    "1": "WEB",
    "2": "ANDROID",
    "3": "IOS",
    "7": "WEB_REMIX",
    "67": "WEB_REMIX",
}

REGION_PATTERN = re.compile(r"-([a-zA-Z]{2})(?![a-zA-Z])")


def _first_language(accept_language: Optional[str]) -> str:
    """First Accept-Language entry without its quality parameter."""
    first = (accept_language or "").split(",")[0]
    return first.split(";")[0].strip()


def extract_hl(accept_language: Optional[str]) -> str:
    """Interface locale (``hl``) from an Accept-Language value."""
    return _first_language(accept_language) or DEFAULT_LOCALE


def extract_gl(accept_language: Optional[str]) -> str:
    """Two-letter region (``gl``) from the first Accept-Language entry."""
    match = REGION_PATTERN.search(_first_language(accept_language))
    return match.group(1).upper() if match else DEFAULT_REGION


def build_client_context(prepared: PreparedHeaders, settings: Config) -> Dict[str, Any]:
    """The ``context`` block every InnerTube request carries.

    Mirrors what the desktop web client sends; upstream rejects or degrades
    requests whose context does not look like one. ``visitorData`` and
    ``userAgent`` are left out when the headers do not supply them.
    """
    client_name_code = prepared.get(CLIENT_NAME, settings.DEFAULT_CLIENT_NAME_CODE)
    client_name = CLIENT_NAME_BY_CODE.get(
        client_name_code, CLIENT_NAME_BY_CODE.get(settings.DEFAULT_CLIENT_NAME_CODE, "WEB")
    )
    accept_language = prepared.get("Accept-Language", DEFAULT_LOCALE)
    origin = prepared.get("X-Origin") or prepared.get("Origin") or settings.DEFAULT_ORIGIN

    client: Dict[str, Any] = {
        "clientName": client_name,
        "clientVersion": prepared.get(CLIENT_VERSION, settings.DEFAULT_CLIENT_VERSION),
        "hl": extract_hl(accept_language),
        "gl": extract_gl(accept_language),
    }
    visitor_data = prepared.get(VISITOR_ID)
    if visitor_data:
        client["visitorData"] = visitor_data
    user_agent = prepared.get("User-Agent")
    if user_agent:
        client["userAgent"] = user_agent
    client.update({
        "platform": "DESKTOP",
        "clientFormFactor": "UNKNOWN_FORM_FACTOR",
        "mainAppWebInfo": {
            "graftUrl": PLAYLISTS_FEED_PATH,
            "webDisplayMode": "WEB_DISPLAY_MODE_BROWSER",
            "isWebNativeShareAvailable": False,
        },
        "originalUrl": f"{origin.rstrip('/')}{PLAYLISTS_FEED_PATH}",
    })

    return {
        "client": client,
        "request": {"useSsl": True},
        "user": {"enableSafetyMode": False},
    }


def build_browse_payload(prepared: PreparedHeaders, settings: Config,
                         continuation: Optional[str] = None) -> Dict[str, Any]:
    """Browse body: the playlists feed, or the page behind ``continuation``."""
    context = build_client_context(prepared, settings)
    if continuation:
        return {"context": context, "continuation": continuation}
    return {"context": context, "browseId": PLAYLIST_BROWSE_ID}


class InternalApiClient:
    """Client for the InnerTube browse and playlist/delete endpoints.

    Each public call opens its own ``httpx.AsyncClient``; ``transport`` lets
    tests and embedders substitute the network layer.
    """

    backend = Backend.INTERNAL

    def __init__(self, settings: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        logger.info("Internal API client initialized.", base=settings.internal_api_base)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.API_TIMEOUT_SECONDS),
        )

    def _endpoint(self, path: str) -> str:
        return build_endpoint(self.settings.internal_api_base, path, {"prettyPrint": "false"})

    async def _post(self, client: httpx.AsyncClient, path: str, payload: Dict[str, Any],
                    prepared: PreparedHeaders, cancellation: Optional[CancellationToken],
                    pages_fetched: int = 0) -> Any:
        """POST ``payload`` and return the decoded body.

        Raises:
            UpstreamError: For any non-2xx response
            CancellationError: If ``cancellation`` fires first
        """
        url = self._endpoint(path)
        with performance_timer(f"internal_api.{path}"):
            response = await run_cancellable(
                client.post(url, json=payload, headers=prepared.wire),
                cancellation,
                f"internal_api.{path}",
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body = response.json()
            except ValueError:
                body = response.text
        else:
            body = response.text

        if not response.is_success:
            message = error_message_from_body(body, default=response.reason_phrase or "Unknown error")
            logger.warning(
                f"Internal API returned {response.status_code} for {path}",
                status=response.status_code,
                path=path,
            )
            raise UpstreamError(response.status_code, message, backend=self.backend.value,
                                pages_fetched=pages_fetched)
        return body

    async def list_playlists(self, prepared: PreparedHeaders,
                             cancellation: Optional[CancellationToken] = None) -> List[Playlist]:
        """All playlists of the account, in discovery order, de-duplicated by id.

        Pages are fetched strictly one after another because each request
        needs the continuation token of the previous response.
        """
        playlists: List[Playlist] = []
        seen_ids = set()
        used_tokens = set()
        continuation: Optional[str] = None
        pages = 0

        async with self._client() as client:
            while True:
                if cancellation is not None:
                    cancellation.raise_if_cancelled("internal_api.list")

                payload = build_browse_payload(prepared, self.settings, continuation)
                data = await self._post(client, "browse", payload, prepared, cancellation, pages_fetched=pages)
                pages += 1

                page = extract_browse_page(data)
                for playlist in page.playlists:
                    if playlist.id not in seen_ids:
                        seen_ids.add(playlist.id)
                        playlists.append(playlist)

                logger.debug(
                    f"Internal API page {pages}: {len(page.playlists)} playlists",
                    page=pages,
                    total=len(playlists),
                )

                if continuation is not None:
                    used_tokens.add(continuation)
                continuation = page.continuation
                if not continuation:
                    break
                if continuation in used_tokens:
                    logger.warning("Internal API repeated a continuation token; stopping pagination.", page=pages)
                    break

        logger.info(f"Fetched {len(playlists)} playlists from the internal API in {pages} page(s).",
                    playlists=len(playlists), pages=pages)
        return playlists

    async def delete_playlist(self, playlist_id: str, prepared: PreparedHeaders,
                              cancellation: Optional[CancellationToken] = None) -> None:
        """Delete one playlist through the playlist/delete action."""
        payload = {
            "context": build_client_context(prepared, self.settings),
            "playlistId": playlist_id,
        }
        async with self._client() as client:
            await self._post(client, "playlist/delete", payload, prepared, cancellation)
        logger.info("Deleted playlist through the internal API.", playlist_id=playlist_id)
