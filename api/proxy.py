#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Local development proxy for the two YouTube hosts.

Mounted only when USE_DEV_PROXY is enabled. A browser front end on the same
origin cannot set Cookie, Origin, Referer or User-Agent itself, so it sends
them under X-YouTube-Proxy-* names; the proxy restores the real names before
forwarding.
"""

from typing import Optional

import httpx
from fastapi import APIRouter, Request, Response

from config import Config
from logging_config import StructuredLogger
from services.headers import is_dropped_header, restore_carrier_headers

logger = StructuredLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# Response headers that describe the upstream connection, not the body we relay
HOP_BY_HOP_RESPONSE_HEADERS = frozenset({
    "connection", "content-encoding", "content-length", "keep-alive",
    "transfer-encoding", "set-cookie", "alt-svc",
})


async def forward(request: Request, target: str, path: str, settings: Config,
                  supply_browser_defaults: bool,
                  transport: Optional[httpx.AsyncBaseTransport] = None) -> Response:
    """Relay ``request`` to ``target/path`` and return the upstream response."""
    headers = {
        name: value
        for name, value in restore_carrier_headers(
            request.headers, settings, supply_browser_defaults=supply_browser_defaults
        ).items()
        if not is_dropped_header(name)
    }
    url = f"{target.rstrip('/')}/{path.lstrip('/')}"
    body = await request.body()

    async with httpx.AsyncClient(transport=transport, timeout=settings.API_TIMEOUT_SECONDS) as client:
        try:
            upstream = await client.request(
                request.method, url,
                params=list(request.query_params.multi_items()),
                content=body or None,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Dev proxy request to {target} failed: {e}", exc_info=False, path=path)
            return Response(
                content=b'{"error": {"message": "Upstream unreachable"}}',
                status_code=502,
                media_type="application/json",
            )

    logger.debug(
        f"Dev proxy {request.method} {url} -> {upstream.status_code}",
        status=upstream.status_code,
        header_names=sorted(headers),
    )
    response_headers = {
        name: value for name, value in upstream.headers.items()
        if name.lower() not in HOP_BY_HOP_RESPONSE_HEADERS
    }
    return Response(content=upstream.content, status_code=upstream.status_code, headers=response_headers)


def build_proxy_router(settings: Config,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> APIRouter:
    """Router exposing /yt-api/{path} and /yt-inner/{path}."""
    router = APIRouter(include_in_schema=False)

    @router.api_route("/yt-api/{path:path}", methods=PROXY_METHODS)
    async def official_proxy(path: str, request: Request):
        return await forward(request, settings.PROXY_OFFICIAL_TARGET, path, settings,
                             supply_browser_defaults=False, transport=transport)

    @router.api_route("/yt-inner/{path:path}", methods=PROXY_METHODS)
    async def internal_proxy(path: str, request: Request):
        return await forward(request, settings.PROXY_INTERNAL_TARGET, path, settings,
                             supply_browser_defaults=True, transport=transport)

    return router
