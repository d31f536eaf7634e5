#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
API Routes for Playlist Purge using FastAPI.

Defines endpoints for header inspection, playlist listing, batch deletion and
health checks.
"""

import asyncio
import json
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from __init__ import __version__ as app_version
from api.dependencies import get_adapter, get_settings
from config import Config
from exceptions import handle_exception
from logging_config import StructuredLogger
from middleware import request_metrics
from models import (BatchDeleteResponse, DeletePlaylistsRequest, ErrorResponse, HeaderInspectionResponse,
                    HeadersRequest, PlaylistModel, PlaylistsResponse)
from services.adapter import PlaylistAdapter
from services.headers import classify_headers, coerce_headers
from utils import CancellationToken

logger = StructuredLogger(__name__)

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.5

# Define common error responses for OpenAPI documentation
ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing or malformed credentials"},
    413: {"model": ErrorResponse, "description": "Request entity too large"},
    499: {"model": ErrorResponse, "description": "Operation cancelled"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    502: {"model": ErrorResponse, "description": "YouTube returned an error"},
    503: {"model": ErrorResponse, "description": "Service unavailable (initialization failed)"}
}


def _raise_http_error(e: Exception, operation: str):
    """Log ``e`` and re-raise it as an HTTPException."""
    if isinstance(e, HTTPException):
        logger.error(f"HTTPException during {operation}: Status={e.status_code}, Detail='{e.detail}'", exc_info=False)
    elif hasattr(e, "error_code"):
        logger.warning(f"{type(e).__name__} during {operation}: {e}", error_code=e.error_code)
    else:
        logger.critical(f"Unexpected error during {operation}: {e}")
    raise handle_exception(e) from e


async def _cancel_on_disconnect(request: Request, cancellation: CancellationToken,
                                interval: float = DISCONNECT_POLL_SECONDS) -> None:
    """Cancel ``cancellation`` once the HTTP client goes away."""
    while not cancellation.cancelled:
        if await request.is_disconnected():
            logger.info("Client disconnected; cancelling operation.", path=request.url.path)
            cancellation.cancel("client disconnected")
            return
        await asyncio.sleep(interval)


@router.get(
    "/health",
    summary="Health Check",
    description="Reports service version, active configuration and request metrics."
)
async def health_check(
    adapter: PlaylistAdapter = Depends(get_adapter),  # pylint: disable=unused-argument
    settings: Config = Depends(get_settings)
):
    """Endpoint to check service health and retrieve operational statistics."""
    logger.debug("Health check endpoint requested.")
    health_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service_version": app_version,
        "config": settings.summary(),
        "statistics": request_metrics.get_stats(),
    }
    return Response(
        content=json.dumps(health_data, default=str),
        status_code=status.HTTP_200_OK,
        media_type="application/json"
    )


@router.post(
    "/headers/inspect",
    response_model=HeaderInspectionResponse,
    responses=ERROR_RESPONSES,
    summary="Inspect pasted headers",
    description="Parses and classifies request headers without contacting YouTube."
)
async def inspect_headers(request: HeadersRequest):
    """Report which backend the headers select and what they are missing."""
    headers, parse_errors = coerce_headers(request.headers)
    classification = classify_headers(headers)
    logger.info(
        "Inspected headers",
        header_names=sorted(headers),
        backend=classification.backend.value if classification.backend else None,
    )
    return HeaderInspectionResponse(
        backend=classification.backend.value if classification.backend else None,
        header_names=sorted(headers),
        parse_errors=parse_errors,
        missing_required=classification.missing_required,
        advisory=classification.advisory,
        errors=classification.errors,
        ready=classification.is_valid and not parse_errors,
    )


@router.post(
    "/playlists",
    response_model=PlaylistsResponse,
    responses=ERROR_RESPONSES,
    summary="List playlists",
    description="Lists every playlist of the account the pasted credentials belong to."
)
async def list_playlists(
    request: HeadersRequest,
    http_request: Request,
    adapter: PlaylistAdapter = Depends(get_adapter)
):
    """API endpoint listing the caller's playlists through the selected backend."""
    start_time = time.monotonic()
    cancellation = CancellationToken()
    watcher = asyncio.create_task(_cancel_on_disconnect(http_request, cancellation))
    try:
        backend, playlists = await adapter.list_playlists_with_backend(request.headers, cancellation)
    except Exception as e:
        _raise_http_error(e, "/playlists")
    finally:
        watcher.cancel()

    processing_time_ms = round((time.monotonic() - start_time) * 1000, 2)
    logger.info(
        f"Listed {len(playlists)} playlists in {processing_time_ms}ms",
        count=len(playlists),
        processing_time_ms=processing_time_ms,
    )
    return PlaylistsResponse(
        backend=backend.value,
        count=len(playlists),
        playlists=[PlaylistModel(**playlist.to_dict()) for playlist in playlists],
        processing_time_ms=processing_time_ms,
    )


@router.post(
    "/playlists/delete",
    response_model=BatchDeleteResponse,
    responses=ERROR_RESPONSES,
    summary="Delete playlists",
    description="Deletes the given playlists one at a time. Stops at the first failure; "
                "closing the connection cancels the remaining deletions."
)
async def delete_playlists(
    request: DeletePlaylistsRequest,
    http_request: Request,
    adapter: PlaylistAdapter = Depends(get_adapter)
):
    """API endpoint running a sequential batch delete."""
    cancellation = CancellationToken()
    watcher = asyncio.create_task(_cancel_on_disconnect(http_request, cancellation))
    try:
        result = await adapter.delete_playlists(request.playlist_ids, request.headers, cancellation)
    except Exception as e:
        _raise_http_error(e, "/playlists/delete")
    finally:
        watcher.cancel()

    return BatchDeleteResponse(**result.to_dict())
