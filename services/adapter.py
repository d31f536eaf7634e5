#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Playlist adapter: the single entry point callers use.

Validates the caller's headers, picks the backend their Authorization value
selects, delegates to that client and falls back from the official Data API
to the internal API once when the official path rejects the credentials
before returning any data.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

from config import Config
from exceptions import AppBaseError, CancellationError, UpstreamError, ValidationError, classify_exception
from logging_config import StructuredLogger
from models import Backend, HeaderClassification, Playlist
from services.headers import PreparedHeaders, classify_headers, coerce_headers, prepare_headers, select_backend
from services.internal_api import InternalApiClient
from services.official_api import OfficialApiClient
from utils import CancellationToken

logger = StructuredLogger(__name__)

RawHeaders = Union[str, Mapping[str, str]]
ProgressCallback = Callable[[int, int, str], Optional[Awaitable[None]]]

BATCH_COMPLETED = "completed"
BATCH_FAILED = "failed"
BATCH_CANCELLED = "cancelled"


@dataclass
class BatchDeleteResult:
    """Outcome of a sequential batch delete. Deletions are never rolled back."""

    status: str
    total: int
    completed: int = 0
    deleted_ids: List[str] = field(default_factory=list)
    failed_id: Optional[str] = None
    error: Optional[AppBaseError] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "total": self.total,
            "completed": self.completed,
            "deleted_ids": list(self.deleted_ids),
            "failed_id": self.failed_id,
            "error": self.error.message if self.error else None,
            "error_code": self.error.error_code if self.error else None,
        }


class PlaylistAdapter:
    """Façade over the official and internal playlist clients."""

    def __init__(self, official: OfficialApiClient, internal: InternalApiClient,
                 settings: Config):
        self.official = official
        self.internal = internal
        self.settings = settings

    def _client_for(self, backend: Backend):
        return self.official if backend is Backend.OFFICIAL else self.internal

    def inspect_headers(self, headers: RawHeaders) -> HeaderClassification:
        """Classify headers without touching the network."""
        normalized, _ = coerce_headers(headers)
        return classify_headers(normalized)

    def _prepare(self, headers: RawHeaders) -> Tuple[Backend, PreparedHeaders]:
        """Validate and prepare caller headers.

        Raises:
            ValidationError: On unparsable lines, missing or malformed credentials
        """
        normalized, parse_errors = coerce_headers(headers)
        if parse_errors:
            raise ValidationError(parse_errors[0], problems=parse_errors)
        backend = select_backend(classify_headers(normalized))
        return backend, prepare_headers(normalized, self.settings)

    @staticmethod
    def _should_fall_back(backend: Backend, error: UpstreamError) -> bool:
        # Only a rejection before any page arrived; a mid-pagination 401 is surfaced
        return backend is Backend.OFFICIAL and error.is_auth_failure and error.pages_fetched == 0

    async def list_playlists(self, headers: RawHeaders,
                             cancellation: Optional[CancellationToken] = None) -> List[Playlist]:
        """List every playlist of the authenticated account.

        Args:
            headers: Pasted header block or header mapping
            cancellation: Optional token aborting the operation

        Returns:
            List[Playlist]: Upstream order for the official backend, discovery
            order de-duplicated by id for the internal one

        Raises:
            ValidationError, UpstreamError, CancellationError, UnknownError
        """
        _, playlists = await self.list_playlists_with_backend(headers, cancellation)
        return playlists

    async def list_playlists_with_backend(self, headers: RawHeaders,
                                          cancellation: Optional[CancellationToken] = None
                                          ) -> Tuple[Backend, List[Playlist]]:
        """Like list_playlists, also returning the backend that served the listing.

        After a fallback this is the internal backend, not the classified one.
        """
        backend, prepared = self._prepare(headers)
        logger.info("Listing playlists", backend=backend.value)
        try:
            try:
                return backend, await self._client_for(backend).list_playlists(prepared, cancellation)
            except UpstreamError as e:
                if not self._should_fall_back(backend, e):
                    raise
                logger.warning(
                    f"Data API rejected the credentials ({e.status}); retrying with the internal API.",
                    status=e.status,
                )
                return Backend.INTERNAL, await self.internal.list_playlists(prepared, cancellation)
        except AppBaseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error while listing playlists: {e}")
            raise classify_exception(e) from e

    async def _delete_prepared(self, playlist_id: str, backend: Backend, prepared: PreparedHeaders,
                               cancellation: Optional[CancellationToken]) -> None:
        try:
            try:
                await self._client_for(backend).delete_playlist(playlist_id, prepared, cancellation)
            except UpstreamError as e:
                if not self._should_fall_back(backend, e):
                    raise
                logger.warning(
                    f"Data API rejected the delete ({e.status}); retrying with the internal API.",
                    status=e.status,
                    playlist_id=playlist_id,
                )
                await self.internal.delete_playlist(playlist_id, prepared, cancellation)
        except AppBaseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error while deleting playlist {playlist_id}: {e}")
            raise classify_exception(e) from e

    async def delete_playlist(self, playlist_id: str, headers: RawHeaders,
                              cancellation: Optional[CancellationToken] = None) -> None:
        """Delete one playlist, with the same backend selection and fallback as listing."""
        backend, prepared = self._prepare(headers)
        if cancellation is not None:
            cancellation.raise_if_cancelled("delete_playlist")
        await self._delete_prepared(playlist_id, backend, prepared, cancellation)

    @staticmethod
    async def _report_progress(on_progress: ProgressCallback, result: BatchDeleteResult,
                               playlist_id: str, batch_logger: StructuredLogger) -> None:
        # Deletes already happened upstream; a broken callback must not lose the result
        try:
            outcome: Any = on_progress(result.completed, result.total, playlist_id)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            batch_logger.error(
                f"Progress callback failed after deleting {playlist_id}: {e}",
                playlist_id=playlist_id,
                completed=result.completed,
            )

    async def delete_playlists(self, playlist_ids: List[str], headers: RawHeaders,
                               cancellation: Optional[CancellationToken] = None,
                               on_progress: Optional[ProgressCallback] = None) -> BatchDeleteResult:
        """Delete playlists one after another, halting at the first failure.

        Headers are validated once up front; a ValidationError is raised
        before any request is made. Every other failure ends the batch and is
        reported in the result, including cancellation.

        Args:
            playlist_ids: Ids in deletion order
            headers: Pasted header block or header mapping
            cancellation: Checked before each item and raced against each request
            on_progress: Called (or awaited) as ``on_progress(completed, total, id)``
                after each successful delete; its errors are logged and do not
                end the batch

        Returns:
            BatchDeleteResult
        """
        backend, prepared = self._prepare(headers)
        result = BatchDeleteResult(status=BATCH_COMPLETED, total=len(playlist_ids))
        batch_logger = logger.bind(backend=backend.value, total=result.total)
        batch_logger.info(f"Deleting {result.total} playlists")

        for playlist_id in playlist_ids:
            try:
                if cancellation is not None:
                    cancellation.raise_if_cancelled("delete_playlists")
                await self._delete_prepared(playlist_id, backend, prepared, cancellation)
            except CancellationError as e:
                result.status = BATCH_CANCELLED
                result.error = e
                break
            except AppBaseError as e:
                result.status = BATCH_FAILED
                result.failed_id = playlist_id
                result.error = e
                batch_logger.warning(
                    f"Batch delete halted at {playlist_id}: {e.message}",
                    playlist_id=playlist_id,
                    completed=result.completed,
                    error_code=e.error_code,
                )
                break

            result.completed += 1
            result.deleted_ids.append(playlist_id)
            if on_progress is not None:
                await self._report_progress(on_progress, result, playlist_id, batch_logger)

        batch_logger.info(
            f"Batch delete {result.status}: {result.completed}/{result.total}",
            status=result.status,
            completed=result.completed,
        )
        return result
