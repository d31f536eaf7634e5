#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Custom exception classes and error handling utilities for Playlist Purge.

Every failure the adapter reports falls into one of four kinds: validation
(bad or missing credentials, never sent upstream), upstream (non-2xx HTTP
response), cancellation (caller-initiated abort) and unknown (anything else).
"""

from typing import List, Optional
from fastapi import HTTPException, status

HTTP_499_CLIENT_CLOSED_REQUEST = 499


# --- Base Exception Class ---

class AppBaseError(Exception):
    """Base class for all application-specific exceptions.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        http_status_code: HTTP status code to use in API responses
        retry_after: Optional seconds to wait before retrying
    """

    def __init__(self, message: str, error_code: Optional[str] = None,
                http_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
                retry_after: Optional[int] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            http_status_code: HTTP status code to use in API responses
            retry_after: Optional seconds to wait before retrying
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.http_status_code = http_status_code
        self.retry_after = retry_after
        super().__init__(message)

    def to_http_exception(self) -> HTTPException:
        """Convert this exception to a FastAPI HTTPException.

        Returns:
            HTTPException: FastAPI exception with appropriate status and headers
        """
        headers = {"X-Error-Code": self.error_code}
        if self.retry_after:
            headers["Retry-After"] = str(self.retry_after)

        return HTTPException(
            status_code=self.http_status_code,
            detail=self.message,
            headers=headers
        )


# --- Adapter Error Taxonomy ---

class ValidationError(AppBaseError):
    """Raised before any network call when credentials are missing or malformed."""

    def __init__(self, message: str = "Invalid request headers",
                 problems: Optional[List[str]] = None,
                 error_code: str = "INVALID_HEADERS"):
        self.problems = list(problems) if problems else [message]
        super().__init__(
            message=message,
            error_code=error_code,
            http_status_code=status.HTTP_400_BAD_REQUEST
        )


class HeaderConfigurationError(ValidationError):
    """Raised when the merged headers still lack an Authorization value."""

    def __init__(self, message: str = "Authorization header is required."):
        super().__init__(message=message, error_code="HEADER_CONFIG_ERROR")


class UpstreamError(AppBaseError):
    """Raised for a non-2xx response from either upstream API.

    Attributes:
        status: HTTP status returned by the upstream service
        backend: Which backend produced the response ("official" or "internal")
        pages_fetched: Pages already received in the same call before the failure
    """

    def __init__(self, status_code: int, message: str = "", backend: Optional[str] = None,
                 pages_fetched: int = 0):
        self.status = status_code
        self.backend = backend
        self.pages_fetched = pages_fetched
        label = "YouTube Data API" if backend == "official" else "YouTube internal API"
        super().__init__(
            message=f"{label} error ({status_code}): {message or 'Unknown error'}",
            error_code="UPSTREAM_ERROR",
            http_status_code=status.HTTP_502_BAD_GATEWAY
        )
        self.upstream_message = message

    @property
    def is_auth_failure(self) -> bool:
        """True for 401/403, the statuses that trigger the cross-backend fallback."""
        return self.status in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


class CancellationError(AppBaseError):
    """Raised when the caller aborts an operation through its cancellation token."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(
            message=message,
            error_code="CANCELLED",
            http_status_code=HTTP_499_CLIENT_CLOSED_REQUEST
        )


class UnknownError(AppBaseError):
    """Wraps any failure that is not validation, upstream or cancellation."""

    def __init__(self, message: str = "Unknown error while talking to YouTube"):
        super().__init__(
            message=message,
            error_code="UNKNOWN_ERROR",
            http_status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class APIConfigurationError(AppBaseError):
    """Raised when a client cannot be constructed from the configuration."""

    def __init__(self, message: str = "API configuration error"):
        super().__init__(
            message=message,
            error_code="API_CONFIG_ERROR",
            http_status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


# --- Error Handling Utilities ---

def classify_exception(exception: Exception) -> AppBaseError:
    """Map any exception onto the adapter's error taxonomy.

    Args:
        exception: The exception to classify

    Returns:
        AppBaseError: The exception itself if already classified, otherwise an UnknownError
    """
    if isinstance(exception, AppBaseError):
        return exception
    return UnknownError(f"Unexpected {type(exception).__name__} while talking to YouTube")


def handle_exception(exception: Exception) -> HTTPException:
    """Convert any exception to an appropriate HTTPException.

    Args:
        exception: The exception to handle

    Returns:
        HTTPException: FastAPI exception with appropriate status and headers
    """
    if isinstance(exception, AppBaseError):
        # Our custom exceptions already know how to convert themselves
        return exception.to_http_exception()

    elif isinstance(exception, ValueError):
        return ValidationError(str(exception)).to_http_exception()

    elif isinstance(exception, HTTPException):
        # Already a FastAPI HTTPException, just return it
        return exception

    else:
        # Unknown exception, treat as internal server error
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {type(exception).__name__}",
            headers={"X-Error-Code": "INTERNAL_SERVER_ERROR"}
        )
