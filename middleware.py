#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Middleware classes for Playlist Purge.

Includes request-size limits, security headers and metrics collection.
"""

import time
from collections import defaultdict, deque
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from config import config
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

SLOW_RESPONSE_MS = 3000


class RequestMetrics:
    """Request counters shared between the middleware and the /health route."""

    # Limit the size of response times deque to prevent unbounded memory growth
    MAX_RESPONSE_TIMES = 1000

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.stats = {
            "total_requests": 0,
            "success_requests": 0,
            "client_error_requests": 0,
            "server_error_requests": 0,
            "status_codes": defaultdict(int),
            "paths": defaultdict(int),
            "response_times_ms": deque(maxlen=self.MAX_RESPONSE_TIMES),
            "start_time": time.monotonic()
        }

    def record(self, path: str, status_code: int, duration_ms: float) -> None:
        self.stats["total_requests"] += 1
        if 200 <= status_code < 400:
            self.stats["success_requests"] += 1
        elif 400 <= status_code < 500:
            self.stats["client_error_requests"] += 1
        else:
            self.stats["server_error_requests"] += 1
        self.stats["status_codes"][status_code] += 1
        self.stats["paths"][path] += 1
        self.stats["response_times_ms"].append(duration_ms)

    def get_stats(self) -> Dict[str, Any]:
        """Get collected metrics statistics."""
        response_times = list(self.stats["response_times_ms"])
        uptime = time.monotonic() - self.stats["start_time"]
        total_requests = self.stats["total_requests"]

        metrics = {
            "uptime_seconds": round(uptime, 1),
            "total_requests": total_requests,
            "requests_per_second": round(total_requests / max(1, uptime), 2),
            "success_requests": self.stats["success_requests"],
            "client_error_requests": self.stats["client_error_requests"],
            "server_error_requests": self.stats["server_error_requests"],
            "status_codes": dict(self.stats["status_codes"]),
            "top_paths": dict(
                sorted(self.stats["paths"].items(), key=lambda item: item[1], reverse=True)[:10]
            ),
        }

        if response_times:
            count = len(response_times)
            sorted_times = sorted(response_times)
            p95 = sorted_times[int(count * 0.95)] if count > 20 else None
            metrics["response_time_stats_ms"] = {
                "count": count,
                "average": round(sum(response_times) / count, 2),
                "min": round(sorted_times[0], 2),
                "max": round(sorted_times[-1], 2),
                "p95": round(p95, 2) if p95 is not None else None,
            }
        else:
            metrics["response_time_stats_ms"] = {"count": 0}

        return metrics


# Shared with api/routes.py
request_metrics = RequestMetrics()


class SecurityAndMetricsMiddleware(BaseHTTPMiddleware):
    """Combined middleware for security checks, response headers, and metrics collection.

    Handles:
    1. Content length limits for request bodies
    2. Security and no-store cache headers (responses embed account data)
    3. Metrics collection for request/response statistics
    """

    def __init__(self, app: FastAPI, max_content_length: int = config.MAX_CONTENT_LENGTH,
                 metrics: Optional[RequestMetrics] = None):
        """Initialize the combined middleware.

        Args:
            app: The FastAPI application instance
            max_content_length: Maximum allowed request content length in bytes
            metrics: Metrics sink; defaults to the module-level instance
        """
        super().__init__(app)
        self.max_content_length = max_content_length
        self.metrics = metrics or request_metrics
        logger.info(f"SecurityAndMetricsMiddleware initialized. Max content length: {max_content_length / (1024*1024):.2f} MB")

    def _too_large(self, request: Request) -> bool:
        content_length_header = request.headers.get("content-length")
        if not content_length_header:
            return False
        try:
            return int(content_length_header) > self.max_content_length
        except ValueError:
            logger.warning(f"Invalid Content-Length header: {content_length_header}")
            return False

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process the request with security checks and metrics collection."""
        start_time = time.monotonic()
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"

        # --- Security Check: Content Length ---
        if method in ("POST", "PUT", "PATCH") and self._too_large(request):
            logger.warning(
                f"Request body too large (limit {self.max_content_length} bytes).",
                client_ip=client_ip,
                path=path,
                method=method
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={
                    "detail": f"Request body is too large. Maximum allowed size is {self.max_content_length / (1024*1024):.1f} MB.",
                    "error_code": "CONTENT_TOO_LARGE"
                }
            )

        status_code = 500  # Default if exception occurs
        try:
            response = await call_next(request)
            status_code = response.status_code

            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "no-referrer"
            response.headers["Cache-Control"] = "no-store"
            return response
        except Exception as exc:
            logger.error(
                "Exception during request processing",
                path=path, method=method, client_ip=client_ip, error=str(exc)
            )
            status_code = getattr(exc, "status_code", 500)
            raise
        finally:
            process_time_ms = (time.monotonic() - start_time) * 1000
            self.metrics.record(path, status_code, process_time_ms)

            log_msg = {
                "path": path,
                "method": method,
                "status_code": status_code,
                "duration_ms": round(process_time_ms, 2),
                "client_ip": client_ip
            }
            if status_code >= 500:
                logger.error("Request completed", exc_info=False, **log_msg)
            elif status_code >= 400:
                logger.warning("Request completed", **log_msg)
            else:
                logger.info("Request completed", **log_msg)

            if process_time_ms > SLOW_RESPONSE_MS:
                logger.warning(f"Slow response: {method} {path}", **log_msg)
