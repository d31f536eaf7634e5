#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Header normalization, credential classification and request preparation.

The user pastes the headers of an authenticated youtube.com request. Their
Authorization value decides the backend: an OAuth bearer token goes to the
official Data API, a SAPISIDHASH session hash goes to the internal API. All
functions here are pure; nothing touches the network.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from config import Config, HEADER_DELIVERY_CARRIER, HEADER_DELIVERY_DIRECT
from exceptions import HeaderConfigurationError, ValidationError
from logging_config import StructuredLogger
from models import Backend, HeaderClassification, HeaderMap

logger = StructuredLogger(__name__)

AUTHORIZATION = "Authorization"
COOKIE = "Cookie"
VISITOR_ID = "X-Goog-Visitor-Id"
CLIENT_NAME = "X-Youtube-Client-Name"
CLIENT_VERSION = "X-Youtube-Client-Version"

BEARER_PATTERN = re.compile(r"^Bearer\s+\S", re.IGNORECASE)
SESSION_HASH_PATTERN = re.compile(r"SAPISIDHASH\s+\S+", re.IGNORECASE)
REQUEST_LINE_PATTERN = re.compile(
    r"^(GET|POST|PUT|DELETE|PATCH|OPTIONS|HEAD)\s+\S+\s+HTTP/\d+(?:\.\d+)?$", re.IGNORECASE
)

# Headers a browser refuses to set directly; sent under a carrier name in carrier mode
CARRIER_HEADER_NAMES: Dict[str, str] = {
    "Cookie": "X-YouTube-Proxy-Cookie",
    "Origin": "X-YouTube-Proxy-Origin",
    "Referer": "X-YouTube-Proxy-Referer",
    "User-Agent": "X-YouTube-Proxy-User-Agent",
    "Accept-Language": "X-YouTube-Proxy-Accept-Language",
}

DROPPED_HEADER_PREFIXES = ("Sec-", "Proxy-")


def normalize_header_name(name: str) -> str:
    """Canonical ``Foo-Bar`` form of a header name.

    Each hyphen-delimited segment is lowercased and its first character
    uppercased. Idempotent.
    """
    return "-".join(segment[:1].upper() + segment[1:] for segment in name.strip().lower().split("-"))


# Connection-management and security-sensitive names no delivery path can set
DROPPED_HEADER_NAMES = frozenset(normalize_header_name(name) for name in (
    "Accept-Charset",
    "Accept-Encoding",
    "Access-Control-Request-Headers",
    "Access-Control-Request-Method",
    "Connection",
    "Content-Length",
    "Cookie2",
    "Date",
    "DNT",
    "Expect",
    "Host",
    "Keep-Alive",
    "TE",
    "Trailer",
    "Transfer-Encoding",
    "Upgrade",
    "Via",
))


def normalize_headers(headers: Mapping[str, str]) -> HeaderMap:
    """Re-key ``headers`` by canonical name; on collisions the last write wins."""
    normalized: HeaderMap = {}
    for key, value in headers.items():
        if not key or not key.strip():
            continue
        normalized[normalize_header_name(key)] = "" if value is None else str(value)
    return normalized


def parse_header_text(text: str) -> Tuple[HeaderMap, List[str]]:
    """Parse a header block copied from the browser's network inspector.

    One ``Name: value`` pair per line. Blank lines, the HTTP request line and
    HTTP/2 pseudo-headers (``:authority: ...``) are skipped.

    Args:
        text: The pasted block

    Returns:
        tuple: (headers keyed by canonical name, list of per-line error messages)
    """
    headers: HeaderMap = {}
    errors: List[str] = []

    for index, line in enumerate((text or "").splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(":"):
            continue

        name, separator, value = trimmed.partition(":")
        if not separator:
            if not REQUEST_LINE_PATTERN.match(trimmed):
                errors.append(f'Line {index}: Missing ":" separator.')
            continue

        name, value = name.strip(), value.strip()
        if not name or not value:
            errors.append(f"Line {index}: Header name or value is empty.")
            continue

        headers[normalize_header_name(name)] = value

    return headers, errors


def coerce_headers(raw) -> Tuple[HeaderMap, List[str]]:
    """Accept a pasted header block or a mapping; return normalized headers and parse errors."""
    if isinstance(raw, str):
        return parse_header_text(raw)
    return normalize_headers(raw or {}), []


def _value(headers: Mapping[str, str], name: str) -> str:
    return (headers.get(name) or "").strip()


def classify_headers(headers: Mapping[str, str]) -> HeaderClassification:
    """Decide which backend the credentials select and what is missing.

    Args:
        headers: Caller headers, in any capitalization

    Returns:
        HeaderClassification: backend (or None), missing required names,
        advisory names and validation errors
    """
    normalized = normalize_headers(headers)
    authorization = _value(normalized, AUTHORIZATION)

    backend: Optional[Backend] = None
    missing: List[str] = []
    advisory: List[str] = []
    errors: List[str] = []

    if not authorization:
        missing.append(AUTHORIZATION)
    elif BEARER_PATTERN.match(authorization):
        backend = Backend.OFFICIAL
    elif SESSION_HASH_PATTERN.search(authorization):
        backend = Backend.INTERNAL
    else:
        errors.append(
            "Authorization header must be an OAuth 'Bearer' token or include a SAPISIDHASH "
            "token copied from an authenticated youtube.com request."
        )

    if backend is Backend.INTERNAL:
        if not _value(normalized, COOKIE):
            missing.append(COOKIE)
        if not _value(normalized, VISITOR_ID):
            advisory.append(VISITOR_ID)
        if not _value(normalized, CLIENT_VERSION):
            advisory.append(CLIENT_VERSION)

    return HeaderClassification(backend=backend, missing_required=missing, advisory=advisory, errors=errors)


def select_backend(classification: HeaderClassification) -> Backend:
    """Backend for a classification that passed validation.

    Raises:
        ValidationError: If headers are malformed, required ones are missing,
            or no backend matched
    """
    if not classification.is_valid:
        problems = classification.problems or ["No supported Authorization scheme found."]
        raise ValidationError(problems[0], problems=problems)
    return classification.backend


@dataclass(frozen=True)
class PreparedHeaders:
    """Merged caller headers plus the header set actually put on the wire."""

    normalized: HeaderMap
    wire: HeaderMap
    delivery: str = HEADER_DELIVERY_DIRECT

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Merged value of ``name`` (canonical lookup), before carrier encoding."""
        value = self.normalized.get(normalize_header_name(name))
        return value if value else default


def default_headers(settings: Config) -> HeaderMap:
    """Headers every upstream request carries unless the caller overrides them."""
    return {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Goog-Authuser": settings.DEFAULT_AUTH_USER,
        "X-Origin": settings.DEFAULT_ORIGIN,
        "Origin": settings.DEFAULT_ORIGIN,
        CLIENT_NAME: settings.DEFAULT_CLIENT_NAME_CODE,
        CLIENT_VERSION: settings.DEFAULT_CLIENT_VERSION,
    }


def is_dropped_header(name: str) -> bool:
    """True for names that are never forwarded upstream."""
    canonical = normalize_header_name(name)
    return canonical in DROPPED_HEADER_NAMES or canonical.startswith(DROPPED_HEADER_PREFIXES)


def prepare_headers(headers: Mapping[str, str], settings: Config,
                    delivery: Optional[str] = None) -> PreparedHeaders:
    """Merge caller headers over the defaults and encode them for delivery.

    Args:
        headers: Caller headers (caller wins on conflict)
        settings: Supplies the default client identity
        delivery: "direct" or "carrier"; defaults to settings.HEADER_DELIVERY

    Returns:
        PreparedHeaders

    Raises:
        HeaderConfigurationError: If Authorization is empty after the merge
    """
    delivery = delivery or settings.HEADER_DELIVERY
    merged = {**default_headers(settings), **normalize_headers(headers)}

    if not _value(merged, AUTHORIZATION):
        raise HeaderConfigurationError("Authorization header is required.")

    wire: HeaderMap = {}
    for name, value in merged.items():
        value = (value or "").strip()
        if not value:
            continue
        if delivery == HEADER_DELIVERY_CARRIER and name in CARRIER_HEADER_NAMES:
            wire[CARRIER_HEADER_NAMES[name]] = value
            continue
        if is_dropped_header(name):
            continue
        wire[name] = value

    logger.debug(
        "Prepared upstream headers",
        delivery=delivery,
        header_names=sorted(wire),
    )
    return PreparedHeaders(normalized=merged, wire=wire, delivery=delivery)


def restore_carrier_headers(headers: Mapping[str, str], settings: Config,
                            supply_browser_defaults: bool = True) -> HeaderMap:
    """Translate carrier names back to the real header names.

    Used by the development proxy in front of the upstream hosts. Carrier
    headers are removed whether or not they carry a value.

    Args:
        headers: Incoming request headers
        settings: Supplies the default origin
        supply_browser_defaults: Add Origin/Referer when the request lacks them

    Returns:
        HeaderMap: Headers to forward upstream
    """
    restored = normalize_headers(headers)
    for real_name, carrier_name in CARRIER_HEADER_NAMES.items():
        value = (restored.pop(normalize_header_name(carrier_name), "") or "").strip()
        if value:
            restored[real_name] = value

    if supply_browser_defaults:
        origin = settings.DEFAULT_ORIGIN.rstrip("/")
        if not _value(restored, "Origin"):
            restored["Origin"] = origin
        if not _value(restored, "Referer"):
            restored["Referer"] = f"{origin}/feed/playlists"
    return restored
