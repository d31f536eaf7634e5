#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Response helpers shared by the two upstream clients.
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import urlencode

GENERIC_UPSTREAM_MESSAGE = "Upstream request failed"


def error_message_from_body(body: Any, default: str = GENERIC_UPSTREAM_MESSAGE) -> str:
    """Best-effort message from a Google JSON error envelope or a raw text body.

    Handles ``{"error": {"message": ...}}`` and
    ``{"error": {"errors": [{"message": ...}]}}``; a non-JSON body is used as-is.
    """
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")

    if isinstance(body, str):
        text = body.strip()
        if not text:
            return default
        try:
            body = json.loads(text)
        except ValueError:
            return text[:500]

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            if isinstance(error.get("message"), str) and error["message"]:
                return error["message"]
            errors = error.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message")
                if isinstance(message, str) and message:
                    return message
        elif isinstance(error, str) and error:
            return error

    return default


def build_endpoint(base: str, path: str, params: Optional[Dict[str, Optional[str]]] = None) -> str:
    """Join ``base`` and ``path`` with exactly one slash and append query params.

    None-valued params are omitted.
    """
    url = f"{base.rstrip('/')}/{path.lstrip('/')}"
    query = {key: value for key, value in (params or {}).items() if value is not None}
    if query:
        url = f"{url}?{urlencode(query)}"
    return url
