#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Configuration module for Playlist Purge.

Defines configuration parameters and loads values from environment variables.
Only the composition root (main.py / server.py) reads the environment; every
client receives its Config instance through its constructor.
"""

import os
import logging
from typing import Dict, Any

# Initialize a basic logger for config loading issues
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HEADER_DELIVERY_DIRECT = "direct"
HEADER_DELIVERY_CARRIER = "carrier"

# Default configuration values
_CONFIG_DEFAULTS: Dict[str, Any] = {
    # Upstream endpoints
    "OFFICIAL_API_ENDPOINT": "https://www.googleapis.com/",  # Root the discovery paths (youtube/v3/...) resolve against
    "INTERNAL_API_BASE": "https://www.youtube.com/youtubei/v1",

    # Local development proxy
    "USE_DEV_PROXY": False,
    "DEV_PROXY_ORIGIN": "http://127.0.0.1:8000",
    "DEV_OFFICIAL_API_PATH": "/yt-api/",
    "DEV_INTERNAL_API_PATH": "/yt-inner/youtubei/v1",
    "PROXY_OFFICIAL_TARGET": "https://www.googleapis.com",
    "PROXY_INTERNAL_TARGET": "https://www.youtube.com",

    # Header delivery: "direct" sends restricted headers under their real names,
    # "carrier" rewrites them to X-YouTube-Proxy-* for an intermediary to restore.
    "HEADER_DELIVERY": HEADER_DELIVERY_DIRECT,

    # Web client identity used for defaults and the InnerTube client context
    "DEFAULT_CLIENT_VERSION": "2.20251030.01.00",
    "DEFAULT_CLIENT_NAME_CODE": "1",  # WEB
    "DEFAULT_ORIGIN": "https://www.youtube.com",
    "DEFAULT_AUTH_USER": "0",

    # Timeouts
    "API_TIMEOUT_SECONDS": 20.0,  # Timeout for a single upstream request

    # Limits
    "MAX_PLAYLISTS_PER_DELETE": 500,  # Max ids accepted by one batch delete request

    # Web Server
    "DEFAULT_ENCODING": "utf-8",
    "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,  # 1MB max POST body size (pasted headers are small)

    # CORS
    "ALLOWED_ORIGINS": [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
        "http://localhost:5173",
    ],
}


class Config:
    """Configuration class that loads values from environment variables."""

    def __init__(self, load_from_env=True, **overrides):
        """Initialize configuration with default values and optionally from environment.

        Args:
            load_from_env: Whether to load values from environment variables
            **overrides: Explicit values applied last (used by tests and embedders)
        """
        # Set all default values as attributes
        for key, value in _CONFIG_DEFAULTS.items():
            setattr(self, key, list(value) if isinstance(value, list) else value)

        # Load from environment if requested
        if load_from_env:
            self.load_from_env()

        for key, value in overrides.items():
            if key not in _CONFIG_DEFAULTS:
                raise AttributeError(f"Unknown configuration key: {key}")
            setattr(self, key, value)

        self._apply_dev_proxy()

    def load_from_env(self):
        """Load configuration values from environment variables."""
        for key in ("OFFICIAL_API_ENDPOINT", "INTERNAL_API_BASE", "DEV_PROXY_ORIGIN",
                    "PROXY_OFFICIAL_TARGET", "PROXY_INTERNAL_TARGET",
                    "DEFAULT_CLIENT_VERSION", "DEFAULT_CLIENT_NAME_CODE", "DEFAULT_ORIGIN"):
            self._load_str_from_env(key)

        delivery = os.environ.get("HEADER_DELIVERY")
        if delivery is not None:
            delivery = delivery.strip().lower()
            if delivery in (HEADER_DELIVERY_DIRECT, HEADER_DELIVERY_CARRIER):
                self.HEADER_DELIVERY = delivery
            else:
                logger.warning(f"Invalid HEADER_DELIVERY value: {delivery}")

        # Load CORS origins
        env_origins = os.environ.get("ALLOWED_ORIGINS", "")
        if env_origins:
            origins = [origin.strip() for origin in env_origins.split(",")]
            self.ALLOWED_ORIGINS = [o for o in origins if o]
            logger.info(f"CORS origins set from environment: {self.ALLOWED_ORIGINS}")

        self._load_bool_from_env("USE_DEV_PROXY")
        self._load_float_from_env("API_TIMEOUT_SECONDS")
        self._load_int_from_env("MAX_PLAYLISTS_PER_DELETE")
        self._load_int_from_env("MAX_CONTENT_LENGTH")

        self._apply_dev_proxy()

    def _apply_dev_proxy(self):
        """Point both backends at the local proxy routes when the dev proxy is on."""
        if not self.USE_DEV_PROXY:
            return
        origin = self.DEV_PROXY_ORIGIN.rstrip("/")
        self.OFFICIAL_API_ENDPOINT = f"{origin}{self.DEV_OFFICIAL_API_PATH}"
        self.INTERNAL_API_BASE = f"{origin}{self.DEV_INTERNAL_API_PATH}"
        self.HEADER_DELIVERY = HEADER_DELIVERY_CARRIER

    @property
    def official_api_endpoint(self) -> str:
        """Data API root, always with a trailing slash so relative paths join under it."""
        endpoint = self.OFFICIAL_API_ENDPOINT.strip()
        return endpoint if endpoint.endswith("/") else endpoint + "/"

    @property
    def internal_api_base(self) -> str:
        """InnerTube base without a trailing slash."""
        return self.INTERNAL_API_BASE.strip().rstrip("/")

    def summary(self) -> Dict[str, Any]:
        """Non-sensitive view of the active settings, used by /health."""
        return {
            "official_api_endpoint": self.official_api_endpoint,
            "internal_api_base": self.internal_api_base,
            "header_delivery": self.HEADER_DELIVERY,
            "dev_proxy": self.USE_DEV_PROXY,
            "api_timeout_seconds": self.API_TIMEOUT_SECONDS,
        }

    def _load_str_from_env(self, key):
        """Load a non-empty string value from environment variable."""
        env_value = os.environ.get(key)
        if env_value is not None and env_value.strip():
            setattr(self, key, env_value.strip())
            return True
        return False

    def _load_bool_from_env(self, key):
        """Load a boolean value from environment variable.

        Args:
            key: The configuration key to load

        Returns:
            bool: True if the value was loaded, False otherwise
        """
        env_value = os.environ.get(key)
        if env_value is not None:
            setattr(self, key, env_value.strip().lower() in ("true", "1", "yes", "y", "on"))
            return True
        return False

    def _load_int_from_env(self, key):
        """Load an integer value from environment variable.

        Args:
            key: The configuration key to load

        Returns:
            bool: True if the value was loaded, False otherwise
        """
        env_value = os.environ.get(key)
        if env_value is not None:
            try:
                setattr(self, key, int(env_value))
                return True
            except ValueError:
                logger.warning(f"Invalid integer value for {key}: {env_value}")
        return False

    def _load_float_from_env(self, key):
        """Load a float value from environment variable.

        Args:
            key: The configuration key to load

        Returns:
            bool: True if the value was loaded, False otherwise
        """
        env_value = os.environ.get(key)
        if env_value is not None:
            try:
                setattr(self, key, float(env_value))
                return True
            except ValueError:
                logger.warning(f"Invalid float value for {key}: {env_value}")
        return False


# Single instance for the composition root (main.py / server.py)
config = Config(load_from_env=True)
