#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI dependency injection functions for Playlist Purge.

The application lifespan populates the module-level instances below; route
handlers receive them through these functions.
"""

from typing import Optional

from fastapi import HTTPException, status

from config import Config
from logging_config import StructuredLogger
from services.adapter import PlaylistAdapter

logger = StructuredLogger(__name__)

# --- Global Service Instances ---
# Populated during the application lifespan startup.
settings: Optional[Config] = None
adapter: Optional[PlaylistAdapter] = None


# --- Dependency Injection Functions ---

def get_settings() -> Config:
    """Dependency function returning the active configuration.

    Raises:
        HTTPException: 503 Service Unavailable if the app has not started.
    """
    if settings is None:
        logger.critical("Dependency Error: configuration not initialized.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Initialization Error: configuration is not available.",
            headers={"X-Error-Code": "SERVICE_UNAVAILABLE_CONFIG"}
        )
    return settings


def get_adapter() -> PlaylistAdapter:
    """Dependency function to get the initialized PlaylistAdapter instance.

    Raises:
        HTTPException: 503 Service Unavailable if the adapter is not initialized.

    Returns:
        The singleton PlaylistAdapter instance.
    """
    if adapter is None:
        logger.critical("Dependency Error: playlist adapter not initialized.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Initialization Error: playlist adapter is not available.",
            headers={"X-Error-Code": "SERVICE_UNAVAILABLE_ADAPTER"}
        )
    return adapter
