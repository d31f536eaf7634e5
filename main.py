#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main FastAPI application setup for Playlist Purge.

Initializes the FastAPI application, sets up lifespan management for services,
registers middleware and includes API routes.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __init__ import __version__
from api import dependencies, routes
from api.proxy import build_proxy_router
from config import Config, config
from exceptions import APIConfigurationError
from logging_config import StructuredLogger
from middleware import SecurityAndMetricsMiddleware
from services.adapter import PlaylistAdapter
from services.internal_api import InternalApiClient
from services.official_api import OfficialApiClient

logger = StructuredLogger(__name__)


def build_adapter(settings: Config) -> PlaylistAdapter:
    """Wire both clients and the adapter from ``settings``."""
    return PlaylistAdapter(
        official=OfficialApiClient(settings),
        internal=InternalApiClient(settings),
        settings=settings,
    )


# --- Lifespan Management ---

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Populates the global service instances defined in api.dependencies.
    """
    settings: Config = app.state.settings
    logger.info("Starting Playlist Purge FastAPI application lifespan...", **settings.summary())

    dependencies.settings = settings
    try:
        dependencies.adapter = build_adapter(settings)
        logger.info("Playlist Purge services initialized successfully.")
    except APIConfigurationError as api_err:
        logger.critical(f"API configuration error during startup: {api_err}")
        dependencies.adapter = None
    except Exception as e:
        logger.critical(f"Critical unexpected error during service initialization: {e}")
        dependencies.adapter = None

    yield

    logger.info("Shutting down Playlist Purge FastAPI application lifespan...")
    dependencies.adapter = None
    dependencies.settings = None


def create_app(settings: Optional[Config] = None) -> FastAPI:
    """Build the FastAPI application for ``settings`` (the module config by default)."""
    settings = settings or config

    app = FastAPI(
        lifespan=lifespan,
        title="Playlist Purge API",
        description="List and batch-delete the playlists of a YouTube account through the Data API "
                    "or the internal web API, using credentials copied from the browser.",
        version=__version__
    )
    app.state.settings = settings

    # --- Middleware Registration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"]
    )
    app.add_middleware(SecurityAndMetricsMiddleware, max_content_length=settings.MAX_CONTENT_LENGTH)
    logger.debug(f"Middleware registered. Allowed origins: {settings.ALLOWED_ORIGINS}")

    # --- API Router Inclusion ---
    app.include_router(routes.router)
    if settings.USE_DEV_PROXY:
        app.include_router(build_proxy_router(settings))
        logger.info("Development proxy routes enabled.",
                    official=settings.PROXY_OFFICIAL_TARGET, internal=settings.PROXY_INTERNAL_TARGET)

    return app


app = create_app()
