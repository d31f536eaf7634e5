#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Uvicorn server entry point for the Playlist Purge application.

Handles environment loading (.env), final logging configuration based on environment,
and starts the Uvicorn server process.
"""

import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from logging_config import setup_logging


def load_environment(env_path: Path = Path(".") / ".env") -> bool:
    """Load a .env file if present; existing variables are overridden."""
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path, override=True)
        print(f"Loaded environment variables from: {env_path.resolve()}")
        return True
    print(".env file not found, using system environment variables.")
    return False


def main():
    # 1. Load environment before the configuration module is imported
    load_environment()

    from config import config
    config.load_from_env()

    # 2. Setup Logging based on final configuration
    log_level_console = getattr(logging, os.environ.get("LOG_LEVEL_CONSOLE", "INFO").upper(), logging.INFO)
    log_level_file = getattr(logging, os.environ.get("LOG_LEVEL_FILE", "DEBUG").upper(), logging.DEBUG)
    log_structured = os.environ.get("LOG_STRUCTURED", "true").lower() in ("true", "1", "yes")
    setup_logging(
        log_level_console=log_level_console,
        log_level_file=log_level_file,
        structured=log_structured
    )

    # 3. Get Uvicorn Server Parameters from Environment/Defaults
    run_host = os.environ.get("HOST", "127.0.0.1")
    try:
        run_port = int(os.environ.get("PORT", "8000"))
    except ValueError:
        logging.warning(f"Invalid PORT environment variable '{os.environ.get('PORT')}', using default 8000.")
        run_port = 8000

    debug_mode = os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")
    uvicorn_log_level = os.environ.get("UVICORN_LOG_LEVEL", "debug" if debug_mode else "info").lower()

    if config.USE_DEV_PROXY:
        logging.info(f"Development proxy enabled at {config.DEV_PROXY_ORIGIN}")

    # 4. Start the Uvicorn Server (single worker: batch deletes run in-process)
    logging.info(f"Starting Uvicorn server on http://{run_host}:{run_port}")
    logging.info(f"Debug mode: {debug_mode}, Reload: {debug_mode}, Uvicorn Log Level: {uvicorn_log_level}")
    uvicorn.run(
        "main:app",
        host=run_host,
        port=run_port,
        reload=debug_mode,
        log_level=uvicorn_log_level,
    )


if __name__ == "__main__":
    main()
