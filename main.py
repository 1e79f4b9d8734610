"""
Resource API - Entry Point.

Loads resource handlers from ``modules/`` and serves them.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000

Or run directly (validates rules before binding):
    python main.py
"""

import logging
from pathlib import Path

from fastapi import FastAPI

from resource_api.app_context import ConfigLoader
from resource_api.logging_config import setup_logging
from resource_api.middleware import RateLimitConfig, log_requests, rate_limit
from resource_api.registry import HandlerLoader, ResourceAPI
from resource_api.server import create_base_app

# Handler directory path
MODULES_DIR = "modules"


def create_api(config: ConfigLoader) -> ResourceAPI:
    """Create the FastAPI app and register every handler found in modules/."""
    app = create_base_app(config)
    api = ResourceAPI(app=app, config=config)

    middleware = (log_requests, rate_limit(RateLimitConfig.from_config(config)))
    handlers_path = Path(__file__).parent / MODULES_DIR
    HandlerLoader(api).load_from_directory(str(handlers_path), *middleware)

    # Abort before serving if any handler's rules are miswired
    api.validate_rules()
    return api


def _log_level(config: ConfigLoader) -> int:
    return getattr(logging, str(config.get("app.log_level", "INFO")).upper(), logging.INFO)


_config = ConfigLoader().load()
setup_logging(_log_level(_config))
api = create_api(_config)
app: FastAPI = api.app


if __name__ == "__main__":
    api.start()
