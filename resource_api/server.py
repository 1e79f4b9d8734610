"""
FastAPI Application Factory.

Creates the FastAPI application that resource routes are registered on,
with CORS, security headers and a health check endpoint.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from resource_api.app_context import ConfigLoader

_logger = logging.getLogger(__name__)

_DEV_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


def create_base_app(
    config: ConfigLoader,
    title: str = "Resource API",
    description: str = "Generic CRUD resource API",
    version: str = "1.0.0",
) -> FastAPI:
    """
    Create and configure the base FastAPI application.

    Args:
        config: Loaded configuration.
        title: API title for OpenAPI documentation.
        description: API description for OpenAPI documentation.
        version: Application version string.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(title=title, description=description, version=version)
    app.state.config = config

    base_url = config.get("server.base_url", "")
    is_debug = config.get("app.debug", False)

    allowed_origins: list[str] = []
    if base_url:
        allowed_origins.append(base_url)
    if is_debug:
        allowed_origins.extend(_DEV_ORIGINS)

    if not allowed_origins:
        _logger.warning(
            "BASE_URL not configured and not in debug mode. "
            "CORS will reject all cross-origin requests."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    _register_core_routes(app, title)

    return app


def _register_core_routes(app: FastAPI, service_name: str) -> None:
    """Register core API routes (health check)."""

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": service_name}
