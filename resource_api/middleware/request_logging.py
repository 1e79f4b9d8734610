"""Request logging middleware."""
import logging
import time

from starlette.requests import Request
from starlette.responses import Response

from resource_api.interface import Endpoint

logger = logging.getLogger(__name__)


def log_requests(endpoint: Endpoint) -> Endpoint:
    """Log method, path, status and duration of every call."""

    async def logged(request: Request) -> Response:
        start = time.perf_counter()
        response = await endpoint(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response

    return logged
