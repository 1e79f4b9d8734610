"""
Rate Limiting Middleware.

IP-based sliding-window rate limiting for resource routes.
Respects proxy headers (CF-Connecting-IP, X-Forwarded-For, X-Real-IP).
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastapi import status
from starlette.requests import Request
from starlette.responses import Response

from resource_api.app_context import ConfigLoader
from resource_api.envelope import error_envelope
from resource_api.interface import Endpoint, RequestMiddleware
from resource_api.serializers import JSONSerializer

import logging

logger = logging.getLogger(__name__)

_serializer = JSONSerializer()


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    requests_per_minute: int = 60
    requests_per_hour: int = 1000

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "RateLimitConfig":
        return cls(
            requests_per_minute=config.get("rate_limit.requests_per_minute", 60),
            requests_per_hour=config.get("rate_limit.requests_per_hour", 1000),
        )


@dataclass
class RateLimitState:
    """Per-IP rate limit state."""

    minute_requests: list[float] = field(default_factory=list)
    hour_requests: list[float] = field(default_factory=list)


class RateLimiter:
    """
    Sliding window rate limiter keyed by client IP.

    Features:
    - Minute and hour windows
    - Proxy-aware client IP resolution
    - Periodic cleanup of idle clients
    """

    def __init__(self, config: Optional[RateLimitConfig] = None) -> None:
        self.config = config or RateLimitConfig()
        self._states: dict[str, RateLimitState] = defaultdict(RateLimitState)
        self._last_cleanup = time.time()
        self._cleanup_interval = 300  # 5 minutes

    def get_client_ip(self, request: Request) -> str:
        """
        Get real client IP, respecting proxy headers.

        Priority:
        1. CF-Connecting-IP (Cloudflare)
        2. X-Forwarded-For (first IP)
        3. X-Real-IP
        4. Direct client host
        """
        cf_ip = request.headers.get("CF-Connecting-IP")
        if cf_ip:
            return cf_ip

        xff = request.headers.get("X-Forwarded-For")
        if xff:
            return xff.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _cleanup_old_entries(self, now: float) -> None:
        """Remove expired entries from all states."""
        if now - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = now
        hour_ago = now - 3600

        to_delete = []
        for ip, state in self._states.items():
            state.minute_requests = [t for t in state.minute_requests if t > now - 60]
            state.hour_requests = [t for t in state.hour_requests if t > hour_ago]
            if not state.minute_requests and not state.hour_requests:
                to_delete.append(ip)

        for ip in to_delete:
            del self._states[ip]

    def check(self, ip: str, now: Optional[float] = None) -> Tuple[bool, int, int]:
        """
        Record a request and check it against the limits.

        Args:
            ip: Client IP
            now: Current timestamp (defaults to time.time())

        Returns:
            Tuple of (allowed, remaining requests this minute, retry-after seconds)
        """
        now = time.time() if now is None else now
        self._cleanup_old_entries(now)

        state = self._states[ip]
        state.minute_requests = [t for t in state.minute_requests if t > now - 60]
        state.hour_requests = [t for t in state.hour_requests if t > now - 3600]

        if len(state.minute_requests) >= self.config.requests_per_minute:
            logger.warning(f"Rate limit exceeded (minute) for IP: {ip}")
            return False, 0, 60

        if len(state.hour_requests) >= self.config.requests_per_hour:
            logger.warning(f"Rate limit exceeded (hour) for IP: {ip}")
            return False, 0, 3600

        state.minute_requests.append(now)
        state.hour_requests.append(now)
        remaining = self.config.requests_per_minute - len(state.minute_requests)
        return True, max(0, remaining), 0


def rate_limit(config: Optional[RateLimitConfig] = None) -> RequestMiddleware:
    """
    Build a rate limiting middleware.

    One limiter is shared by every endpoint the returned middleware wraps,
    so pass the same middleware to several handlers to share the budget.
    Rejected requests get a 429 error envelope with a Retry-After header.
    """
    limiter = RateLimiter(config)

    def middleware(endpoint: Endpoint) -> Endpoint:
        async def limited(request: Request) -> Response:
            allowed, remaining, retry_after = limiter.check(limiter.get_client_ip(request))
            if not allowed:
                return Response(
                    content=_serializer.serialize(error_envelope("Too many requests. Please slow down.")),
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    media_type=_serializer.content_type(),
                    headers={"Retry-After": str(retry_after)},
                )

            response = await endpoint(request)
            response.headers["X-RateLimit-Remaining"] = str(remaining)
            return response

        return limited

    return middleware
