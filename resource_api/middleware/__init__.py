"""
Request middleware for resource routes.

Each middleware maps an endpoint to a wrapping endpoint and is passed to
ResourceAPI.register_resource_handler().
"""

from resource_api.middleware.rate_limit import RateLimitConfig, RateLimiter, rate_limit
from resource_api.middleware.request_logging import log_requests

__all__ = [
    "RateLimitConfig",
    "RateLimiter",
    "rate_limit",
    "log_requests",
]
