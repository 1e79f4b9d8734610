"""
Response Envelope - Uniform response shape and error mapping.

Success: {"result": ..., "success": true[, "next": url]}
Failure: {"error": message, "success": false}
"""
from typing import Any, Dict, Optional

from fastapi import status

from resource_api.exceptions import ResourceAPIError


def success_envelope(result: Any, next_link: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a projected result; ``next`` is only set when a link is given."""
    envelope: Dict[str, Any] = {"result": result, "success": True}
    if next_link:
        envelope["next"] = next_link
    return envelope


def error_envelope(message: str) -> Dict[str, Any]:
    return {"error": message, "success": False}


def status_for_error(error: BaseException) -> int:
    """
    Map an exception to its HTTP status code.

    Resource API errors carry their own status; anything else raised by a
    handler is an internal server error.
    """
    if isinstance(error, ResourceAPIError):
        return error.status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
