"""Pagination links for list responses."""
from typing import Optional

from starlette.datastructures import URL

NEXT_PARAM = "next"


def build_next_link(url: URL, cursor: str) -> Optional[str]:
    """
    Build the ``next`` link for a list response.

    Only the scheme and host of the request URL are kept; its path and
    query are discarded. The cursor is passed through verbatim.

    Args:
        url: URL of the incoming request
        cursor: Opaque cursor returned by the handler

    Returns:
        The link, or None when the cursor is empty
    """
    if not cursor:
        return None
    return f"{url.scheme}://{url.netloc}?{NEXT_PARAM}={cursor}"
