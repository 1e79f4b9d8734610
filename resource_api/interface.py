"""
IResourceHandler - Abstract Base Class for all exposed resources.

A handler is implemented once per resource type. The registry turns its
CRUD operations into five named routes; the request pipeline takes care
of authentication, format negotiation, field projection and the envelope.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import Response

if TYPE_CHECKING:
    from resource_api.rules import Rule

Payload = Dict[str, Any]
Resource = Any

Endpoint = Callable[[Request], Awaitable[Response]]
RequestMiddleware = Callable[[Endpoint], Endpoint]


@dataclass
class RequestContext:
    """
    Request-scoped values handed to handler operations.

    Attributes:
        request: The incoming request
        version: API version segment of the route (e.g. '0.1')
        resource_id: The ``resource_id`` path parameter, if routed
        values: Free-form storage for middleware and handlers
    """

    request: Request
    version: str = ""
    resource_id: Optional[str] = None
    values: Dict[str, Any] = field(default_factory=dict)


class IResourceHandler(ABC):
    """
    Abstract interface for resources exposed through the API.

    Operations may be plain functions or coroutines. Plain functions run in
    a worker thread, so they are free to block.
    """

    @abstractmethod
    def resource_name(self) -> str:
        """
        Returns the unique name of this resource.
        Used as the URL segment and as the route-name prefix.

        Returns:
            str: The resource name (e.g. 'notes')
        """
        pass

    @abstractmethod
    def empty_resource(self) -> Any:
        """
        Returns a prototype of the resource.

        Only used to validate rules and bind payloads, never as live data.

        Returns:
            A dataclass or pydantic model instance (or the class itself)
        """
        pass

    def create_resource(self, ctx: RequestContext, data: Payload, version: str) -> Resource:
        """
        Create a resource from the request payload.

        Args:
            ctx: Request context
            data: Decoded request body, after input rules
            version: API version

        Returns:
            The created resource
        """
        raise NotImplementedError(f"create is not supported by {self.resource_name()}")

    def read_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Resource:
        """Read the resource with the given id."""
        raise NotImplementedError(f"read is not supported by {self.resource_name()}")

    def read_resource_list(
        self,
        ctx: RequestContext,
        limit: int,
        cursor: str,
        version: str,
    ) -> Tuple[List[Resource], str]:
        """
        Read a page of resources.

        Args:
            ctx: Request context
            limit: Maximum number of resources to return
            cursor: Opaque cursor of the page to read ('' for the first page)
            version: API version

        Returns:
            Tuple of (resources, next cursor). An empty cursor ends paging.
        """
        raise NotImplementedError(f"readList is not supported by {self.resource_name()}")

    def update_resource(
        self,
        ctx: RequestContext,
        resource_id: str,
        data: Payload,
        version: str,
    ) -> Resource:
        """Update the resource with the given id from the request payload."""
        raise NotImplementedError(f"update is not supported by {self.resource_name()}")

    def delete_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Resource:
        """Delete the resource with the given id and return it."""
        raise NotImplementedError(f"delete is not supported by {self.resource_name()}")

    def authenticate(self, request: Request) -> None:
        """
        Authenticate a request.
        Override to restrict access; the default allows every request.

        Raises:
            AuthenticationError: To reject the request with a 401
        """
        return None

    def rules(self) -> List["Rule"]:
        """
        Returns the field rules of this resource.
        Override to alias fields, mark them output-only or declare types.
        """
        return []
