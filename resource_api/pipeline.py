"""
Request Pipeline - Per-route request orchestration.

One pipeline is bound to each (resource, operation) route. A request runs
through the stages below, stopping at the first failure:

    1. authenticate        -> 401, raw message body (any exception)
    2. negotiate format    -> 501, error envelope
    3. parse payload       (create/update only)
    4. invoke operation    -> 500, error envelope (also covers stage 3)
    5. project fields      (output rules)
    6. build envelope      (201 for create, 200 otherwise; ``next`` for lists)
    7. serialize and write
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import inspect
import json
import logging

from fastapi import status
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from resource_api.envelope import error_envelope, status_for_error, success_envelope
from resource_api.exceptions import (
    AuthenticationError,
    HandlerError,
    PayloadError,
    UnsupportedFormatError,
)
from resource_api.interface import IResourceHandler, Payload, RequestContext
from resource_api.pagination import NEXT_PARAM, build_next_link
from resource_api.rules import ResourceSchema, Rule, apply_input_rules, apply_output_rules
from resource_api.serializers import (
    DEFAULT_FORMAT,
    JSONSerializer,
    ResponseSerializer,
    SerializerRegistry,
)

FORMAT_PARAM = "format"
LIMIT_PARAM = "limit"
DEFAULT_LIMIT = 100

# Used for responses that cannot go through the negotiated serializer
_FALLBACK_SERIALIZER = JSONSerializer()


class Operation(str, Enum):
    """CRUD operations; the value is the route-name suffix."""

    CREATE = "create"
    READ = "read"
    READ_LIST = "readList"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def has_payload(self) -> bool:
        return self in (Operation.CREATE, Operation.UPDATE)

    @property
    def success_status(self) -> int:
        if self is Operation.CREATE:
            return status.HTTP_201_CREATED
        return status.HTTP_200_OK


async def invoke(func: Callable[..., Any], *args: Any) -> Any:
    """
    Call a handler method that may be a plain function or a coroutine.

    Plain functions run in the thread pool so blocking handlers do not
    stall the event loop.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await run_in_threadpool(func, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


class RequestPipeline:
    """
    Endpoint for one operation of one resource.

    Instances are ASGI-agnostic callables: ``await pipeline(request)``
    returns the response. They hold no per-request state.
    """

    def __init__(
        self,
        handler: IResourceHandler,
        operation: Operation,
        serializers: SerializerRegistry,
        route_name: str,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._handler = handler
        self._operation = operation
        self._serializers = serializers
        self._route_name = route_name
        self._default_limit = default_limit
        self._logger = logging.getLogger(__name__)

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def route_name(self) -> str:
        return self._route_name

    async def __call__(self, request: Request) -> Response:
        # 1. Authenticate; any failure rejects the request
        try:
            await invoke(self._handler.authenticate, request)
        except AuthenticationError as e:
            self._logger.warning(f"Authentication failed for '{self._route_name}': {e}")
            return PlainTextResponse(str(e), status_code=status.HTTP_401_UNAUTHORIZED)
        except Exception as e:
            self._logger.error(
                f"authenticate() raised {type(e).__name__} for '{self._route_name}': {e}"
            )
            return PlainTextResponse(str(e), status_code=status.HTTP_401_UNAUTHORIZED)

        # 2. Negotiate format
        format_name = request.query_params.get(FORMAT_PARAM, DEFAULT_FORMAT)
        serializer = self._serializers.get(format_name)
        if serializer is None:
            error = UnsupportedFormatError(format_name)
            self._logger.info(f"'{self._route_name}': {error}")
            return self._error_response(error, _FALLBACK_SERIALIZER)

        ctx = RequestContext(
            request=request,
            version=request.path_params.get("version", ""),
            resource_id=request.path_params.get("resource_id"),
        )

        # 3-5. Parse payload, invoke operation, project fields
        try:
            rules = list(self._handler.rules())
            data = await self._parse_payload(request, rules) if self._operation.has_payload else None
            result, cursor = await self._invoke_operation(ctx, data)
            projected = apply_output_rules(result, rules)
        except Exception as e:
            self._logger.error(f"Error in '{self._route_name}' handler: {e}")
            return self._error_response(e, serializer, HandlerError.status_code)

        # 6. Build envelope
        next_link = None
        if self._operation is Operation.READ_LIST:
            next_link = build_next_link(request.url, cursor)
        envelope = success_envelope(projected, next_link)

        # 7. Serialize
        return self._write(envelope, self._operation.success_status, serializer)

    async def _parse_payload(self, request: Request, rules: List[Rule]) -> Payload:
        """
        Decode the JSON request body and bind it through the input rules.

        Raises:
            PayloadError: If the body is empty, malformed or not a JSON object
        """
        raw = await request.body()
        if not raw:
            raise PayloadError("Request body is empty")

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PayloadError(f"Invalid JSON payload: {e}") from e

        if not isinstance(data, dict):
            raise PayloadError("Payload must be a JSON object")

        if not rules:
            return data

        schema = ResourceSchema.from_prototype(self._handler.empty_resource())
        return apply_input_rules(data, rules, schema)

    async def _invoke_operation(
        self,
        ctx: RequestContext,
        data: Optional[Payload],
    ) -> Tuple[Any, str]:
        """Dispatch to the handler method; returns (result, cursor)."""
        handler = self._handler
        version = ctx.version

        if self._operation is Operation.CREATE:
            return await invoke(handler.create_resource, ctx, data, version), ""
        if self._operation is Operation.READ:
            return await invoke(handler.read_resource, ctx, ctx.resource_id, version), ""
        if self._operation is Operation.UPDATE:
            return await invoke(handler.update_resource, ctx, ctx.resource_id, data, version), ""
        if self._operation is Operation.DELETE:
            return await invoke(handler.delete_resource, ctx, ctx.resource_id, version), ""

        limit = self._parse_limit(ctx.request)
        cursor = ctx.request.query_params.get(NEXT_PARAM, "")
        resources, next_cursor = await invoke(
            handler.read_resource_list, ctx, limit, cursor, version
        )
        return list(resources or []), next_cursor or ""

    def _parse_limit(self, request: Request) -> int:
        value = request.query_params.get(LIMIT_PARAM)
        if value is None:
            return self._default_limit
        try:
            limit = int(value)
        except ValueError:
            return self._default_limit
        return limit if limit > 0 else self._default_limit

    def _error_response(
        self,
        error: BaseException,
        serializer: ResponseSerializer,
        status_code: Optional[int] = None,
    ) -> Response:
        if status_code is None:
            status_code = status_for_error(error)
        return self._write(error_envelope(str(error)), status_code, serializer)

    def _write(
        self,
        envelope: Dict[str, Any],
        status_code: int,
        serializer: ResponseSerializer,
    ) -> Response:
        try:
            body = serializer.serialize(envelope)
            media_type = serializer.content_type()
        except Exception as e:
            self._logger.error(f"Failed to serialize response for '{self._route_name}': {e}")
            body = _FALLBACK_SERIALIZER.serialize(error_envelope(str(e)))
            media_type = _FALLBACK_SERIALIZER.content_type()
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return Response(content=body, status_code=status_code, media_type=media_type)
