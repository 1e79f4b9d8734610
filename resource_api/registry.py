"""
Resource API Registry - Resource handler registration and route wiring.

Each registered handler gets five named routes on the FastAPI router:

    <name>:create    POST    {prefix}/v{version}/<name>
    <name>:readList  GET     {prefix}/v{version}/<name>
    <name>:read      GET     {prefix}/v{version}/<name>/{resource_id}
    <name>:update    PUT     {prefix}/v{version}/<name>/{resource_id}
    <name>:delete    DELETE  {prefix}/v{version}/<name>/{resource_id}
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import importlib
import importlib.util
import inspect
import logging
import threading
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import BaseRoute, Route

from resource_api.app_context import ConfigLoader
from resource_api.interface import Endpoint, IResourceHandler, RequestMiddleware
from resource_api.pipeline import DEFAULT_LIMIT, Operation, RequestPipeline
from resource_api.rules import validate_rules as validate_handler_rules
from resource_api.serializers import ResponseSerializer, SerializerRegistry

_METHODS: Dict[Operation, str] = {
    Operation.CREATE: "POST",
    Operation.READ_LIST: "GET",
    Operation.READ: "GET",
    Operation.UPDATE: "PUT",
    Operation.DELETE: "DELETE",
}


def route_name(resource_name: str, operation: Operation) -> str:
    """Name of the route serving an operation, e.g. 'notes:readList'."""
    return f"{resource_name}:{operation.value}"


def apply_middleware(endpoint: Endpoint, middleware: Sequence[RequestMiddleware]) -> Endpoint:
    """
    Wrap an endpoint in a middleware chain.

    The first middleware is the outermost one, so it sees the request first.
    """
    wrapped = endpoint
    for mw in reversed(middleware):
        wrapped = mw(wrapped)
    return wrapped


class ResourceAPI:
    """
    Registry of resource handlers and response serializers.

    Routes are added to the router of a FastAPI application. The handler
    and endpoint maps are replaced wholesale under a lock on every write,
    so request-time lookups never wait on registration.
    """

    def __init__(
        self,
        app: Optional[FastAPI] = None,
        config: Optional[ConfigLoader] = None,
        url_prefix: Optional[str] = None,
        default_limit: Optional[int] = None,
    ) -> None:
        self._config = config or ConfigLoader().load()
        self._app = app if app is not None else FastAPI(title="Resource API")

        if url_prefix is None:
            url_prefix = self._config.get("api.url_prefix", "/api")
        self._url_prefix = url_prefix.rstrip("/")
        self._default_limit = default_limit or self._config.get("api.default_limit", DEFAULT_LIMIT)

        self._serializers = SerializerRegistry()
        self._handlers: Dict[str, IResourceHandler] = {}
        self._endpoints: Dict[str, Endpoint] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    @property
    def app(self) -> FastAPI:
        """The FastAPI application the routes are registered on."""
        return self._app

    @property
    def config(self) -> ConfigLoader:
        return self._config

    # =========================================================================
    # Resource handlers
    # =========================================================================

    def register_resource_handler(
        self,
        handler: IResourceHandler,
        *middleware: RequestMiddleware,
    ) -> None:
        """
        Register a resource handler and build its five routes.

        Registering a name again replaces the previous handler and routes.

        Args:
            handler: The resource handler to expose
            *middleware: Middleware applied to every route, outermost first
        """
        name = handler.resource_name()

        with self._lock:
            replaced = name in self._handlers

            # Old routes are dropped and new ones added in a single swap
            endpoints = dict(self._endpoints)
            routes = self._routes_without(name)
            for operation in Operation:
                name_of_route = route_name(name, operation)
                pipeline = RequestPipeline(
                    handler,
                    operation,
                    self._serializers,
                    name_of_route,
                    default_limit=self._default_limit,
                )
                endpoint = self._build_endpoint(pipeline, middleware)
                routes.append(Route(
                    self._route_path(name, operation),
                    endpoint,
                    methods=[_METHODS[operation]],
                    name=name_of_route,
                    include_in_schema=False,
                ))
                endpoints[name_of_route] = endpoint

            self._app.router.routes = routes
            handlers = dict(self._handlers)
            handlers[name] = handler
            self._handlers = handlers
            self._endpoints = endpoints

        if replaced:
            self._logger.warning(f"Resource '{name}' re-registered; previous routes replaced.")
        else:
            self._logger.info(f"Resource '{name}' registered at {self._route_path(name, Operation.READ)}.")

    def unregister_resource_handler(self, name: str) -> bool:
        """
        Remove a resource handler and its routes.

        Returns:
            bool: True if the handler was removed, False if it was unknown
        """
        with self._lock:
            if name not in self._handlers:
                self._logger.warning(f"Resource '{name}' not found in registry.")
                return False

            self._app.router.routes = self._routes_without(name)
            route_names = {route_name(name, op) for op in Operation}
            self._endpoints = {k: v for k, v in self._endpoints.items() if k not in route_names}
            self._handlers = {k: v for k, v in self._handlers.items() if k != name}

        self._logger.info(f"Resource '{name}' unregistered.")
        return True

    def get_resource_handler(self, name: str) -> Optional[IResourceHandler]:
        return self._handlers.get(name)

    def get_resource_names(self) -> List[str]:
        """Get names of all registered resources."""
        return list(self._handlers.keys())

    def get_route_handler(self, name: str) -> Endpoint:
        """
        Get the endpoint bound to a named route, middleware included.

        Raises:
            KeyError: If no route has that name
        """
        endpoint = self._endpoints.get(name)
        if endpoint is None:
            raise KeyError(f"No API route with name {name}")
        return endpoint

    def _route_path(self, name: str, operation: Operation) -> str:
        path = f"{self._url_prefix}/v{{version}}/{name}"
        if operation in (Operation.CREATE, Operation.READ_LIST):
            return path
        return f"{path}/{{resource_id}}"

    def _build_endpoint(
        self,
        pipeline: RequestPipeline,
        middleware: Tuple[RequestMiddleware, ...],
    ) -> Endpoint:
        wrapped = apply_middleware(pipeline, middleware)

        # Starlette only treats plain functions as request/response endpoints
        async def endpoint(request: Request) -> Response:
            return await wrapped(request)

        endpoint.__name__ = pipeline.route_name.replace(":", "_")
        return endpoint

    def _routes_without(self, name: str) -> List[BaseRoute]:
        route_names = {route_name(name, op) for op in Operation}
        return [
            route for route in self._app.router.routes
            if getattr(route, "name", None) not in route_names
        ]

    # =========================================================================
    # Response serializers
    # =========================================================================

    def register_response_serializer(self, format_name: str, serializer: ResponseSerializer) -> None:
        """Register a serializer for the ``format`` query parameter value."""
        self._serializers.register(format_name, serializer)

    def unregister_response_serializer(self, format_name: str) -> bool:
        """Remove the serializer for a format. Returns False if none was registered."""
        return self._serializers.unregister(format_name)

    def available_formats(self) -> List[str]:
        """Registered formats, sorted lexicographically."""
        return self._serializers.available_formats()

    # =========================================================================
    # Startup
    # =========================================================================

    def validate_rules(self) -> None:
        """
        Check the rules of every registered handler against its prototype.

        Run once before serving; handlers without rules are skipped.

        Raises:
            ConfigurationError: On the first misconfigured handler or rule
        """
        for name, handler in self._handlers.items():
            rules = list(handler.rules())
            if not rules:
                continue
            validate_handler_rules(handler.empty_resource(), rules, resource_name=name)
            self._logger.debug(f"Rules for resource '{name}' validated ({len(rules)} rule(s)).")

        self._logger.info(f"Rules validated for {len(self._handlers)} resource(s).")

    def start(self, host: Optional[str] = None, port: Optional[int] = None, **options: Any) -> None:
        """
        Validate rules and serve the application with uvicorn.

        Raises:
            ConfigurationError: If validation fails; the server is not started
        """
        self.validate_rules()

        host = host or self._config.get("server.host", "127.0.0.1")
        port = port or self._config.get("server.port", 8000)
        self._logger.info(f"Serving {len(self._handlers)} resource(s) on {host}:{port}")
        uvicorn.run(self._app, host=host, port=port, **options)


class HandlerLoader:
    """
    Discovers resource handlers in a directory and registers them.
    """

    def __init__(self, api: ResourceAPI) -> None:
        self._api = api
        self._logger = logging.getLogger(__name__)

    def _register_handlers_from(self, module: Any, middleware: Tuple[RequestMiddleware, ...]) -> int:
        count = 0
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if not (isinstance(attr, type) and issubclass(attr, IResourceHandler)):
                continue
            # Skip abstract bases and classes imported from elsewhere
            if inspect.isabstract(attr) or attr.__module__ != module.__name__:
                continue
            try:
                self._api.register_resource_handler(attr(), *middleware)
                count += 1
            except Exception as e:
                self._logger.error(f"Failed to register handler '{attr_name}': {e}")
        return count

    def load_from_directory(self, handlers_path: str, *middleware: RequestMiddleware) -> int:
        """
        Load resource handlers from a directory.

        Supports:
        - Single-file modules: <dir>/*.py
        - Package modules: <dir>/<name>/__init__.py, imported as ``<dir>.<name>``

        Args:
            handlers_path: Path to the handlers directory
            *middleware: Middleware applied to every discovered handler

        Returns:
            int: Number of handlers registered
        """
        path = Path(handlers_path)
        if not path.exists():
            self._logger.warning(f"Handlers directory '{handlers_path}' does not exist.")
            return 0

        loaded_count = 0

        # 1. Single-file modules (*.py)
        for module_file in sorted(path.glob("*.py")):
            if module_file.name.startswith("_"):
                continue

            try:
                spec = importlib.util.spec_from_file_location(module_file.stem, module_file)
                if spec and spec.loader:
                    module = importlib.util.module_from_spec(spec)
                    spec.loader.exec_module(module)
                    loaded_count += self._register_handlers_from(module, middleware)
            except Exception as e:
                self._logger.error(f"Error loading handlers from '{module_file}': {e}")

        # 2. Package modules (subdirectories with __init__.py)
        for subdir in sorted(path.iterdir()):
            if not subdir.is_dir() or subdir.name.startswith("_"):
                continue
            if not (subdir / "__init__.py").exists():
                continue

            try:
                module = importlib.import_module(f"{path.name}.{subdir.name}")
                loaded_count += self._register_handlers_from(module, middleware)
            except Exception as e:
                self._logger.error(f"Error loading handler package '{subdir.name}': {e}")

        self._logger.info(f"Loaded {loaded_count} resource handler(s) from '{handlers_path}'.")
        return loaded_count
