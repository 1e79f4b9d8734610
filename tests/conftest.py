"""
Pytest Configuration and Shared Fixtures.

Provides a configurable mock resource handler and API/client factories.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from resource_api.interface import IResourceHandler, RequestContext
from resource_api.rules import Rule


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "SERVER_HOST": "127.0.0.1",
        "SERVER_PORT": "8000",
        "BASE_URL": "https://test.example.com",
        "APP_DEBUG": "true",
        "APP_LOG_LEVEL": "DEBUG",
        "API_URL_PREFIX": "/api",
        "API_DEFAULT_LIMIT": "100",
        "RATE_LIMIT_PER_MINUTE": "60",
        "RATE_LIMIT_PER_HOUR": "1000",
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def config_loader(mock_env_vars):
    """Create a ConfigLoader instance with mock environment."""
    from resource_api.app_context import ConfigLoader

    return ConfigLoader().load()


# =============================================================================
# Resource Handler Fixtures
# =============================================================================


@dataclass
class FooResource:
    """Resource used across tests; serialized as {"foo": ...}."""

    foo: str = ""


class MockResourceHandler(IResourceHandler):
    """Mock handler whose operations return (or raise) a configured value."""

    def __init__(
        self,
        name: str = "foo",
        rules: Optional[List[Rule]] = None,
        prototype: Any = FooResource,
        auth_error: Optional[Exception] = None,
    ) -> None:
        self._name = name
        self._rules = rules or []
        self._prototype = prototype
        self._auth_error = auth_error
        self._result: Any = None
        self._error: Optional[Exception] = None
        self._cursor = ""
        self.calls: list[tuple[str, tuple]] = []

    def returns(self, result: Any = None, error: Optional[Exception] = None, cursor: str = "") -> "MockResourceHandler":
        self._result = result
        self._error = error
        self._cursor = cursor
        return self

    def _respond(self, operation: str, *args: Any) -> Any:
        self.calls.append((operation, args))
        if self._error is not None:
            raise self._error
        return self._result

    def resource_name(self) -> str:
        return self._name

    def empty_resource(self) -> Any:
        return self._prototype

    def rules(self) -> List[Rule]:
        return self._rules

    def authenticate(self, request: Request) -> None:
        if self._auth_error is not None:
            raise self._auth_error

    def create_resource(self, ctx: RequestContext, data: dict, version: str) -> Any:
        return self._respond("create", ctx, data, version)

    def read_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Any:
        return self._respond("read", ctx, resource_id, version)

    def read_resource_list(self, ctx: RequestContext, limit: int, cursor: str, version: str) -> Any:
        result = self._respond("readList", ctx, limit, cursor, version)
        return result, self._cursor

    def update_resource(self, ctx: RequestContext, resource_id: str, data: dict, version: str) -> Any:
        return self._respond("update", ctx, resource_id, data, version)

    def delete_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Any:
        return self._respond("delete", ctx, resource_id, version)


@pytest.fixture
def mock_handler():
    """Create a mock handler named 'foo' with no rules."""
    return MockResourceHandler()


@pytest.fixture
def mock_handler_factory() -> Callable[..., MockResourceHandler]:
    """Factory for creating mock handlers with custom settings."""
    def _create(**kwargs: Any) -> MockResourceHandler:
        return MockResourceHandler(**kwargs)
    return _create


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def api(config_loader):
    """Create a ResourceAPI on a fresh FastAPI app."""
    from resource_api.registry import ResourceAPI

    return ResourceAPI(config=config_loader)


@pytest.fixture
def client(api):
    """Test client for the API's application."""
    return TestClient(api.app)


def make_request(
    method: str = "GET",
    path: str = "/api/v0.1/foo",
    query: bytes = b"",
    body: bytes = b"",
    path_params: Optional[dict] = None,
) -> Request:
    """Build a bare Starlette request for calling endpoints directly."""
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "path": path,
        "query_string": query,
        "headers": [(b"host", b"foo.com")],
        "server": ("foo.com", 80),
        "path_params": path_params or {},
    }

    async def receive() -> dict:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory() -> Callable[..., Request]:
    """Factory for bare requests (see make_request)."""
    return make_request
