"""Resource API - Generic CRUD resource dispatch over FastAPI."""
from resource_api.app_context import ConfigLoader
from resource_api.envelope import error_envelope, status_for_error, success_envelope
from resource_api.exceptions import (
    AuthenticationError,
    ConfigurationError,
    HandlerError,
    PayloadError,
    ResourceAPIError,
    UnsupportedFormatError,
)
from resource_api.interface import (
    Endpoint,
    IResourceHandler,
    Payload,
    RequestContext,
    RequestMiddleware,
    Resource,
)
from resource_api.logging_config import setup_logging
from resource_api.pagination import build_next_link
from resource_api.pipeline import Operation, RequestPipeline
from resource_api.registry import HandlerLoader, ResourceAPI
from resource_api.rules import (
    FieldType,
    ResourceSchema,
    Rule,
    apply_input_rules,
    apply_output_rules,
    validate_field,
    validate_output_keys,
)
from resource_api.serializers import JSONSerializer, ResponseSerializer, SerializerRegistry
from resource_api.server import create_base_app

__all__ = [
    # Registry
    "ResourceAPI", "HandlerLoader",
    # Handler interface
    "IResourceHandler", "RequestContext", "Payload", "Resource",
    "Endpoint", "RequestMiddleware",
    # Pipeline
    "Operation", "RequestPipeline",
    # Rules
    "Rule", "FieldType", "ResourceSchema",
    "apply_input_rules", "apply_output_rules", "validate_field", "validate_output_keys",
    # Serializers
    "ResponseSerializer", "JSONSerializer", "SerializerRegistry",
    # Envelope / pagination
    "success_envelope", "error_envelope", "status_for_error", "build_next_link",
    # Errors
    "ResourceAPIError", "AuthenticationError", "UnsupportedFormatError",
    "HandlerError", "PayloadError", "ConfigurationError",
    # Ambient
    "ConfigLoader", "setup_logging", "create_base_app",
]
