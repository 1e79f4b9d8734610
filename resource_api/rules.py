"""
Rule Engine - Field-level projection and validation rules.

A Rule describes how a single resource field is exposed: the key it is
written under, whether clients may set it, and the type it must have.
Rules are checked once against a ResourceSchema built from the handler's
prototype resource, then applied to every request and response.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import dataclasses
import types
import typing

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from resource_api.exceptions import ConfigurationError, PayloadError


class FieldType(Enum):
    """Declared type constraint of a Rule."""

    UNSPECIFIED = "unspecified"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    LIST = "list"
    DICT = "dict"
    DATETIME = "datetime"
    DURATION = "duration"


_PYTHON_TYPES: Dict[FieldType, Tuple[type, ...]] = {
    FieldType.STRING: (str,),
    FieldType.INT: (int,),
    FieldType.FLOAT: (float,),
    FieldType.BOOL: (bool,),
    FieldType.LIST: (list, tuple, set, frozenset),
    FieldType.DICT: (dict,),
    FieldType.DATETIME: (datetime,),
    FieldType.DURATION: (timedelta,),
}


@dataclass(frozen=True)
class Rule:
    """
    Handling policy for one resource field.

    Attributes:
        field: Attribute name on the resource type
        field_alias: Output key override; empty means the field's default key
        output_only: Field is emitted on output but dropped from input payloads
        type: Declared type the field must have (UNSPECIFIED skips the check)
    """

    field: str = ""
    field_alias: str = ""
    output_only: bool = False
    type: FieldType = FieldType.UNSPECIFIED

    def output_key(self, default_key: str) -> str:
        """Key the field is written under."""
        return self.field_alias or default_key


@dataclass(frozen=True)
class FieldDescriptor:
    """One entry of a ResourceSchema: attribute name, output key, annotation."""

    name: str
    key: str
    annotation: Any

    @property
    def python_type(self) -> Optional[type]:
        return _resolve_type(self.annotation)


class ResourceSchema:
    """
    Descriptor table for a resource type.

    Built from dataclasses (output key from ``metadata={"json": ...}``,
    ``"-"`` hides the field) or pydantic models (output key from
    ``serialization_alias`` / ``alias``, ``exclude=True`` hides the field).
    """

    def __init__(self, resource_type: type, fields: List[FieldDescriptor]) -> None:
        self.resource_type = resource_type
        self._fields: Dict[str, FieldDescriptor] = {f.name: f for f in fields}

    @property
    def type_name(self) -> str:
        return self.resource_type.__name__

    @property
    def fields(self) -> List[FieldDescriptor]:
        return list(self._fields.values())

    def get(self, name: str) -> Optional[FieldDescriptor]:
        return self._fields.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    @classmethod
    def from_prototype(cls, prototype: Any) -> "ResourceSchema":
        """
        Resolve the schema of a prototype resource.

        Args:
            prototype: A dataclass / pydantic model instance, or the class itself

        Returns:
            The (cached) schema for the prototype's type

        Raises:
            ConfigurationError: If the prototype is None or not structural
        """
        if prototype is None:
            raise ConfigurationError("Prototype resource is None")
        resource_type = prototype if isinstance(prototype, type) else type(prototype)
        return _schema_for_type(resource_type)


@lru_cache(maxsize=None)
def _schema_for_type(resource_type: type) -> ResourceSchema:
    if issubclass(resource_type, BaseModel):
        fields = [
            FieldDescriptor(
                name=name,
                key=info.serialization_alias or info.alias or name,
                annotation=info.annotation,
            )
            for name, info in resource_type.model_fields.items()
            if not info.exclude
        ]
    elif dataclasses.is_dataclass(resource_type):
        hints = typing.get_type_hints(resource_type)
        fields = []
        for f in dataclasses.fields(resource_type):
            key = f.metadata.get("json", f.name)
            if key == "-":
                continue
            fields.append(FieldDescriptor(f.name, key, hints.get(f.name, f.type)))
    else:
        raise ConfigurationError(
            f"Resource type '{resource_type.__name__}' must be a dataclass or pydantic model"
        )
    return ResourceSchema(resource_type, fields)


def _resolve_type(annotation: Any) -> Optional[type]:
    """Reduce an annotation to a concrete class, unwrapping Optional/Annotated."""
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return _resolve_type(typing.get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) != 1:
            return None
        return _resolve_type(args[0])
    if origin is not None:
        return origin if isinstance(origin, type) else None
    return annotation if isinstance(annotation, type) else None


def _type_matches(expected: FieldType, actual: Optional[type]) -> bool:
    if actual is None:
        return False
    # bool is an int subclass
    if expected in (FieldType.INT, FieldType.FLOAT) and issubclass(actual, bool):
        return False
    return issubclass(actual, _PYTHON_TYPES[expected])


# =============================================================================
# Validation (startup)
# =============================================================================


def validate_field(schema: ResourceSchema, rule: Rule) -> None:
    """
    Check a single rule against a resource schema.

    Raises:
        ConfigurationError: If the field is missing or has a different type
    """
    descriptor = schema.get(rule.field)
    if descriptor is None:
        raise ConfigurationError(
            f"Invalid Rule for {schema.type_name}: field '{rule.field}' does not exist",
            field=rule.field,
        )

    if rule.type is FieldType.UNSPECIFIED:
        return

    actual = descriptor.python_type
    if not _type_matches(rule.type, actual):
        actual_name = actual.__name__ if actual is not None else repr(descriptor.annotation)
        raise ConfigurationError(
            f"Invalid Rule for {schema.type_name}: field '{rule.field}' "
            f"is type {actual_name}, not {rule.type.value}",
            field=rule.field,
        )


def validate_output_keys(schema: ResourceSchema, rules: Sequence[Rule]) -> None:
    """
    Check that no two fields are written under the same output key.

    Raises:
        ConfigurationError: If an alias collides with another field's key
    """
    by_field = {rule.field: rule for rule in rules}
    owners: Dict[str, str] = {}
    for descriptor in schema.fields:
        rule = by_field.get(descriptor.name)
        key = rule.output_key(descriptor.key) if rule else descriptor.key
        other = owners.get(key)
        if other is not None:
            aliased = descriptor.name if rule and rule.field_alias else other
            raise ConfigurationError(
                f"Invalid Rule for {schema.type_name}: fields '{other}' and "
                f"'{descriptor.name}' are both written as '{key}'",
                field=aliased,
            )
        owners[key] = descriptor.name


def validate_rules(
    prototype: Any,
    rules: Sequence[Rule],
    resource_name: Optional[str] = None,
) -> Optional[ResourceSchema]:
    """
    Check every rule of a handler against its prototype resource.

    An empty rule set is always valid and the prototype is not inspected.

    Returns:
        The resolved schema, or None when there are no rules
    """
    if not rules:
        return None

    try:
        schema = ResourceSchema.from_prototype(prototype)
        for rule in rules:
            validate_field(schema, rule)
        validate_output_keys(schema, rules)
    except ConfigurationError as e:
        if resource_name is None:
            raise
        raise ConfigurationError(
            f"Resource '{resource_name}': {e}",
            resource_name=resource_name,
            field=e.field,
        ) from e
    return schema


# =============================================================================
# Projection (per request)
# =============================================================================


def _is_structural(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def apply_output_rules(resource: Any, rules: Sequence[Rule]) -> Any:
    """
    Project a resource into its output mapping.

    Every field is written under its default key, or under the rule's
    alias when a rule names the field. Lists are projected element-wise.

    Args:
        resource: Resource value returned by a handler
        rules: The handler's rules

    Returns:
        JSON-compatible projection of the resource
    """
    if resource is None:
        return None

    if isinstance(resource, (list, tuple)):
        return [apply_output_rules(item, rules) for item in resource]

    by_field = {rule.field: rule for rule in rules}

    if isinstance(resource, Mapping):
        projected = {}
        for key, value in resource.items():
            rule = by_field.get(key)
            projected[rule.output_key(key) if rule else key] = jsonable_encoder(value)
        return projected

    if _is_structural(resource):
        schema = ResourceSchema.from_prototype(resource)
        projected = {}
        for descriptor in schema.fields:
            rule = by_field.get(descriptor.name)
            key = rule.output_key(descriptor.key) if rule else descriptor.key
            projected[key] = jsonable_encoder(getattr(resource, descriptor.name))
        return projected

    return jsonable_encoder(resource)


def _coerce(rule: Rule, key: str, value: Any) -> Any:
    if value is None or rule.type is FieldType.UNSPECIFIED:
        return value

    if rule.type is FieldType.DATETIME:
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                pass
        raise PayloadError(f"Field '{key}' should be an ISO-8601 datetime")

    if rule.type is FieldType.DURATION:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return timedelta(seconds=value)
        raise PayloadError(f"Field '{key}' should be a duration in seconds")

    if rule.type is FieldType.FLOAT and isinstance(value, int) and not isinstance(value, bool):
        return float(value)

    if not _type_matches(rule.type, type(value)):
        raise PayloadError(f"Type of field '{key}' should be {rule.type.value}")
    return value


def apply_input_rules(
    payload: Mapping[str, Any],
    rules: Sequence[Rule],
    schema: Optional[ResourceSchema] = None,
) -> Dict[str, Any]:
    """
    Bind an incoming payload through the rules.

    Output-only fields are dropped, aliased keys are renamed back to the
    field's default key and declared types are checked.

    Raises:
        PayloadError: If a value does not have its rule's declared type
    """
    data = dict(payload)
    for rule in rules:
        descriptor = schema.get(rule.field) if schema is not None else None
        default_key = descriptor.key if descriptor is not None else rule.field
        incoming_key = rule.output_key(default_key)

        if rule.output_only:
            data.pop(incoming_key, None)
            data.pop(default_key, None)
            continue

        if incoming_key not in data:
            continue
        value = data.pop(incoming_key)
        data[default_key] = _coerce(rule, incoming_key, value)
    return data
