from __future__ import annotations

from typing import Any, Optional, Union

from trafficspec.domain.models import JsonKind, Schema

ENUM_MAX_LENGTH = 10


def json_kind(value: Any) -> JsonKind:
    """
    Classify a decoded JSON value.

    bool is checked before int (bool subclasses int); a float with no
    fractional part counts as an integer.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "integer" if value.is_integer() else "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    raise TypeError(f"not a JSON value: {type(value).__name__}")


def widen_type(
    current: Optional[Union[JsonKind, list[JsonKind]]], kind: JsonKind
) -> Union[JsonKind, list[JsonKind]]:
    """Return `current` widened by `kind`; existing tags keep their order."""
    if current is None:
        return kind
    if isinstance(current, list):
        if kind in current:
            return current
        return [*current, kind]
    if current == kind:
        return current
    return [current, kind]


def merge_schema(schema: Schema, value: Any, enum_max_length: int = ENUM_MAX_LENGTH) -> Schema:
    """
    Merge one observed JSON value into `schema` in place and return it.

    Monotonic: tags, properties, items and enum values are only ever added.
    """
    kind = json_kind(value)
    schema.type = widen_type(schema.type, kind)

    if kind == "null":
        return schema

    if kind == "array":
        if schema.items is None:
            schema.items = Schema()
        for element in value:
            merge_schema(schema.items, element, enum_max_length)

    elif kind == "object":
        if schema.properties is None:
            schema.properties = {}
        for key, child in value.items():
            prop = schema.properties.setdefault(key, Schema())
            merge_schema(prop, child, enum_max_length)

    elif kind == "string":
        # short strings are enum candidates
        if len(value) < enum_max_length:
            if schema.enum is None:
                schema.enum = []
            if value not in schema.enum:
                schema.enum.append(value)

    return schema


def infer_schema(value: Any, enum_max_length: int = ENUM_MAX_LENGTH) -> Schema:
    return merge_schema(Schema(), value, enum_max_length)
