from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

JsonKind = Literal["null", "boolean", "integer", "number", "string", "array", "object"]
ParamLocation = Literal["query", "path", "body"]

JSON_MEDIA_TYPE = "application/json"
SWAGGER_VERSION = "2.0"


class Schema(BaseModel):
    """Structural shape inferred from observed JSON values."""

    type: Optional[Union[JsonKind, list[JsonKind]]] = None
    properties: Optional[dict[str, Schema]] = None
    items: Optional[Schema] = None
    enum: Optional[list[str]] = None

    def type_set(self) -> set[str]:
        if self.type is None:
            return set()
        if isinstance(self.type, list):
            return set(self.type)
        return {self.type}


class Parameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: ParamLocation = Field(alias="in")
    type: Optional[Union[JsonKind, list[JsonKind]]] = None
    schema_: Optional[Schema] = Field(default=None, alias="schema")


class Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_: Schema = Field(default_factory=Schema, alias="schema")
    examples: dict[str, Any] = Field(default_factory=dict)


class Operation(BaseModel):
    parameters: list[Parameter] = Field(default_factory=list)
    # keyed by status code as text, JSON object keys are strings
    responses: dict[str, Response] = Field(default_factory=dict)
    consumes: list[str] = Field(default_factory=lambda: [JSON_MEDIA_TYPE])
    produces: list[str] = Field(default_factory=lambda: [JSON_MEDIA_TYPE])

    def find_parameter(self, name: str) -> Optional[Parameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


PathItem = dict[str, Operation]


class SpecDocument(BaseModel):
    """Root of the persisted document: template path -> method -> operation."""

    model_config = ConfigDict(extra="allow")

    swagger: str = SWAGGER_VERSION
    paths: dict[str, PathItem] = Field(default_factory=dict)

    def operation(self, path: str, method: str) -> Operation:
        path_item = self.paths.setdefault(path, {})
        return path_item.setdefault(method.lower(), Operation())

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
