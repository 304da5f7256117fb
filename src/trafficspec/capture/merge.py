from __future__ import annotations

import logging
from typing import Any, Mapping

from trafficspec.capture.exchange import NOT_JSON, CapturedExchange, decode_json
from trafficspec.config import ConflictPolicy
from trafficspec.domain.models import JSON_MEDIA_TYPE, Operation, Parameter, ParamLocation, Response, Schema, SpecDocument
from trafficspec.errors import ParameterLocationConflict
from trafficspec.paths.classifier import classify_path
from trafficspec.schema.engine import ENUM_MAX_LENGTH, json_kind, merge_schema, widen_type

logger = logging.getLogger(__name__)


def _report_conflict(
    name: str, existing: str, observed: str, operation: str, policy: ConflictPolicy
) -> None:
    if policy == "raise":
        raise ParameterLocationConflict(name, existing, observed, operation=operation)
    logger.warning("Spec parameter %s in both %s and %s (%s)", name, existing, observed, operation)


def merge_parameters(
    operation: Operation,
    params: Mapping[str, Any],
    location: ParamLocation,
    conflict_policy: ConflictPolicy = "warn",
    enum_max_length: int = ENUM_MAX_LENGTH,
    label: str = "",
) -> None:
    """
    Merge observed parameter values into `operation.parameters`.

    New names are appended in first-seen order. A name keeps its first
    location; query/path clashes still widen the type, body/non-body clashes
    have no shared shape and are skipped.
    """
    for name, value in params.items():
        param = operation.find_parameter(name)
        if param is None:
            param = Parameter(name=name, location=location)
            if location == "body":
                param.schema_ = Schema()
            operation.parameters.append(param)
        elif param.location != location:
            _report_conflict(name, param.location, location, label, conflict_policy)
            if "body" in (param.location, location):
                continue

        if param.location == "body":
            if param.schema_ is None:
                param.schema_ = Schema()
            merge_schema(param.schema_, value, enum_max_length)
        else:
            param.type = widen_type(param.type, json_kind(value))


def merge_response(
    operation: Operation, status_code: int, body: Any, enum_max_length: int = ENUM_MAX_LENGTH
) -> None:
    key = str(status_code)
    response = operation.responses.get(key)
    if response is None:
        # only the first example per status code is kept
        response = Response(examples={JSON_MEDIA_TYPE: body})
        operation.responses[key] = response
    merge_schema(response.schema_, body, enum_max_length)


def merge_exchange(
    doc: SpecDocument,
    exchange: CapturedExchange,
    base_path: str = "/",
    conflict_policy: ConflictPolicy = "warn",
    enum_max_length: int = ENUM_MAX_LENGTH,
) -> bool:
    """
    Apply one exchange to `doc`. Returns False (doc untouched) when the
    response body is not JSON.
    """
    response_value = decode_json(exchange.response_body)
    if response_value is NOT_JSON:
        logger.debug("Skipping non-JSON response for %s %s", exchange.method, exchange.path)
        return False

    classified = classify_path(exchange.path, base_path)
    method = exchange.method.lower()
    operation = doc.operation(classified.template, method)
    label = f"{method.upper()} {classified.template}"

    merge_parameters(operation, exchange.query, "query", conflict_policy, enum_max_length, label)
    if classified.is_templated:
        merge_parameters(
            operation, {"id": classified.path_id}, "path", conflict_policy, enum_max_length, label
        )

    request_value = decode_json(exchange.request_body)
    if request_value is not NOT_JSON:
        merge_parameters(
            operation,
            {classified.resource_type: request_value},
            "body",
            conflict_policy,
            enum_max_length,
            label,
        )

    merge_response(operation, exchange.status_code, response_value, enum_max_length)
    logger.debug("Recorded %s -> %s", label, exchange.status_code)
    return True
