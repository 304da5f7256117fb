from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

import httpx

QueryValue = Union[str, list[str]]


class _NotJson:
    def __repr__(self) -> str:
        return "NOT_JSON"


# JSON `null` decodes to None, so a separate marker is needed for "did not parse"
NOT_JSON: Any = _NotJson()


def decode_json(body: bytes) -> Any:
    """Decode a UTF-8 JSON body, or return NOT_JSON."""
    if not body:
        return NOT_JSON
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return NOT_JSON


def query_from_url(url: httpx.URL) -> dict[str, QueryValue]:
    """Group query items by name; repeated keys become lists."""
    out: dict[str, QueryValue] = {}
    for key, value in url.params.multi_items():
        if key not in out:
            out[key] = value
        elif isinstance(out[key], list):
            out[key].append(value)
        else:
            out[key] = [out[key], value]
    return out


@dataclass(frozen=True)
class CapturedExchange:
    """One matched request paired with its completed response."""

    method: str
    path: str
    status_code: int
    response_body: bytes
    request_body: bytes = b""
    query: dict[str, QueryValue] = field(default_factory=dict)

    @classmethod
    def from_httpx(cls, request: httpx.Request, status_code: int, response_body: bytes) -> "CapturedExchange":
        return cls(
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            response_body=response_body,
            request_body=request.content,
            query=query_from_url(request.url),
        )
