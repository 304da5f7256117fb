from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# exactly two non-empty segments: /<collection>/<identifier>[/]
_TEMPLATED = re.compile(r"^/([^/]+)/([^/]+)/?$")
_MULTI_SLASH = re.compile(r"/{2,}")

ROOT_RESOURCE = "body"


@dataclass(frozen=True)
class ClassifiedPath:
    template: str
    resource_type: str
    path_id: Optional[str] = None

    @property
    def is_templated(self) -> bool:
        return self.path_id is not None


def normalize_base_path(base_path: str) -> str:
    p = (base_path or "").strip()
    if not p.startswith("/"):
        p = "/" + p
    p = _MULTI_SLASH.sub("/", p)
    # "/" stays as-is, otherwise drop the trailing slash so "/api" and "/api/" match alike
    if p != "/" and p.endswith("/"):
        p = p[:-1]
    return p


def strip_base_path(path: str, base_path: str) -> str:
    """Remove `base_path` from the front of `path`, leaving a path rooted at "/"."""
    base = normalize_base_path(base_path)
    rest = path[len(base):] if base != "/" and path.startswith(base) else path
    if not rest.startswith("/"):
        rest = "/" + rest
    return rest


def singularize(resource_type: str) -> str:
    # one trailing "s" only: "users" -> "user", "address" -> "addres"
    return resource_type[:-1] if resource_type.endswith("s") else resource_type


def classify_path(path: str, base_path: str = "/") -> ClassifiedPath:
    """
    Map a concrete request path to its template.

    /users/42 -> /users/{id}, resource "user", id "42"
    /users    -> /users, resource "users"
    /a/b/c    -> /a/b/c verbatim, no id
    """
    relative = strip_base_path(path, base_path)

    m = _TEMPLATED.match(relative)
    if m:
        collection, identifier = m.group(1), m.group(2)
        return ClassifiedPath(
            template=f"/{collection}/{{id}}",
            resource_type=singularize(collection),
            path_id=identifier,
        )

    resource = relative[1:] or ROOT_RESOURCE
    return ClassifiedPath(template=relative, resource_type=resource)
