from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, field_validator

from trafficspec.paths.classifier import normalize_base_path
from trafficspec.schema.engine import ENUM_MAX_LENGTH

ConflictPolicy = Literal["warn", "raise"]


def host_key(host: str, port: Optional[int]) -> str:
    """Lowercased host[:port] used to match requests against the target."""
    key = (host or "localhost").lower()
    if port:
        key = f"{key}:{port}"
    return key


class CaptureConfig(BaseModel):
    """Activation settings for one capture session."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    spec_path: Path
    conflict_policy: ConflictPolicy = "warn"
    enum_max_length: int = ENUM_MAX_LENGTH
    resume: bool = False

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str) -> str:
        url = httpx.URL(v)
        if not url.host:
            raise ValueError(f"base_url needs a host: {v!r}")
        return v

    @field_validator("enum_max_length")
    @classmethod
    def _check_enum_max_length(cls, v: int) -> int:
        if v < 0:
            raise ValueError("enum_max_length must be >= 0")
        return v

    @property
    def target_host(self) -> str:
        url = httpx.URL(self.base_url)
        return host_key(url.host, url.port)

    @property
    def base_path(self) -> str:
        return normalize_base_path(httpx.URL(self.base_url).path)
