from __future__ import annotations


class TrafficSpecError(Exception):
    """Base exception for all trafficspec errors."""


class ParameterLocationConflict(TrafficSpecError):
    """Raised when a parameter name shows up under a second location on one operation."""

    def __init__(self, name: str, existing: str, observed: str, operation: str = ""):
        where = f" on {operation}" if operation else ""
        super().__init__(
            f"Spec parameter {name!r}{where} seen in both {existing} and {observed}"
        )
        self.name = name
        self.existing = existing
        self.observed = observed
        self.operation = operation


class SpecStoreError(TrafficSpecError):
    """Raised when the spec document cannot be read, parsed or written."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
