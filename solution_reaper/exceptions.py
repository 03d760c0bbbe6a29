"""Custom exceptions for solution-reaper."""

from __future__ import annotations

from typing import Any


class ReaperError(Exception):
    """Base exception for all solution-reaper errors."""


class ObjectNotFoundError(ReaperError):
    """Raised when the store has no object for a (kind, id) pair.

    Dependency records may outlive the objects they point at, so callers
    treat this as a warning rather than a failure.
    """

    def __init__(self, kind: Any, object_id: Any, message: str | None = None):
        self.kind = kind
        self.object_id = object_id
        super().__init__(message or f"{kind} {object_id} not found")


class StoreFaultError(ReaperError):
    """Raised for any store failure other than a missing object."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class SolutionNotFoundError(ReaperError):
    """Raised when a solution unique name does not resolve."""

    def __init__(self, unique_name: str):
        self.unique_name = unique_name
        super().__init__(f"Solution {unique_name} could not be found")


class UnknownComponentKindError(ReaperError, ValueError):
    """Raised when a component kind name or code cannot be parsed."""
