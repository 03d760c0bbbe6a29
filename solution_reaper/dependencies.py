"""Dependency queries against the store, tolerant of dangling references."""

from __future__ import annotations

import enum

import structlog

from solution_reaper.exceptions import ObjectNotFoundError
from solution_reaper.models.component import ComponentRef
from solution_reaper.models.dependency import DependencyRecord
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.dependencies")


class Direction(enum.Enum):
    """Which side of a dependency edge a query starts from."""

    DEPENDENTS = "dependents"
    REQUIREMENTS = "requirements"


class DependencyQueryAdapter:
    """Wrap the three store dependency queries.

    A target that no longer exists yields an empty list and a warning;
    dependency rows routinely point at objects deleted since they were
    recorded. Any other store failure propagates.
    """

    def __init__(self, store: ComponentStore) -> None:
        self._store = store

    def required_for_delete(self, ref: ComponentRef) -> list[DependencyRecord]:
        """Dependencies blocking deletion of *ref* (ref is the required side)."""
        return self._run(self._store.retrieve_dependencies_for_delete, "for_delete", ref)

    def dependents_of(self, ref: ComponentRef) -> list[DependencyRecord]:
        return self._run(self._store.retrieve_dependent_components, "dependents", ref)

    def requirements_of(self, ref: ComponentRef) -> list[DependencyRecord]:
        return self._run(self._store.retrieve_required_components, "requirements", ref)

    def query(self, direction: Direction, ref: ComponentRef) -> list[DependencyRecord]:
        if direction is Direction.DEPENDENTS:
            return self.dependents_of(ref)
        return self.requirements_of(ref)

    def _run(self, call, query: str, ref: ComponentRef) -> list[DependencyRecord]:
        try:
            return list(call(ref.kind, ref.object_id))
        except ObjectNotFoundError as exc:
            log.warning(
                "dependencies.object_not_found",
                query=query,
                kind=ref.kind.name,
                object_id=str(ref.object_id),
                error=str(exc),
            )
            return []
