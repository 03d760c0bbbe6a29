"""Solution membership: list, add and remove components of a solution."""

from __future__ import annotations

import structlog

from solution_reaper.exceptions import SolutionNotFoundError
from solution_reaper.models.component import (
    STRUCTURAL_KINDS,
    ComponentRef,
    SolutionComponent,
    SolutionRef,
)
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.solutions")


class SolutionManager:
    """Membership operations on solutions addressed by unique name.

    Nothing here deletes a component; removal only drops it from the
    solution.
    """

    def __init__(self, store: ComponentStore) -> None:
        self._store = store

    def get_solution(self, unique_name: str) -> SolutionRef:
        solution = self._store.find_solution(unique_name)
        if solution is None:
            raise SolutionNotFoundError(unique_name)
        return solution

    def list_components(
        self, unique_name: str, *, root_only: bool = False
    ) -> list[SolutionComponent]:
        solution = self.get_solution(unique_name)
        return self._store.list_solution_components(solution.solution_id, root_only=root_only)

    def contains(self, unique_name: str, ref: ComponentRef) -> bool:
        solution = self.get_solution(unique_name)
        row = self._store.find_solution_component(ref.object_id, solution.solution_id)
        return row is not None

    def add_component(self, ref: ComponentRef, unique_name: str | None) -> bool:
        """Add *ref* to the solution. Returns ``False`` when nothing was done.

        An empty solution name is a no-op, as is a component already in the
        solution. Entities, attributes, relationships and option sets are
        added without their sub-components.
        """
        if not unique_name:
            return False
        if self.contains(unique_name, ref):
            log.debug("solutions.already_present", solution=unique_name, component=str(ref))
            return False
        self._store.add_component_to_solution(
            ref.kind,
            ref.object_id,
            unique_name,
            include_subcomponents=ref.kind not in STRUCTURAL_KINDS,
        )
        log.info("solutions.component_added", solution=unique_name, component=str(ref))
        return True

    def remove_component(self, ref: ComponentRef, unique_name: str) -> bool:
        if not self.contains(unique_name, ref):
            log.warning(
                "solutions.component_not_in_solution", solution=unique_name, component=str(ref)
            )
            return False
        self._store.remove_component_from_solution(ref.kind, ref.object_id, unique_name)
        log.info("solutions.component_removed", solution=unique_name, component=str(ref))
        return True

    def remove_all_components(self, unique_name: str) -> int:
        """Remove every root component; returns how many were removed."""
        removed = 0
        for row in self.list_components(unique_name, root_only=True):
            self._store.remove_component_from_solution(row.kind, row.object_id, unique_name)
            removed += 1
        log.info("solutions.all_removed", solution=unique_name, removed=removed)
        return removed
