"""Component store abstract interface."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

from solution_reaper.models.component import (
    ComponentKind,
    SolutionComponent,
    SolutionRef,
    StructuralMetadata,
)
from solution_reaper.models.dependency import DependencyRecord


class ComponentStore(ABC):
    """Remote system of record holding components, solutions and dependencies.

    Every call is a blocking round trip. Implementations raise
    :class:`~solution_reaper.exceptions.ObjectNotFoundError` when the target
    object does not exist and
    :class:`~solution_reaper.exceptions.StoreFaultError` for anything else.
    """

    # ── Dependency queries ──

    @abstractmethod
    def retrieve_dependencies_for_delete(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        """Dependencies that must be cleared before the object can be deleted."""
        ...

    @abstractmethod
    def retrieve_dependent_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        """Dependencies whose required component is the object."""
        ...

    @abstractmethod
    def retrieve_required_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        """Dependencies whose dependent component is the object."""
        ...

    @abstractmethod
    def retrieve_missing_dependencies(self, solution_unique_name: str) -> list[DependencyRecord]:
        """Dependencies of the solution's components on components outside it."""
        ...

    # ── Reads ──

    @abstractmethod
    def fetch_record(
        self, kind: ComponentKind, object_id: uuid.UUID, columns: list[str]
    ) -> dict[str, Any]:
        """Read one record of a record-backed kind, limited to *columns*."""
        ...

    @abstractmethod
    def fetch_metadata(self, kind: ComponentKind, object_id: uuid.UUID) -> StructuralMetadata:
        """Read schema metadata of a structural kind by metadata id."""
        ...

    @abstractmethod
    def fetch_entity_metadata_by_name(self, logical_name: str) -> StructuralMetadata:
        ...

    @abstractmethod
    def get_solution(self, solution_id: uuid.UUID) -> SolutionRef:
        ...

    @abstractmethod
    def find_solution(self, unique_name: str) -> SolutionRef | None:
        ...

    @abstractmethod
    def solutions_containing(self, object_id: uuid.UUID) -> list[SolutionRef]:
        ...

    @abstractmethod
    def find_solution_component(
        self, object_id: uuid.UUID, solution_id: uuid.UUID
    ) -> SolutionComponent | None:
        ...

    @abstractmethod
    def list_solution_components(
        self, solution_id: uuid.UUID, *, root_only: bool = False
    ) -> list[SolutionComponent]:
        ...

    # ── Writes ──

    @abstractmethod
    def delete(self, kind: ComponentKind, object_id: uuid.UUID) -> None:
        ...

    @abstractmethod
    def delete_structural_type(self, logical_name: str) -> None:
        ...

    @abstractmethod
    def delete_relationship(self, schema_name: str) -> None:
        ...

    @abstractmethod
    def delete_option_set(self, name: str) -> None:
        ...

    @abstractmethod
    def set_state(
        self, kind: ComponentKind, object_id: uuid.UUID, state: int, status: int
    ) -> None:
        ...

    @abstractmethod
    def update(self, kind: ComponentKind, object_id: uuid.UUID, fields: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def add_component_to_solution(
        self,
        kind: ComponentKind,
        object_id: uuid.UUID,
        solution_name: str,
        *,
        include_subcomponents: bool = True,
    ) -> None:
        ...

    @abstractmethod
    def remove_component_from_solution(
        self, kind: ComponentKind, object_id: uuid.UUID, solution_name: str
    ) -> None:
        ...

    # ── Lifecycle ──

    def close(self) -> None:
        """Release transport resources. No-op by default."""

    def __enter__(self) -> ComponentStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
