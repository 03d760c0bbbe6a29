"""Dependency records and resolved dependency edges."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import IntEnum

from solution_reaper.models.component import (
    ComponentDescriptor,
    ComponentKind,
    ComponentRef,
    SolutionRef,
)


class DependencyKind(IntEnum):
    """How strongly the dependent component is tied to the required one."""

    NONE = 0
    SOLUTION_INTERNAL = 1
    PUBLISHED = 2
    UNPUBLISHED = 4

    @classmethod
    def _missing_(cls, value: object) -> DependencyKind | None:
        return cls.NONE if isinstance(value, int) else None


@dataclass(frozen=True)
class DependencyRecord:
    """One dependency row exactly as the store reports it.

    The *dependent* component cannot be removed while the *required* one
    exists, unless the dependency is solution-internal.
    """

    dependency_id: uuid.UUID
    dependency_kind: DependencyKind
    dependent_kind: ComponentKind
    dependent_id: uuid.UUID
    dependent_solution_id: uuid.UUID | None
    required_kind: ComponentKind
    required_id: uuid.UUID
    required_solution_id: uuid.UUID | None

    @property
    def dependent_ref(self) -> ComponentRef:
        return ComponentRef(self.dependent_kind, self.dependent_id)

    @property
    def required_ref(self) -> ComponentRef:
        return ComponentRef(self.required_kind, self.required_id)

    @property
    def blocks_delete(self) -> bool:
        return self.dependency_kind != DependencyKind.SOLUTION_INTERNAL


@dataclass
class DependencyEdge:
    """A dependency record with both endpoints described."""

    dependency_id: uuid.UUID
    kind: DependencyKind
    dependent: ComponentDescriptor
    dependent_solution: SolutionRef | None
    required: ComponentDescriptor
    required_solution: SolutionRef | None
    depth: int = 1

    def to_dict(self) -> dict:
        return {
            "dependency_id": str(self.dependency_id),
            "dependency_kind": self.kind.name,
            "depth": self.depth,
            "dependent": self.dependent.to_dict(),
            "dependent_solution": str(self.dependent_solution) if self.dependent_solution else None,
            "required": self.required.to_dict(),
            "required_solution": str(self.required_solution) if self.required_solution else None,
        }

    def __str__(self) -> str:
        return f"{self.dependent} -> {self.required}"
