"""Component and dependency data types."""

from solution_reaper.models.component import (
    STRUCTURAL_KINDS,
    ComponentDescriptor,
    ComponentKind,
    ComponentRef,
    SolutionComponent,
    SolutionRef,
    StructuralMetadata,
)
from solution_reaper.models.dependency import DependencyEdge, DependencyKind, DependencyRecord

__all__ = [
    "ComponentDescriptor",
    "ComponentKind",
    "ComponentRef",
    "DependencyEdge",
    "DependencyKind",
    "DependencyRecord",
    "STRUCTURAL_KINDS",
    "SolutionComponent",
    "SolutionRef",
    "StructuralMetadata",
]
