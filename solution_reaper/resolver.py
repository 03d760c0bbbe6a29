"""Turn a (kind, id) reference into a uniform component descriptor."""

from __future__ import annotations

import uuid
from typing import Any, Callable

import structlog

from solution_reaper.cache import EntityCache
from solution_reaper.catalog import ComponentTable, table_for
from solution_reaper.exceptions import ObjectNotFoundError
from solution_reaper.models.component import (
    ComponentDescriptor,
    ComponentKind,
    ComponentRef,
    SolutionRef,
    StructuralMetadata,
)
from solution_reaper.models.dependency import DependencyEdge, DependencyRecord
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.resolver")

# systemform.type option values
FORM_TYPES = {
    0: "Dashboard",
    1: "AppointmentBook",
    2: "Main",
    3: "MiniCampaignBO",
    4: "Preview",
    5: "Mobile - Express",
    6: "Quick View Form",
    7: "Quick Create",
    8: "Dialog",
    9: "Task Flow Form",
    10: "InteractionCentricDashboard",
    11: "Card",
    12: "Main - Interactive experience",
    100: "Other",
    101: "MainBackup",
    102: "AppointmentBookBackup",
    103: "Power BI Dashboard",
}

# (display_name, logical_name, is_managed)
_Described = tuple[str, str | None, bool | None]


def _describe_attribute(meta: StructuralMetadata) -> _Described:
    return f"{meta.name} ({meta.entity_logical_name})", meta.name, meta.is_managed


def _describe_relationship(meta: StructuralMetadata) -> _Described:
    return f"{meta.name} ({meta.relationship_type})", meta.name, meta.is_managed


def _describe_named(meta: StructuralMetadata) -> _Described:
    return meta.name, meta.name, meta.is_managed


_STRUCTURAL: dict[ComponentKind, Callable[[StructuralMetadata], _Described]] = {
    ComponentKind.ATTRIBUTE: _describe_attribute,
    ComponentKind.ENTITY: _describe_named,
    ComponentKind.ENTITY_RELATIONSHIP: _describe_relationship,
    ComponentKind.OPTION_SET: _describe_named,
}


def _describe_form(table: ComponentTable, record: dict[str, Any]) -> _Described:
    name = record.get(table.name_attribute)
    form_type = record.get("type")
    label = FORM_TYPES.get(form_type, str(form_type)) if form_type is not None else "Unknown"
    return f"{name} ({label})", name, record.get("ismanaged")


def _describe_ribbon(table: ComponentTable, record: dict[str, Any]) -> _Described:
    entity = record.get(table.name_attribute)
    return f"Ribbon {entity}", entity, record.get("ismanaged")


def _describe_record(table: ComponentTable, record: dict[str, Any]) -> _Described:
    name = record.get(table.name_attribute)
    return name, name, record.get("ismanaged")


# Record kinds whose display name needs more than the name attribute,
# with the extra columns each one reads.
_RECORD_OVERRIDES: dict[ComponentKind, tuple[tuple[str, ...], Callable]] = {
    ComponentKind.SYSTEM_FORM: (("type",), _describe_form),
    ComponentKind.RIBBON_CUSTOMIZATION: ((), _describe_ribbon),
}


class ComponentResolver:
    """Describe components of any kind, reading through the session cache."""

    def __init__(self, store: ComponentStore, cache: EntityCache) -> None:
        self._store = store
        self._cache = cache

    def resolve(self, ref: ComponentRef) -> ComponentDescriptor:
        """Build a descriptor for *ref*.

        A missing object yields a descriptor whose name, logical name and
        managed flag are all ``None``; it never raises for that case.
        """
        solutions = self.solutions_containing(ref.object_id)
        try:
            display, logical, managed = self._describe(ref)
        except ObjectNotFoundError:
            log.warning(
                "resolver.object_not_found", kind=ref.kind.name, object_id=str(ref.object_id)
            )
            return ComponentDescriptor(ref, solutions=solutions)
        return ComponentDescriptor(
            ref,
            display_name=display,
            logical_name=logical,
            is_managed=managed,
            solutions=solutions,
        )

    def _describe(self, ref: ComponentRef) -> _Described:
        structural = _STRUCTURAL.get(ref.kind)
        if structural is not None:
            return structural(self._store.fetch_metadata(ref.kind, ref.object_id))

        table = table_for(ref.kind)
        if table is None:
            return f"{ref.kind.name} {ref.object_id}", None, None

        extra, describe = _RECORD_OVERRIDES.get(ref.kind, ((), _describe_record))
        record = self._cache.get(ref.kind, ref.object_id, table.projection(*extra))
        return describe(table, record)

    def solutions_containing(self, object_id: uuid.UUID) -> list[SolutionRef]:
        def load() -> list[SolutionRef]:
            try:
                return self._store.solutions_containing(object_id)
            except ObjectNotFoundError:
                return []

        return self._cache.get_or_load(("solutions_containing", object_id), load)

    def solution(self, solution_id: uuid.UUID | None) -> SolutionRef | None:
        """Solution by id; the unique name is ``None`` when it cannot be read."""
        if solution_id is None:
            return None

        def load() -> SolutionRef:
            try:
                return self._store.get_solution(solution_id)
            except ObjectNotFoundError:
                log.warning("resolver.solution_not_found", solution_id=str(solution_id))
                return SolutionRef(solution_id)

        return self._cache.get_or_load(("solution", solution_id), load)

    def describe_edge(self, record: DependencyRecord, depth: int = 1) -> DependencyEdge:
        return DependencyEdge(
            dependency_id=record.dependency_id,
            kind=record.dependency_kind,
            dependent=self.resolve(record.dependent_ref),
            dependent_solution=self.solution(record.dependent_solution_id),
            required=self.resolve(record.required_ref),
            required_solution=self.solution(record.required_solution_id),
            depth=depth,
        )
