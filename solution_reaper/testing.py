"""Test doubles for solution_reaper: an in-process component store.

Usage::

    from solution_reaper.testing import InMemoryComponentStore

    store = InMemoryComponentStore()
    sol = store.add_solution("contoso")
    assembly = store.add_record(ComponentKind.PLUGIN_ASSEMBLY, name="Contoso", solution=sol)
    step = store.add_record(ComponentKind.SDK_MESSAGE_PROCESSING_STEP, name="Create", solution=sol)
    store.add_dependency(step, assembly)

By default the store enforces the platform's delete rule: an object whose
blocking dependents still exist cannot be deleted, so tests observe ordering
mistakes as :class:`StoreFaultError`. Pass ``enforce_dependencies=False``
for graphs (cycles) the real platform would refuse to delete.
"""

from __future__ import annotations

import uuid
from collections import Counter
from typing import Any

from solution_reaper.catalog import table_for
from solution_reaper.exceptions import ObjectNotFoundError, StoreFaultError
from solution_reaper.models.component import (
    STRUCTURAL_KINDS,
    ComponentKind,
    ComponentRef,
    SolutionComponent,
    SolutionRef,
    StructuralMetadata,
)
from solution_reaper.models.dependency import DependencyKind, DependencyRecord
from solution_reaper.store.base import ComponentStore

# Error code the platform returns when blocking dependencies remain.
DEPENDENCIES_EXIST_CODE = "0x8004f01f"


class InMemoryComponentStore(ComponentStore):
    """Drop-in replacement for the Web API store.

    Attributes useful for assertions:

    ``calls``
        Every mutation, in order, as a tuple ``(operation, *args)``.
    ``deleted``
        References removed by any delete operation, in order.
    ``fetch_counts``
        Number of ``fetch_record`` calls per object id.
    """

    def __init__(self, *, enforce_dependencies: bool = True) -> None:
        self.enforce_dependencies = enforce_dependencies
        self.records: dict[ComponentRef, dict[str, Any]] = {}
        self.metadata: dict[ComponentRef, StructuralMetadata] = {}
        self.solutions: dict[uuid.UUID, SolutionRef] = {}
        self.solution_components: list[SolutionComponent] = []
        self.dependencies: list[DependencyRecord] = []
        self.calls: list[tuple] = []
        self.deleted: list[ComponentRef] = []
        self.fetch_counts: Counter[uuid.UUID] = Counter()
        self._failures: dict[tuple[str, uuid.UUID | None], Exception] = {}

    # ── builders ───────────────────────────────────────────────────────────

    def add_solution(self, unique_name: str, solution_id: uuid.UUID | None = None) -> SolutionRef:
        solution = SolutionRef(solution_id or uuid.uuid4(), unique_name)
        self.solutions[solution.solution_id] = solution
        return solution

    def add_record(
        self,
        kind: ComponentKind,
        object_id: uuid.UUID | None = None,
        *,
        solution: SolutionRef | None = None,
        **fields: Any,
    ) -> ComponentRef:
        """Add a record-backed component; *fields* are its column values."""
        ref = ComponentRef(kind, object_id or uuid.uuid4())
        table = table_for(kind)
        record = {"ismanaged": False, **fields}
        if table is not None:
            record.setdefault(table.primary_key, str(ref.object_id))
        self.records[ref] = record
        if solution is not None:
            self._add_membership(ref, solution.solution_id)
        return ref

    def add_metadata(
        self,
        kind: ComponentKind,
        name: str,
        object_id: uuid.UUID | None = None,
        *,
        is_managed: bool = False,
        relationship_type: str | None = None,
        entity_logical_name: str | None = None,
        solution: SolutionRef | None = None,
    ) -> ComponentRef:
        """Add a structural component (entity, attribute, relationship, option set)."""
        ref = ComponentRef(kind, object_id or uuid.uuid4())
        self.metadata[ref] = StructuralMetadata(
            metadata_id=ref.object_id,
            kind=kind,
            name=name,
            is_managed=is_managed,
            relationship_type=relationship_type,
            entity_logical_name=entity_logical_name,
        )
        if solution is not None:
            self._add_membership(ref, solution.solution_id)
        return ref

    def add_dependency(
        self,
        dependent: ComponentRef,
        required: ComponentRef,
        *,
        kind: DependencyKind = DependencyKind.PUBLISHED,
        dependent_solution: SolutionRef | None = None,
        required_solution: SolutionRef | None = None,
    ) -> DependencyRecord:
        """Record that *dependent* needs *required*.

        Base solutions default to the first solution each endpoint belongs to.
        """
        record = DependencyRecord(
            dependency_id=uuid.uuid4(),
            dependency_kind=kind,
            dependent_kind=dependent.kind,
            dependent_id=dependent.object_id,
            dependent_solution_id=(
                dependent_solution.solution_id
                if dependent_solution
                else self._first_solution_id(dependent.object_id)
            ),
            required_kind=required.kind,
            required_id=required.object_id,
            required_solution_id=(
                required_solution.solution_id
                if required_solution
                else self._first_solution_id(required.object_id)
            ),
        )
        self.dependencies.append(record)
        return record

    def fail_on(self, operation: str, exc: Exception, object_id: uuid.UUID | None = None) -> None:
        """Make *operation* raise *exc* (for one object, or for every call)."""
        self._failures[(operation, object_id)] = exc

    def exists(self, ref: ComponentRef) -> bool:
        return ref in self.records or ref in self.metadata

    # ── dependency queries ─────────────────────────────────────────────────

    def retrieve_dependencies_for_delete(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        self._check_failure("retrieve_dependencies_for_delete", object_id)
        ref = self._require(kind, object_id)
        return [d for d in self.dependencies if d.required_ref == ref and d.blocks_delete]

    def retrieve_dependent_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        self._check_failure("retrieve_dependent_components", object_id)
        ref = self._require(kind, object_id)
        return [d for d in self.dependencies if d.required_ref == ref]

    def retrieve_required_components(
        self, kind: ComponentKind, object_id: uuid.UUID
    ) -> list[DependencyRecord]:
        self._check_failure("retrieve_required_components", object_id)
        ref = self._require(kind, object_id)
        return [d for d in self.dependencies if d.dependent_ref == ref]

    def retrieve_missing_dependencies(self, solution_unique_name: str) -> list[DependencyRecord]:
        self._check_failure("retrieve_missing_dependencies", None)
        solution = self._require_solution(solution_unique_name)
        members = {
            row.object_id
            for row in self.solution_components
            if row.solution_id == solution.solution_id
        }
        return [
            d
            for d in self.dependencies
            if d.dependent_id in members and d.required_id not in members
        ]

    # ── reads ──────────────────────────────────────────────────────────────

    def fetch_record(
        self, kind: ComponentKind, object_id: uuid.UUID, columns: list[str]
    ) -> dict[str, Any]:
        self.fetch_counts[object_id] += 1
        self._check_failure("fetch_record", object_id)
        record = self.records.get(ComponentRef(kind, object_id))
        if record is None:
            raise ObjectNotFoundError(kind, object_id)
        return {c: record.get(c) for c in columns}

    def fetch_metadata(self, kind: ComponentKind, object_id: uuid.UUID) -> StructuralMetadata:
        self._check_failure("fetch_metadata", object_id)
        meta = self.metadata.get(ComponentRef(kind, object_id))
        if meta is None:
            raise ObjectNotFoundError(kind, object_id)
        return meta

    def fetch_entity_metadata_by_name(self, logical_name: str) -> StructuralMetadata:
        ref = self._find_metadata(ComponentKind.ENTITY, logical_name)
        return self.metadata[ref]

    def get_solution(self, solution_id: uuid.UUID) -> SolutionRef:
        self._check_failure("get_solution", solution_id)
        solution = self.solutions.get(solution_id)
        if solution is None:
            raise ObjectNotFoundError("solution", solution_id)
        return solution

    def find_solution(self, unique_name: str) -> SolutionRef | None:
        for solution in self.solutions.values():
            if solution.unique_name == unique_name:
                return solution
        return None

    def solutions_containing(self, object_id: uuid.UUID) -> list[SolutionRef]:
        self._check_failure("solutions_containing", object_id)
        found: list[SolutionRef] = []
        for row in self.solution_components:
            if row.object_id == object_id and row.solution_id in self.solutions:
                solution = self.solutions[row.solution_id]
                if solution not in found:
                    found.append(solution)
        return found

    def find_solution_component(
        self, object_id: uuid.UUID, solution_id: uuid.UUID
    ) -> SolutionComponent | None:
        for row in self.solution_components:
            if row.object_id == object_id and row.solution_id == solution_id:
                return row
        return None

    def list_solution_components(
        self, solution_id: uuid.UUID, *, root_only: bool = False
    ) -> list[SolutionComponent]:
        return [
            row
            for row in self.solution_components
            if row.solution_id == solution_id
            and not (root_only and row.root_solution_component_id is not None)
        ]

    # ── writes ─────────────────────────────────────────────────────────────

    def delete(self, kind: ComponentKind, object_id: uuid.UUID) -> None:
        self.calls.append(("delete", kind, object_id))
        self._check_failure("delete", object_id)
        self._remove(self._require(kind, object_id))

    def delete_structural_type(self, logical_name: str) -> None:
        self.calls.append(("delete_structural_type", logical_name))
        self._remove(self._find_metadata(ComponentKind.ENTITY, logical_name))

    def delete_relationship(self, schema_name: str) -> None:
        self.calls.append(("delete_relationship", schema_name))
        self._remove(self._find_metadata(ComponentKind.ENTITY_RELATIONSHIP, schema_name))

    def delete_option_set(self, name: str) -> None:
        self.calls.append(("delete_option_set", name))
        self._remove(self._find_metadata(ComponentKind.OPTION_SET, name))

    def set_state(
        self, kind: ComponentKind, object_id: uuid.UUID, state: int, status: int
    ) -> None:
        self.calls.append(("set_state", kind, object_id, state, status))
        self._check_failure("set_state", object_id)
        ref = self._require(kind, object_id)
        self.records[ref].update(statecode=state, statuscode=status)

    def update(self, kind: ComponentKind, object_id: uuid.UUID, fields: dict[str, Any]) -> None:
        self.calls.append(("update", kind, object_id, dict(fields)))
        self._check_failure("update", object_id)
        ref = self._require(kind, object_id)
        self.records[ref].update(fields)

    def add_component_to_solution(
        self,
        kind: ComponentKind,
        object_id: uuid.UUID,
        solution_name: str,
        *,
        include_subcomponents: bool = True,
    ) -> None:
        self.calls.append(
            ("add_component_to_solution", kind, object_id, solution_name, include_subcomponents)
        )
        solution = self._require_solution(solution_name)
        ref = self._require(kind, object_id)
        if self.find_solution_component(object_id, solution.solution_id) is None:
            self._add_membership(ref, solution.solution_id)

    def remove_component_from_solution(
        self, kind: ComponentKind, object_id: uuid.UUID, solution_name: str
    ) -> None:
        self.calls.append(("remove_component_from_solution", kind, object_id, solution_name))
        solution = self._require_solution(solution_name)
        row = self.find_solution_component(object_id, solution.solution_id)
        if row is None:
            raise ObjectNotFoundError(
                kind, object_id, f"{kind.name} {object_id} not in {solution_name}"
            )
        self.solution_components.remove(row)

    # ── internal ───────────────────────────────────────────────────────────

    def _check_failure(self, operation: str, object_id: uuid.UUID | None) -> None:
        exc = self._failures.get((operation, object_id)) or self._failures.get((operation, None))
        if exc is not None:
            raise exc

    def _require(self, kind: ComponentKind, object_id: uuid.UUID) -> ComponentRef:
        ref = ComponentRef(kind, object_id)
        if not self.exists(ref):
            raise ObjectNotFoundError(kind, object_id)
        return ref

    def _require_solution(self, unique_name: str) -> SolutionRef:
        solution = self.find_solution(unique_name)
        if solution is None:
            raise ObjectNotFoundError("solution", unique_name)
        return solution

    def _find_metadata(self, kind: ComponentKind, name: str) -> ComponentRef:
        for ref, meta in self.metadata.items():
            if ref.kind == kind and meta.name == name:
                return ref
        raise ObjectNotFoundError(kind, name)

    def _first_solution_id(self, object_id: uuid.UUID) -> uuid.UUID | None:
        for row in self.solution_components:
            if row.object_id == object_id:
                return row.solution_id
        return None

    def _add_membership(self, ref: ComponentRef, solution_id: uuid.UUID) -> None:
        self.solution_components.append(
            SolutionComponent(
                solution_component_id=uuid.uuid4(),
                object_id=ref.object_id,
                kind=ref.kind,
                solution_id=solution_id,
            )
        )

    def _remove(self, ref: ComponentRef) -> None:
        blockers = [
            d
            for d in self.dependencies
            if d.required_ref == ref and d.blocks_delete and self.exists(d.dependent_ref)
        ]
        if blockers and self.enforce_dependencies:
            raise StoreFaultError(
                f"{ref} cannot be deleted: {len(blockers)} component(s) depend on it",
                status_code=400,
                error_code=DEPENDENCIES_EXIST_CODE,
            )
        if ref.kind in STRUCTURAL_KINDS:
            del self.metadata[ref]
        else:
            del self.records[ref]
        self.deleted.append(ref)
        self.dependencies = [
            d for d in self.dependencies if ref not in (d.dependent_ref, d.required_ref)
        ]
        self.solution_components = [
            row for row in self.solution_components if row.object_id != ref.object_id
        ]
