"""Built-in deletion strategies, one per component kind family.

Each strategy has the signature ``(deleter, ref, context) -> DeletionOutcome``
and runs after every blocker of *ref* has already been handled. Strategies
raise :class:`~solution_reaper.exceptions.ObjectNotFoundError` freely; the
dispatcher turns it into ``NOT_FOUND``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from solution_reaper.catalog import (
    WORKFLOW_CATEGORY_BUSINESS_PROCESS_FLOW,
    WORKFLOW_STATE_ACTIVATED,
    WORKFLOW_STATE_DRAFT,
    WORKFLOW_STATUS_DRAFT,
    ComponentTable,
    table_for,
)
from solution_reaper.deletion.flow import strip_composite_activities
from solution_reaper.deletion.report import DeletionOutcome
from solution_reaper.exceptions import ObjectNotFoundError, UnknownComponentKindError
from solution_reaper.models.component import ComponentKind, ComponentRef

if TYPE_CHECKING:
    from solution_reaper.deletion.dispatcher import CascadingDeleter, DeletionContext

log = structlog.get_logger("solution_reaper.deletion")


# ── structural kinds ──


def delete_entity(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    meta = deleter.store.fetch_metadata(ref.kind, ref.object_id)
    context.note(name=meta.name)
    if deleter.skip_managed(ref, meta.is_managed):
        return DeletionOutcome.SKIPPED_MANAGED
    if not deleter.should_process(f"Delete entity {meta.name}"):
        return DeletionOutcome.DECLINED
    deleter.store.delete_structural_type(meta.name)
    return DeletionOutcome.DELETED


def delete_relationship(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    meta = deleter.store.fetch_metadata(ref.kind, ref.object_id)
    context.note(name=meta.name)
    if deleter.skip_managed(ref, meta.is_managed):
        return DeletionOutcome.SKIPPED_MANAGED
    # Second pass over blockers; anything already visited is a no-op.
    deleter.clear_blockers(ref, context)
    if not deleter.should_process(f"Delete relationship {meta.name}"):
        return DeletionOutcome.DECLINED
    deleter.store.delete_relationship(meta.name)
    return DeletionOutcome.DELETED


def delete_option_set(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    meta = deleter.store.fetch_metadata(ref.kind, ref.object_id)
    context.note(name=meta.name)
    if deleter.skip_managed(ref, meta.is_managed):
        return DeletionOutcome.SKIPPED_MANAGED
    if not deleter.should_process(f"Delete option set {meta.name}"):
        return DeletionOutcome.DECLINED
    deleter.store.delete_option_set(meta.name)
    return DeletionOutcome.DELETED


# ── workflows ──


def delete_workflow(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    """Deactivate, then delete, a workflow.

    Business process flows are preserved: their backing entity is deleted
    and the ActionComposite activities are stripped from the definition.
    """
    table = _table(ref.kind)
    record = deleter.store.fetch_record(
        ref.kind, ref.object_id, table.projection("statecode", "category", "uniquename", "xaml")
    )
    name = record.get(table.name_attribute)
    context.note(name=name)
    if deleter.skip_managed(ref, record.get("ismanaged")):
        return DeletionOutcome.SKIPPED_MANAGED

    if record.get("statecode") == WORKFLOW_STATE_ACTIVATED:
        if not deleter.should_process(f"Deactivate workflow {name}"):
            return DeletionOutcome.DECLINED
        deleter.store.set_state(
            ref.kind, ref.object_id, WORKFLOW_STATE_DRAFT, WORKFLOW_STATUS_DRAFT
        )
        log.info("deletion.workflow_deactivated", workflow=name, object_id=str(ref.object_id))

    if record.get("category") == WORKFLOW_CATEGORY_BUSINESS_PROCESS_FLOW:
        return _preserve_process_flow(deleter, ref, record, name, context)

    if not deleter.should_process(f"Delete workflow {name}"):
        return DeletionOutcome.DECLINED
    deleter.store.delete(ref.kind, ref.object_id)
    return DeletionOutcome.DELETED


def _preserve_process_flow(
    deleter: CascadingDeleter,
    ref: ComponentRef,
    record: dict[str, Any],
    name: str | None,
    context: DeletionContext,
) -> DeletionOutcome:
    unique_name = record.get("uniquename")
    if unique_name:
        try:
            entity = deleter.store.fetch_entity_metadata_by_name(unique_name)
        except ObjectNotFoundError:
            log.warning("deletion.flow_entity_not_found", workflow=name, entity=unique_name)
        else:
            deleter.delete_with_dependencies(
                ComponentRef(ComponentKind.ENTITY, entity.metadata_id), context
            )

    removed = 0
    xaml = record.get("xaml")
    if xaml:
        document, removed = strip_composite_activities(xaml)
        if removed and deleter.should_process(f"Update process flow {name}"):
            deleter.store.update(ref.kind, ref.object_id, {"xaml": document})

    context.note(detail=f"business process flow kept; {removed} composite activities removed")
    log.info("deletion.flow_preserved", workflow=name, removed=removed)
    return DeletionOutcome.PRESERVED


# ── plugin steps and generic records ──


def delete_processing_step(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    table = _table(ref.kind)
    record = deleter.store.fetch_record(ref.kind, ref.object_id, table.projection("ishidden"))
    if record.get("ishidden"):
        context.note(name=record.get(table.name_attribute), detail="hidden step")
        log.info("deletion.hidden_step_kept", object_id=str(ref.object_id))
        return DeletionOutcome.SKIPPED_HIDDEN
    return _delete_fetched(deleter, ref, table, record, context)


def delete_record(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    table = _table(ref.kind)
    record = deleter.store.fetch_record(ref.kind, ref.object_id, table.projection())
    return _delete_fetched(deleter, ref, table, record, context)


def _delete_fetched(
    deleter: CascadingDeleter,
    ref: ComponentRef,
    table: ComponentTable,
    record: dict[str, Any],
    context: DeletionContext,
) -> DeletionOutcome:
    name = record.get(table.name_attribute)
    context.note(name=name)
    if deleter.skip_managed(ref, record.get("ismanaged")):
        return DeletionOutcome.SKIPPED_MANAGED
    if not deleter.should_process(f"Delete {table.logical_name} {name}"):
        return DeletionOutcome.DECLINED
    deleter.store.delete(ref.kind, ref.object_id)
    return DeletionOutcome.DELETED


def delete_unsupported(
    deleter: CascadingDeleter, ref: ComponentRef, context: DeletionContext
) -> DeletionOutcome:
    log.warning("deletion.unsupported_kind", kind=ref.kind.name, object_id=str(ref.object_id))
    return DeletionOutcome.UNSUPPORTED


def _table(kind: ComponentKind) -> ComponentTable:
    table = table_for(kind)
    if table is None:
        raise UnknownComponentKindError(f"{kind.name} is not a record-backed component kind")
    return table
