"""Cascading deletion: clear every blocker, then delete the target."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from solution_reaper.dependencies import DependencyQueryAdapter
from solution_reaper.deletion.registry import StrategyRegistry, create_default_registry
from solution_reaper.deletion.report import DeletionOutcome, DeletionRecord, DeletionReport
from solution_reaper.exceptions import ObjectNotFoundError, ReaperError
from solution_reaper.models.component import ComponentRef
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.deletion")


@dataclass
class DeletionContext:
    """State shared by every step of one cascading delete.

    Pass the same context to several ``delete_with_dependencies`` calls to
    share the visited set and the report between them.
    """

    visited: set[tuple] = field(default_factory=set)
    report: DeletionReport = field(default_factory=DeletionReport)
    depth: int = 0
    _notes: list[dict[str, Any]] = field(default_factory=list, repr=False)

    def note(self, *, name: str | None = None, detail: str | None = None) -> None:
        """Attach a name and/or detail to the component being processed."""
        if not self._notes:
            return
        current = self._notes[-1]
        if name is not None:
            current["name"] = name
        if detail is not None:
            current["detail"] = detail


class CascadingDeleter:
    """Delete a component after recursively deleting whatever blocks it.

    Parameters
    ----------
    unmanaged_only:
        Managed components are reported as ``SKIPPED_MANAGED`` and never
        reach a store mutation.
    dry_run:
        Walk the graph and run the strategies, but decline every mutation.
    confirm:
        Called with a description before each mutation; returning ``False``
        declines it.
    """

    def __init__(
        self,
        store: ComponentStore,
        adapter: DependencyQueryAdapter,
        registry: StrategyRegistry | None = None,
        *,
        unmanaged_only: bool = False,
        dry_run: bool = False,
        confirm: Callable[[str], bool] | None = None,
    ) -> None:
        self.store = store
        self.adapter = adapter
        self.registry = registry or create_default_registry()
        self.unmanaged_only = unmanaged_only
        self.dry_run = dry_run
        self._confirm = confirm

    def delete_with_dependencies(
        self, ref: ComponentRef, context: DeletionContext | None = None
    ) -> DeletionReport:
        if context is None:
            context = DeletionContext()
        if ref.key in context.visited:
            return context.report
        context.visited.add(ref.key)

        depth = context.depth
        context.depth = depth + 1
        try:
            for record in self.adapter.required_for_delete(ref):
                self.delete_with_dependencies(record.dependent_ref, context)
            self._run_strategy(ref, context, depth)
        finally:
            context.depth = depth
        return context.report

    def clear_blockers(self, ref: ComponentRef, context: DeletionContext) -> None:
        """Run the blocker recursion for *ref* again; visited blockers are skipped."""
        for record in self.adapter.required_for_delete(ref):
            self.delete_with_dependencies(record.dependent_ref, context)

    def skip_managed(self, ref: ComponentRef, is_managed: bool | None) -> bool:
        if self.unmanaged_only and is_managed:
            log.info("deletion.skipped_managed", kind=ref.kind.name, object_id=str(ref.object_id))
            return True
        return False

    def should_process(self, action: str) -> bool:
        """Whether a store mutation described by *action* may go ahead."""
        if self.dry_run:
            log.info("deletion.dry_run", action=action)
            return False
        if self._confirm is not None and not self._confirm(action):
            log.info("deletion.declined", action=action)
            return False
        return True

    def _run_strategy(self, ref: ComponentRef, context: DeletionContext, depth: int) -> None:
        strategy = self.registry.get(ref.kind)
        context._notes.append({"name": None, "detail": ""})
        try:
            try:
                outcome = strategy(self, ref, context)
            except ObjectNotFoundError as exc:
                log.warning(
                    "deletion.object_not_found",
                    kind=ref.kind.name,
                    object_id=str(ref.object_id),
                    error=str(exc),
                )
                outcome = DeletionOutcome.NOT_FOUND
            except ReaperError as exc:
                log.error(
                    "deletion.failed",
                    kind=ref.kind.name,
                    object_id=str(ref.object_id),
                    error=str(exc),
                )
                raise
            note = context._notes[-1]
        finally:
            context._notes.pop()

        context.report.add(
            DeletionRecord(ref, outcome, name=note["name"], detail=note["detail"], depth=depth)
        )
        log.info(
            "deletion.outcome",
            kind=ref.kind.name,
            object_id=str(ref.object_id),
            name=note["name"],
            outcome=outcome.value,
            depth=depth,
        )
