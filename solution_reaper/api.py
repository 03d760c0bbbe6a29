"""SolutionReaper facade: single entry point wiring one session together.

Usage::

    with SolutionReaper.from_settings(ReaperSettings.from_env()) as reaper:
        for item in reaper.components_for_delete(ref):
            print(item)
        report = reaper.delete(ref)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Callable, Union

import structlog

from solution_reaper.cache import EntityCache
from solution_reaper.core.config import ReaperSettings
from solution_reaper.deletion import (
    CascadingDeleter,
    DeletionContext,
    DeletionReport,
    StrategyRegistry,
)
from solution_reaper.dependencies import DependencyQueryAdapter
from solution_reaper.exceptions import ReaperError
from solution_reaper.models.component import ComponentDescriptor, ComponentRef
from solution_reaper.models.dependency import DependencyEdge
from solution_reaper.resolver import ComponentResolver
from solution_reaper.solutions import SolutionManager
from solution_reaper.store.base import ComponentStore
from solution_reaper.store.web_api import WebApiStore
from solution_reaper.walker import DependencyWalker

log = structlog.get_logger("solution_reaper.api")

Target = Union[ComponentRef, ComponentDescriptor]


def _as_ref(target: Target) -> ComponentRef:
    return target.ref if isinstance(target, ComponentDescriptor) else target


class SolutionReaper:
    """Facade over cache + adapter + resolver + walker + deleter for one session.

    The cache lives as long as this object; open a new session to see
    changes made outside it.
    """

    def __init__(
        self,
        store: ComponentStore,
        *,
        unmanaged_only: bool = False,
        dry_run: bool = False,
        confirm: Callable[[str], bool] | None = None,
        registry: StrategyRegistry | None = None,
    ) -> None:
        self.store = store
        self.cache = EntityCache(store)
        self.adapter = DependencyQueryAdapter(store)
        self.resolver = ComponentResolver(store, self.cache)
        self.walker = DependencyWalker(store, self.adapter, self.resolver)
        self.deleter = CascadingDeleter(
            store,
            self.adapter,
            registry,
            unmanaged_only=unmanaged_only,
            dry_run=dry_run,
            confirm=confirm,
        )
        self.solutions = SolutionManager(store)

    @classmethod
    def from_settings(cls, settings: ReaperSettings, **kwargs) -> SolutionReaper:
        """Build a session against the Web API store described by *settings*."""
        if not settings.url:
            raise ReaperError("no organisation URL configured (set SOLUTION_REAPER_URL)")
        store = WebApiStore(
            settings.url,
            settings.token,
            api_version=settings.api_version,
            timeout=settings.timeout,
        )
        log.debug("api.session_opened", url=settings.url, api_version=settings.api_version)
        return cls(store, **kwargs)

    # ── queries ──────────────────────────────────────────────────────────

    def components_for_delete(self, target: Target) -> Iterator[ComponentDescriptor]:
        return self.walker.walk_for_delete(_as_ref(target))

    def dependents(
        self, target: Target, *, recursive: bool = False, max_depth: int | None = None
    ) -> Iterator[DependencyEdge]:
        return self.walker.walk_dependents(_as_ref(target), recursive, max_depth)

    def requirements(
        self, target: Target, *, recursive: bool = False, max_depth: int | None = None
    ) -> Iterator[DependencyEdge]:
        return self.walker.walk_requirements(_as_ref(target), recursive, max_depth)

    def describe(self, target: Target) -> ComponentDescriptor:
        return self.resolver.resolve(_as_ref(target))

    def list_solution_components(
        self, unique_name: str, *, root_only: bool = False
    ) -> list[ComponentDescriptor]:
        rows = self.solutions.list_components(unique_name, root_only=root_only)
        return [self.resolver.resolve(row.ref) for row in rows]

    def missing_dependencies(self, unique_name: str) -> Iterator[DependencyEdge]:
        """Edges from the solution's components to components it does not carry."""
        if not unique_name:
            raise ReaperError("solution unique name is required")
        records = self.store.retrieve_missing_dependencies(unique_name)
        log.info("api.missing_dependencies", solution=unique_name, count=len(records))
        return (self.resolver.describe_edge(record) for record in records)

    # ── actions ──────────────────────────────────────────────────────────

    def delete(self, target: Target, context: DeletionContext | None = None) -> DeletionReport:
        return self.deleter.delete_with_dependencies(_as_ref(target), context)

    def add_to_solution(self, target: Target, unique_name: str | None) -> bool:
        return self.solutions.add_component(_as_ref(target), unique_name)

    def remove_from_solution(self, target: Target, unique_name: str) -> bool:
        return self.solutions.remove_component(_as_ref(target), unique_name)

    def remove_all_from_solution(self, unique_name: str) -> int:
        return self.solutions.remove_all_components(unique_name)

    # ── lifecycle ────────────────────────────────────────────────────────

    def close(self) -> None:
        self.cache.clear()
        self.store.close()

    def __enter__(self) -> SolutionReaper:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
