"""Dependency graph traversals: delete order and reachability."""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from solution_reaper.dependencies import DependencyQueryAdapter, Direction
from solution_reaper.models.component import ComponentDescriptor, ComponentRef
from solution_reaper.models.dependency import DependencyEdge, DependencyRecord
from solution_reaper.resolver import ComponentResolver
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.walker")

# (ref, parent, depth)
_Frame = tuple[ComponentRef, "ComponentRef | None", int]


class DependencyWalker:
    """Lazy, cycle-safe traversals of the component dependency graph.

    Both walks keep an explicit stack of child iterators instead of
    recursing, so deep graphs never hit the interpreter's recursion limit.
    The output order is the pre-order a recursive generator would produce.
    """

    def __init__(
        self,
        store: ComponentStore,
        adapter: DependencyQueryAdapter,
        resolver: ComponentResolver,
    ) -> None:
        self._store = store
        self._adapter = adapter
        self._resolver = resolver

    # ── delete order ───────────────────────────────────────────────────────

    def walk_for_delete(self, root: ComponentRef) -> Iterator[ComponentDescriptor]:
        """Yield *root* and everything that must go before it, pre-order.

        Each component appears once. A dependent whose membership row in its
        base solution cannot be found ends that branch without a message.
        """
        visited: set[tuple] = set()
        stack: list[Iterator[_Frame]] = [iter([(root, None, 0)])]
        while stack:
            frame = next(stack[-1], None)
            if frame is None:
                stack.pop()
                continue
            ref, parent, depth = frame
            if ref.key in visited:
                continue
            visited.add(ref.key)

            descriptor = self._resolver.resolve(ref)
            descriptor.depth = depth
            descriptor.parent = parent
            yield descriptor

            stack.append(self._delete_children(ref, depth))

    def _delete_children(self, ref: ComponentRef, depth: int) -> Iterator[_Frame]:
        for record in self._adapter.required_for_delete(ref):
            if record.dependent_solution_id is None:
                continue
            row = self._store.find_solution_component(
                record.dependent_id, record.dependent_solution_id
            )
            if row is None:
                continue
            yield row.ref, ref, depth + 1

    # ── reachability ───────────────────────────────────────────────────────

    def walk_dependents(
        self,
        root: ComponentRef,
        recursive: bool = False,
        max_depth: int | None = None,
    ) -> Iterator[DependencyEdge]:
        """Edges whose required side is *root* (and, recursively, their dependents)."""
        return self._walk_edges(root, Direction.DEPENDENTS, recursive, max_depth)

    def walk_requirements(
        self,
        root: ComponentRef,
        recursive: bool = False,
        max_depth: int | None = None,
    ) -> Iterator[DependencyEdge]:
        """Edges whose dependent side is *root* (and, recursively, what they require)."""
        return self._walk_edges(root, Direction.REQUIREMENTS, recursive, max_depth)

    def _walk_edges(
        self,
        root: ComponentRef,
        direction: Direction,
        recursive: bool,
        max_depth: int | None,
    ) -> Iterator[DependencyEdge]:
        visited = {root.key}
        stack: list[Iterator[tuple[DependencyRecord, int]]] = [
            self._edge_children(root, direction, 1)
        ]
        while stack:
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
                continue
            record, depth = item

            edge = self._resolver.describe_edge(record, depth=depth)
            if direction is Direction.DEPENDENTS:
                far = edge.dependent
                event = "walker.unresolved_dependent"
            else:
                far = edge.required
                event = "walker.unresolved_required"
            if not far.is_resolved:
                log.warning(
                    event,
                    dependency_id=str(record.dependency_id),
                    kind=far.kind.name,
                    object_id=str(far.object_id),
                    depth=depth,
                )
            yield edge

            if not recursive or (max_depth is not None and depth > max_depth):
                continue
            if not far.is_resolved or far.ref.key in visited:
                continue
            visited.add(far.ref.key)
            stack.append(self._edge_children(far.ref, direction, depth + 1))

    def _edge_children(
        self, ref: ComponentRef, direction: Direction, depth: int
    ) -> Iterator[tuple[DependencyRecord, int]]:
        for record in self._adapter.query(direction, ref):
            yield record, depth
