"""Tests for DependencyWalker traversals."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock, patch

import pytest

from solution_reaper.cache import EntityCache
from solution_reaper.dependencies import DependencyQueryAdapter
from solution_reaper.models.component import ComponentKind, ComponentRef
from solution_reaper.resolver import ComponentResolver
from solution_reaper.walker import DependencyWalker


def _walker(store):
    return DependencyWalker(
        store, DependencyQueryAdapter(store), ComponentResolver(store, EntityCache(store))
    )


@pytest.fixture
def walker(store):
    return _walker(store)


def _chain(store, solution, length):
    """Web resources r0 <- r1 <- ... (each depends on the previous one)."""
    refs = [
        store.add_record(ComponentKind.WEB_RESOURCE, name=f"r{i}", solution=solution)
        for i in range(length)
    ]
    for prev, nxt in zip(refs, refs[1:]):
        store.add_dependency(nxt, prev)
    return refs


# ── delete order ──


class TestWalkForDelete:
    def test_plugin_chain_pre_order(self, walker, plugin_chain):
        assembly, plugin_type, step, image = plugin_chain

        items = list(walker.walk_for_delete(assembly))

        assert [d.ref for d in items] == [assembly, plugin_type, step, image]
        assert [d.depth for d in items] == [0, 1, 2, 3]
        assert items[0].parent is None
        assert items[1].parent == assembly
        assert items[3].parent == step

    def test_cycle_terminates(self, store, solution, walker):
        a = store.add_record(ComponentKind.WEB_RESOURCE, name="a.js", solution=solution)
        b = store.add_record(ComponentKind.WEB_RESOURCE, name="b.js", solution=solution)
        store.add_dependency(a, b)
        store.add_dependency(b, a)

        assert [d.ref for d in walker.walk_for_delete(a)] == [a, b]

    def test_diamond_visits_each_once(self, store, solution, walker):
        root = store.add_metadata(ComponentKind.ENTITY, "new_root", solution=solution)
        left = store.add_record(ComponentKind.SYSTEM_FORM, name="left", solution=solution)
        right = store.add_record(ComponentKind.SAVED_QUERY, name="right", solution=solution)
        leaf = store.add_record(ComponentKind.SITE_MAP, sitemapnameunique="leaf", solution=solution)
        store.add_dependency(left, root)
        store.add_dependency(right, root)
        store.add_dependency(leaf, left)
        store.add_dependency(leaf, right)

        refs = [d.ref for d in walker.walk_for_delete(root)]

        assert refs == [root, left, leaf, right]

    def test_missing_membership_ends_branch(self, store, solution, walker):
        root = store.add_record(ComponentKind.PLUGIN_ASSEMBLY, name="asm", solution=solution)
        orphan = store.add_record(ComponentKind.PLUGIN_TYPE, name="orphan")
        store.add_dependency(orphan, root)
        stale = store.add_record(ComponentKind.PLUGIN_TYPE, name="stale")
        store.add_dependency(stale, root, dependent_solution=solution)

        assert [d.ref for d in walker.walk_for_delete(root)] == [root]

    def test_missing_root_still_yielded(self, walker):
        ghost = ComponentRef(ComponentKind.WORKFLOW, uuid.UUID(int=404))
        items = list(walker.walk_for_delete(ghost))
        assert len(items) == 1
        assert not items[0].is_resolved

    def test_deep_chain_does_not_recurse(self, store, solution, walker):
        refs = _chain(store, solution, 1200)
        items = list(walker.walk_for_delete(refs[0]))
        assert len(items) == 1200
        assert items[-1].depth == 1199

    def test_lazy(self):
        adapter = MagicMock()
        walker = DependencyWalker(MagicMock(), adapter, MagicMock())

        walker.walk_for_delete(ComponentRef(ComponentKind.ROLE, uuid.UUID(int=1)))

        adapter.required_for_delete.assert_not_called()


# ── reachability ──


class TestWalkDependents:
    def test_first_level_only(self, store, solution, walker):
        refs = _chain(store, solution, 4)

        edges = list(walker.walk_dependents(refs[0]))

        assert [(e.dependent.ref, e.required.ref) for e in edges] == [(refs[1], refs[0])]
        assert edges[0].depth == 1

    def test_recursive_unbounded(self, store, solution, walker):
        refs = _chain(store, solution, 4)

        edges = list(walker.walk_dependents(refs[0], recursive=True))

        assert [e.dependent.ref for e in edges] == refs[1:]
        assert [e.depth for e in edges] == [1, 2, 3]

    def test_max_depth_limits_descent(self, store, solution, walker):
        refs = _chain(store, solution, 5)

        edges = list(walker.walk_dependents(refs[0], recursive=True, max_depth=1))

        # depth-1 edges descend once more; depth-2 edges do not
        assert [e.depth for e in edges] == [1, 2]

    def test_cycle_terminates(self, store, solution, walker):
        a = store.add_record(ComponentKind.WEB_RESOURCE, name="a.js", solution=solution)
        b = store.add_record(ComponentKind.WEB_RESOURCE, name="b.js", solution=solution)
        store.add_dependency(a, b)
        store.add_dependency(b, a)

        edges = list(walker.walk_dependents(a, recursive=True))

        assert [(e.dependent.ref, e.required.ref) for e in edges] == [(b, a), (a, b)]

    def test_dangling_dependent_is_yielded_not_followed(self, store, solution, walker):
        root = store.add_record(ComponentKind.WEB_RESOURCE, name="lib.js", solution=solution)
        ghost = ComponentRef(ComponentKind.SYSTEM_FORM, uuid.UUID(int=404))
        store.add_dependency(ghost, root)

        edges = list(walker.walk_dependents(root, recursive=True))

        assert len(edges) == 1
        assert edges[0].required.display_name == "lib.js"
        assert not edges[0].dependent.is_resolved


class TestWalkRequirements:
    def test_recursive(self, walker, plugin_chain):
        assembly, plugin_type, step, image = plugin_chain

        edges = list(walker.walk_requirements(image, recursive=True))

        assert [e.required.ref for e in edges] == [step, plugin_type, assembly]
        assert [e.depth for e in edges] == [1, 2, 3]

    def test_non_recursive(self, walker, plugin_chain):
        _, plugin_type, step, _ = plugin_chain
        edges = list(walker.walk_requirements(step))
        assert [e.required.ref for e in edges] == [plugin_type]

    def test_root_missing_gives_nothing(self, walker):
        ghost = ComponentRef(ComponentKind.ROLE, uuid.UUID(int=404))
        assert list(walker.walk_requirements(ghost, recursive=True)) == []

    def test_dangling_required_is_yielded_not_followed(self, store, solution):
        step = store.add_record(
            ComponentKind.SDK_MESSAGE_PROCESSING_STEP, name="Update of contact", solution=solution
        )
        ghost = ComponentRef(ComponentKind.PLUGIN_TYPE, uuid.UUID(int=404))
        store.add_dependency(step, ghost)
        adapter = DependencyQueryAdapter(store)
        walker = DependencyWalker(store, adapter, ComponentResolver(store, EntityCache(store)))

        with patch.object(adapter, "query", wraps=adapter.query) as query, patch(
            "solution_reaper.walker.log"
        ) as log:
            edges = list(walker.walk_requirements(step, recursive=True))

        assert len(edges) == 1
        required = edges[0].required
        assert required.ref == ghost
        assert (required.display_name, required.logical_name, required.is_managed) == (
            None,
            None,
            None,
        )
        assert [c.args[1] for c in query.call_args_list] == [step]
        assert log.warning.call_args.args[0] == "walker.unresolved_required"
        assert log.warning.call_args.kwargs["object_id"] == str(ghost.object_id)
