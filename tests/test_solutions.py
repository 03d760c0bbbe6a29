"""Tests for SolutionManager."""

from __future__ import annotations

import uuid

import pytest

from solution_reaper.exceptions import SolutionNotFoundError
from solution_reaper.models.component import ComponentKind, ComponentRef, SolutionComponent
from solution_reaper.solutions import SolutionManager


@pytest.fixture
def manager(store):
    return SolutionManager(store)


class TestSolutionManager:
    def test_get_solution(self, manager, solution):
        assert manager.get_solution("contoso") == solution

    def test_unknown_solution(self, manager):
        with pytest.raises(SolutionNotFoundError, match="nope"):
            manager.get_solution("nope")

    def test_list_root_only(self, store, manager, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js", solution=solution)
        child = store.add_metadata(ComponentKind.ATTRIBUTE, "new_x", entity_logical_name="account")
        store.solution_components.append(
            SolutionComponent(
                solution_component_id=uuid.uuid4(),
                object_id=child.object_id,
                kind=child.kind,
                solution_id=solution.solution_id,
                root_solution_component_id=store.solution_components[0].solution_component_id,
            )
        )

        assert [r.ref for r in manager.list_components("contoso", root_only=True)] == [ref]
        assert len(manager.list_components("contoso")) == 2

    def test_add_component(self, store, manager, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js")

        assert manager.add_component(ref, "contoso") is True

        assert manager.contains("contoso", ref)
        assert store.calls == [
            (
                "add_component_to_solution",
                ComponentKind.WEB_RESOURCE,
                ref.object_id,
                "contoso",
                True,
            )
        ]

    def test_structural_added_without_subcomponents(self, store, manager, solution):
        entity = store.add_metadata(ComponentKind.ENTITY, "new_project")
        manager.add_component(entity, "contoso")
        assert store.calls[-1][-1] is False

    def test_add_already_present_is_noop(self, store, manager, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js", solution=solution)
        assert manager.add_component(ref, "contoso") is False
        assert store.calls == []

    @pytest.mark.parametrize("name", [None, ""])
    def test_add_without_solution_is_noop(self, store, manager, name):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js")
        assert manager.add_component(ref, name) is False
        assert store.calls == []

    def test_add_to_unknown_solution(self, store, manager):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js")
        with pytest.raises(SolutionNotFoundError):
            manager.add_component(ref, "nope")

    def test_remove_component_keeps_object(self, store, manager, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js", solution=solution)

        assert manager.remove_component(ref, "contoso") is True

        assert not manager.contains("contoso", ref)
        assert store.exists(ref)

    def test_remove_absent_component(self, store, manager, solution):
        ghost = ComponentRef(ComponentKind.WEB_RESOURCE, uuid.UUID(int=404))
        assert manager.remove_component(ghost, "contoso") is False
        assert store.calls == []

    def test_remove_all(self, store, manager, solution, plugin_chain):
        other = store.add_solution("fabrikam")
        keep = store.add_record(ComponentKind.ROLE, name="Sales", solution=other)

        assert manager.remove_all_components("contoso") == 4

        assert manager.list_components("contoso") == []
        assert manager.contains("fabrikam", keep)
        assert all(store.exists(ref) for ref in plugin_chain)
