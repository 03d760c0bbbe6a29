"""Tests for the SolutionReaper facade."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from solution_reaper.api import SolutionReaper
from solution_reaper.core.config import ReaperSettings
from solution_reaper.deletion import DeletionContext, DeletionOutcome
from solution_reaper.exceptions import ReaperError
from solution_reaper.models.component import ComponentKind
from solution_reaper.store.web_api import WebApiStore


class TestFromSettings:
    def test_requires_url(self):
        with pytest.raises(ReaperError, match="SOLUTION_REAPER_URL"):
            SolutionReaper.from_settings(ReaperSettings())

    def test_builds_web_api_store(self):
        reaper = SolutionReaper.from_settings(
            ReaperSettings(url="https://contoso.crm.dynamics.com", token="tok"), dry_run=True
        )
        try:
            assert isinstance(reaper.store, WebApiStore)
            assert reaper.deleter.dry_run is True
        finally:
            reaper.close()


class TestSolutionReaper:
    def test_components_for_delete_accepts_descriptor(self, reaper, plugin_chain):
        assembly = plugin_chain[0]
        descriptor = reaper.describe(assembly)

        items = list(reaper.components_for_delete(descriptor))

        assert [d.ref for d in items] == list(plugin_chain)

    def test_dependents_and_requirements(self, reaper, plugin_chain):
        assembly, plugin_type, step, image = plugin_chain

        assert [e.dependent.ref for e in reaper.dependents(assembly, recursive=True)] == [
            plugin_type,
            step,
            image,
        ]
        assert [e.required.ref for e in reaper.requirements(image)] == [step]

    def test_describe_shares_cache(self, reaper, store, plugin_chain):
        assembly = plugin_chain[0]
        reaper.describe(assembly)
        reaper.describe(assembly)
        assert store.fetch_counts[assembly.object_id] == 1

    def test_list_solution_components(self, reaper, plugin_chain):
        names = [d.display_name for d in reaper.list_solution_components("contoso")]
        assert names == [
            "Contoso.Plugins",
            "Contoso.Plugins.AccountCreate",
            "Create of account",
            "PreImage",
        ]

    def test_missing_dependencies(self, reaper, store, solution, plugin_chain):
        _, _, step, _ = plugin_chain
        message = store.add_record(ComponentKind.SDK_MESSAGE, name="Create")
        store.add_dependency(step, message)

        edges = list(reaper.missing_dependencies("contoso"))

        assert [(e.dependent.ref, e.required.ref) for e in edges] == [(step, message)]
        assert edges[0].required.display_name == "Create"
        assert edges[0].dependent_solution == solution

    def test_missing_dependencies_none_when_self_contained(self, reaper, plugin_chain):
        assert list(reaper.missing_dependencies("contoso")) == []

    def test_missing_dependencies_requires_name(self, reaper, store):
        with pytest.raises(ReaperError, match="unique name"):
            reaper.missing_dependencies("")
        assert store.calls == []

    def test_delete_after_describe_reads_live_state(self, store, plugin_chain):
        assembly = plugin_chain[0]
        reaper = SolutionReaper(store, unmanaged_only=True)
        reaper.describe(assembly)
        store.records[assembly]["ismanaged"] = True

        report = reaper.delete(assembly)

        assert report.outcome_of(assembly) is DeletionOutcome.SKIPPED_MANAGED

    def test_delete_with_shared_context(self, reaper, store):
        a = store.add_record(ComponentKind.WEB_RESOURCE, name="a.js")
        b = store.add_record(ComponentKind.WEB_RESOURCE, name="b.js")
        context = DeletionContext()

        reaper.delete(a, context)
        report = reaper.delete(b, context)

        assert report.deleted == [a, b]

    def test_membership(self, reaper, store, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js")

        assert reaper.add_to_solution(ref, "contoso") is True
        assert reaper.remove_from_solution(ref, "contoso") is True
        assert reaper.remove_all_from_solution("contoso") == 0

    def test_context_manager_closes_store(self):
        store = MagicMock()
        with SolutionReaper(store) as reaper:
            assert reaper.store is store
        store.close.assert_called_once()
