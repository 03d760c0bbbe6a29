"""Tests for CLI commands (in-memory store, no organisation needed)."""

from __future__ import annotations

import json
import os
import uuid
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from solution_reaper.api import SolutionReaper
from solution_reaper.cli import KIND, main
from solution_reaper.exceptions import StoreFaultError
from solution_reaper.models.component import ComponentKind

ENV = {"SOLUTION_REAPER_URL": "https://contoso.crm.dynamics.com"}


def _json_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def invoke(store):
    """Run the CLI against *store*; returns (result, kwargs passed to the session)."""
    sessions = []

    def open_session(settings, **kwargs):
        sessions.append((settings, kwargs))
        return SolutionReaper(store, **kwargs)

    def run(*args, input=None, env=ENV):
        runner = CliRunner()
        with patch.dict(os.environ, env, clear=True), patch(
            "solution_reaper.cli._open_session", side_effect=open_session
        ), patch("solution_reaper.cli.setup_logging"):
            result = runner.invoke(main, list(args), input=input)
        return result, sessions

    return run


# ── kind parsing ──


class TestKindType:
    def test_by_name(self):
        assert KIND.convert("PluginAssembly", None, None) is ComponentKind.PLUGIN_ASSEMBLY

    def test_by_code(self):
        assert KIND.convert("29", None, None) is ComponentKind.WORKFLOW

    def test_bad_kind_is_usage_error(self, invoke):
        result, _ = invoke("describe", "NotAKind", str(uuid.uuid4()))
        assert result.exit_code == 2
        assert "unknown component kind" in result.output


# ── settings ──


class TestSettings:
    def test_options_override_env(self, invoke, store):
        ref = store.add_record(ComponentKind.ROLE, name="Sales")
        result, sessions = invoke(
            "--url", "https://fabrikam.crm.dynamics.com", "--timeout", "5",
            "describe", "Role", str(ref.object_id),
        )
        assert result.exit_code == 0
        settings = sessions[0][0]
        assert settings.url == "https://fabrikam.crm.dynamics.com"
        assert settings.timeout == 5.0

    def test_env_used_without_options(self, invoke, store):
        ref = store.add_record(ComponentKind.ROLE, name="Sales")
        _, sessions = invoke("describe", "Role", str(ref.object_id))
        assert sessions[0][0].url == ENV["SOLUTION_REAPER_URL"]

    def test_bad_timeout_env(self, invoke):
        env = {**ENV, "SOLUTION_REAPER_TIMEOUT": "soon"}
        result, _ = invoke("describe", "Role", str(uuid.uuid4()), env=env)
        assert result.exit_code == 2
        assert "SOLUTION_REAPER_TIMEOUT" in result.output

    def test_missing_url_fails(self):
        runner = CliRunner()
        with patch.dict(os.environ, {}, clear=True), patch("solution_reaper.cli.setup_logging"):
            result = runner.invoke(main, ["describe", "Role", str(uuid.uuid4())])
        assert result.exit_code == 1
        assert "SOLUTION_REAPER_URL" in result.output


# ── queries ──


class TestQueries:
    def test_components_for_delete(self, invoke, plugin_chain):
        assembly = plugin_chain[0]

        result, _ = invoke("components-for-delete", "PluginAssembly", str(assembly.object_id))

        assert result.exit_code == 0
        names = [item["display_name"] for item in _json_lines(result.output)]
        assert names == [
            "Contoso.Plugins",
            "Contoso.Plugins.AccountCreate",
            "Create of account",
            "PreImage",
        ]

    def test_dependents_recursive_with_depth(self, invoke, plugin_chain):
        assembly = plugin_chain[0]

        result, _ = invoke(
            "dependents", "PluginAssembly", str(assembly.object_id), "--recursive",
            "--max-depth", "1",
        )

        assert result.exit_code == 0
        assert [e["depth"] for e in _json_lines(result.output)] == [1, 2]

    def test_max_depth_must_be_positive(self, invoke, plugin_chain):
        result, _ = invoke(
            "dependents", "PluginAssembly", str(plugin_chain[0].object_id), "--max-depth", "0"
        )
        assert result.exit_code == 2

    def test_requirements(self, invoke, plugin_chain):
        _, _, step, _ = plugin_chain
        result, _ = invoke("requirements", "SdkMessageProcessingStep", str(step.object_id))
        assert result.exit_code == 0
        assert len(_json_lines(result.output)) == 1

    def test_describe(self, invoke, store):
        ref = store.add_record(ComponentKind.SYSTEM_FORM, name="Account", type=2)

        result, _ = invoke("describe", "SystemForm", str(ref.object_id))

        assert result.exit_code == 0
        item = _json_lines(result.output)[0]
        assert item["display_name"] == "Account (Main)"
        assert item["kind"] == "SYSTEM_FORM"

    def test_store_fault_exits_1(self, invoke, store):
        store.fail_on("retrieve_dependencies_for_delete", StoreFaultError("throttled"))

        result, _ = invoke("components-for-delete", "Role", str(uuid.uuid4()))

        assert result.exit_code == 1
        assert "Error: throttled" in result.output

    def test_list_components(self, invoke, solution, plugin_chain):
        result, _ = invoke("list-components", "contoso", "--root-only")
        assert result.exit_code == 0
        assert len(_json_lines(result.output)) == 4

    def test_list_unknown_solution(self, invoke):
        result, _ = invoke("list-components", "nope")
        assert result.exit_code == 1
        assert "Solution nope could not be found" in result.output

    def test_missing_dependencies(self, invoke, store, solution, plugin_chain):
        _, _, step, _ = plugin_chain
        outside = store.add_record(ComponentKind.SDK_MESSAGE, name="Create")
        store.add_dependency(step, outside)

        result, _ = invoke("missing-dependencies", "contoso")

        assert result.exit_code == 0
        edges = _json_lines(result.output)
        assert len(edges) == 1
        assert edges[0]["dependent"]["display_name"] == "Create of account"
        assert edges[0]["required"]["display_name"] == "Create"

    def test_missing_dependencies_unknown_solution(self, invoke):
        result, _ = invoke("missing-dependencies", "nope")
        assert result.exit_code == 1
        assert "Error:" in result.output


# ── delete ──


class TestDelete:
    def test_yes_deletes_everything(self, invoke, store, plugin_chain):
        assembly = plugin_chain[0]

        result, sessions = invoke("delete", "PluginAssembly", str(assembly.object_id), "--yes")

        assert result.exit_code == 0
        outcomes = [r["outcome"] for r in _json_lines(result.output)]
        assert outcomes == ["deleted"] * 4
        assert "Summary: deleted=4" in result.output
        assert sessions[0][1]["confirm"] is None
        assert not store.exists(assembly)

    def test_dry_run(self, invoke, store, plugin_chain):
        assembly = plugin_chain[0]

        result, sessions = invoke("delete", "PluginAssembly", str(assembly.object_id), "--dry-run")

        assert result.exit_code == 0
        assert "Summary: declined=4" in result.output
        assert sessions[0][1]["dry_run"] is True
        assert store.calls == []

    def test_prompts_per_change(self, invoke, store):
        keep = store.add_record(ComponentKind.WEB_RESOURCE, name="keep.js")
        drop = store.add_record(ComponentKind.WEB_RESOURCE, name="drop.js")
        store.add_dependency(drop, keep)

        result, _ = invoke("delete", "WebResource", str(keep.object_id), input="y\nn\n")

        assert result.exit_code == 0
        assert "Delete webresource drop.js" in result.output
        assert [r["outcome"] for r in _json_lines(result.output)] == ["deleted", "declined"]
        assert store.exists(keep)

    def test_unmanaged_only_passed_through(self, invoke, store):
        ref = store.add_record(ComponentKind.ROLE, name="Vendor", ismanaged=True)

        result, sessions = invoke(
            "delete", "Role", str(ref.object_id), "--unmanaged-only", "--yes"
        )

        assert sessions[0][1]["unmanaged_only"] is True
        assert _json_lines(result.output)[0]["outcome"] == "skipped_managed"

    def test_failure_still_reports_completed_changes(self, invoke, store, plugin_chain):
        assembly, plugin_type, step, image = plugin_chain
        store.fail_on("delete", StoreFaultError("throttled", status_code=429), step.object_id)

        result, _ = invoke("delete", "PluginAssembly", str(assembly.object_id), "--yes")

        assert result.exit_code == 1
        records = _json_lines(result.output)
        assert [(r["object_id"], r["outcome"]) for r in records] == [
            (str(image.object_id), "deleted")
        ]
        assert "Error: throttled" in result.output
        assert not store.exists(image)
        assert store.exists(step)


# ── solution membership ──


class TestSolutionMembership:
    def test_add(self, invoke, store, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js")

        result, _ = invoke("add-to-solution", "contoso", "WebResource", str(ref.object_id))

        assert result.exit_code == 0
        assert _json_lines(result.output) == [
            {"solution": "contoso", "component": str(ref), "added": True}
        ]

    def test_remove_one(self, invoke, store, solution):
        ref = store.add_record(ComponentKind.WEB_RESOURCE, name="app.js", solution=solution)

        result, _ = invoke("remove-from-solution", "contoso", "WebResource", str(ref.object_id))

        assert _json_lines(result.output)[0]["removed"] is True
        assert store.exists(ref)

    def test_remove_all_needs_confirmation(self, invoke, store, plugin_chain):
        result, _ = invoke("remove-from-solution", "contoso", input="n\n")
        assert result.exit_code == 1
        assert store.solution_components

    def test_remove_all_with_yes(self, invoke, store, plugin_chain):
        result, _ = invoke("remove-from-solution", "contoso", "--yes")
        assert result.exit_code == 0
        assert _json_lines(result.output) == [{"solution": "contoso", "removed": 4}]
        assert store.solution_components == []

    def test_kind_without_id_is_usage_error(self, invoke):
        result, _ = invoke("remove-from-solution", "contoso", "WebResource")
        assert result.exit_code == 2
