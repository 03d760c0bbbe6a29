"""CLI entry point: solution-reaper.

Subcommands:
    solution-reaper components-for-delete Workflow <id>     # processing plan, dependents first
    solution-reaper dependents Entity <id> --recursive      # who depends on this component
    solution-reaper requirements Entity <id>                # what this component needs
    solution-reaper describe PluginAssembly <id>
    solution-reaper delete PluginAssembly <id> --dry-run    # cascading delete
    solution-reaper list-components contoso --root-only
    solution-reaper missing-dependencies contoso            # requirements outside the solution
    solution-reaper add-to-solution contoso WebResource <id>
    solution-reaper remove-from-solution contoso [KIND ID]

Every command prints one JSON object per line on stdout.
"""

from __future__ import annotations

import json
import sys
import uuid
from collections.abc import Iterable
from typing import Any

import click

from solution_reaper.api import SolutionReaper
from solution_reaper.core.config import ReaperSettings
from solution_reaper.core.logging import setup_logging
from solution_reaper.deletion import DeletionContext
from solution_reaper.exceptions import ReaperError, UnknownComponentKindError
from solution_reaper.models.component import ComponentKind, ComponentRef


class KindType(click.ParamType):
    """Component kind given by name (``Workflow``, ``plugin-assembly``) or code."""

    name = "kind"

    def convert(self, value: Any, param: Any, ctx: Any) -> ComponentKind:
        try:
            return ComponentKind.parse(value)
        except UnknownComponentKindError as e:
            self.fail(str(e), param, ctx)


KIND = KindType()


def _open_session(settings: ReaperSettings, **kwargs: Any) -> SolutionReaper:
    return SolutionReaper.from_settings(settings, **kwargs)


def _emit(items: Iterable[Any]) -> int:
    count = 0
    for item in items:
        click.echo(json.dumps(item.to_dict(), default=str))
        count += 1
    return count


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.option("--url", default=None, help="Organisation URL (env: SOLUTION_REAPER_URL)")
@click.option("--token", default=None, help="Bearer token (env: SOLUTION_REAPER_TOKEN)")
@click.option("--api-version", default=None, help="Web API version (default: 9.2)")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(
    ctx: click.Context,
    url: str | None,
    token: str | None,
    api_version: str | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """Solution Reaper: dependency analysis and cascading deletion of components."""
    setup_logging("DEBUG" if verbose else None)
    try:
        settings = ReaperSettings.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from None
    ctx.obj = settings.with_overrides(
        url=url, token=token, api_version=api_version, timeout=timeout
    )


@main.command("components-for-delete")
@click.argument("kind", type=KIND)
@click.argument("object_id", type=click.UUID)
@click.pass_obj
def components_for_delete(
    settings: ReaperSettings, kind: ComponentKind, object_id: uuid.UUID
) -> None:
    """List the component and everything that must be removed before it."""
    try:
        with _open_session(settings) as reaper:
            _emit(reaper.components_for_delete(ComponentRef(kind, object_id)))
    except ReaperError as e:
        _fail(e)


def _reachability_command(direction: str, help_text: str):
    @main.command(direction, help=help_text)
    @click.argument("kind", type=KIND)
    @click.argument("object_id", type=click.UUID)
    @click.option("--recursive", is_flag=True, help="Follow edges transitively")
    @click.option("--max-depth", type=click.IntRange(min=1), default=None, help="Depth limit")
    @click.pass_obj
    def command(
        settings: ReaperSettings,
        kind: ComponentKind,
        object_id: uuid.UUID,
        recursive: bool,
        max_depth: int | None,
    ) -> None:
        ref = ComponentRef(kind, object_id)
        try:
            with _open_session(settings) as reaper:
                walk = getattr(reaper, direction)
                _emit(walk(ref, recursive=recursive, max_depth=max_depth))
        except ReaperError as e:
            _fail(e)

    return command


dependents = _reachability_command("dependents", "List components that depend on this one.")
requirements = _reachability_command("requirements", "List components this one requires.")


@main.command("describe")
@click.argument("kind", type=KIND)
@click.argument("object_id", type=click.UUID)
@click.pass_obj
def describe(settings: ReaperSettings, kind: ComponentKind, object_id: uuid.UUID) -> None:
    """Show the descriptor of one component."""
    try:
        with _open_session(settings) as reaper:
            _emit([reaper.describe(ComponentRef(kind, object_id))])
    except ReaperError as e:
        _fail(e)


@main.command("delete")
@click.argument("kind", type=KIND)
@click.argument("object_id", type=click.UUID)
@click.option("--unmanaged-only", is_flag=True, help="Skip managed components")
@click.option("--dry-run", is_flag=True, help="Walk and report without changing anything")
@click.option("-y", "--yes", is_flag=True, help="Do not ask before each change")
@click.pass_obj
def delete(
    settings: ReaperSettings,
    kind: ComponentKind,
    object_id: uuid.UUID,
    unmanaged_only: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Delete a component after deleting everything that blocks it."""
    confirm = None if yes or dry_run else (lambda action: click.confirm(action, err=True))
    context = DeletionContext()
    try:
        with _open_session(
            settings, unmanaged_only=unmanaged_only, dry_run=dry_run, confirm=confirm
        ) as reaper:
            report = reaper.delete(ComponentRef(kind, object_id), context)
    except ReaperError as e:
        # Changes made before the failure are already committed.
        _emit(context.report.records)
        _fail(e)
    else:
        _emit(report.records)
        counts = report.summary()["counts"]
        click.echo(
            "Summary: " + ", ".join(f"{k}={v}" for k, v in sorted(counts.items())), err=True
        )


@main.command("list-components")
@click.argument("solution")
@click.option("--root-only", is_flag=True, help="Only root components")
@click.pass_obj
def list_components(settings: ReaperSettings, solution: str, root_only: bool) -> None:
    """List the components of a solution."""
    try:
        with _open_session(settings) as reaper:
            _emit(reaper.list_solution_components(solution, root_only=root_only))
    except ReaperError as e:
        _fail(e)


@main.command("missing-dependencies")
@click.argument("solution")
@click.pass_obj
def missing_dependencies(settings: ReaperSettings, solution: str) -> None:
    """List components the solution needs but does not contain."""
    try:
        with _open_session(settings) as reaper:
            _emit(reaper.missing_dependencies(solution))
    except ReaperError as e:
        _fail(e)


@main.command("add-to-solution")
@click.argument("solution")
@click.argument("kind", type=KIND)
@click.argument("object_id", type=click.UUID)
@click.pass_obj
def add_to_solution(
    settings: ReaperSettings, solution: str, kind: ComponentKind, object_id: uuid.UUID
) -> None:
    """Add a component to a solution (no-op if already present)."""
    ref = ComponentRef(kind, object_id)
    try:
        with _open_session(settings) as reaper:
            added = reaper.add_to_solution(ref, solution)
    except ReaperError as e:
        _fail(e)
    else:
        click.echo(json.dumps({"solution": solution, "component": str(ref), "added": added}))


@main.command("remove-from-solution")
@click.argument("solution")
@click.argument("kind", type=KIND, required=False)
@click.argument("object_id", type=click.UUID, required=False)
@click.option("-y", "--yes", is_flag=True, help="Do not ask before removing everything")
@click.pass_obj
def remove_from_solution(
    settings: ReaperSettings,
    solution: str,
    kind: ComponentKind | None,
    object_id: uuid.UUID | None,
    yes: bool,
) -> None:
    """Remove one component (KIND ID) or every root component from a solution.

    Components stay in the organisation; only their membership is removed.
    """
    if (kind is None) != (object_id is None):
        raise click.UsageError("KIND and OBJECT_ID must be given together")
    if kind is None and not yes:
        click.confirm(f"Remove every component from {solution}?", abort=True, err=True)
    try:
        with _open_session(settings) as reaper:
            if kind is None:
                removed = reaper.remove_all_from_solution(solution)
                click.echo(json.dumps({"solution": solution, "removed": removed}))
            else:
                ref = ComponentRef(kind, object_id)
                ok = reaper.remove_from_solution(ref, solution)
                click.echo(json.dumps({"solution": solution, "component": str(ref), "removed": ok}))
    except ReaperError as e:
        _fail(e)


if __name__ == "__main__":
    main()
