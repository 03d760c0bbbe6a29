"""Shared pytest fixtures for solution-reaper tests."""

import pytest

from solution_reaper.api import SolutionReaper
from solution_reaper.models.component import ComponentKind
from solution_reaper.testing import InMemoryComponentStore


@pytest.fixture
def store():
    return InMemoryComponentStore()


@pytest.fixture
def solution(store):
    return store.add_solution("contoso")


@pytest.fixture
def reaper(store):
    return SolutionReaper(store)


@pytest.fixture
def plugin_chain(store, solution):
    """Assembly <- plugin type <- step <- step image, all in one solution."""
    assembly = store.add_record(
        ComponentKind.PLUGIN_ASSEMBLY, name="Contoso.Plugins", solution=solution
    )
    plugin_type = store.add_record(
        ComponentKind.PLUGIN_TYPE, name="Contoso.Plugins.AccountCreate", solution=solution
    )
    step = store.add_record(
        ComponentKind.SDK_MESSAGE_PROCESSING_STEP,
        name="Create of account",
        ishidden=False,
        solution=solution,
    )
    image = store.add_record(
        ComponentKind.SDK_MESSAGE_PROCESSING_STEP_IMAGE, name="PreImage", solution=solution
    )
    store.add_dependency(plugin_type, assembly)
    store.add_dependency(step, plugin_type)
    store.add_dependency(image, step)
    return assembly, plugin_type, step, image
