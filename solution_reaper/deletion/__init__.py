"""Cascading, kind-aware deletion of components."""

from solution_reaper.deletion.dispatcher import CascadingDeleter, DeletionContext
from solution_reaper.deletion.flow import strip_composite_activities
from solution_reaper.deletion.registry import (
    DeletionStrategy,
    StrategyRegistry,
    create_default_registry,
)
from solution_reaper.deletion.report import DeletionOutcome, DeletionRecord, DeletionReport

__all__ = [
    "CascadingDeleter",
    "DeletionContext",
    "DeletionOutcome",
    "DeletionRecord",
    "DeletionReport",
    "DeletionStrategy",
    "StrategyRegistry",
    "create_default_registry",
    "strip_composite_activities",
]
