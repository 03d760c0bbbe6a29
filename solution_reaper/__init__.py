"""Solution Reaper: dependency analysis and cascading deletion of platform components."""

__version__ = "0.1.0"

from solution_reaper.api import SolutionReaper
from solution_reaper.cache import EntityCache
from solution_reaper.dependencies import DependencyQueryAdapter, Direction
from solution_reaper.deletion import (
    CascadingDeleter,
    DeletionContext,
    DeletionOutcome,
    DeletionReport,
    StrategyRegistry,
    create_default_registry,
)
from solution_reaper.exceptions import (
    ObjectNotFoundError,
    ReaperError,
    SolutionNotFoundError,
    StoreFaultError,
    UnknownComponentKindError,
)
from solution_reaper.models import (
    ComponentDescriptor,
    ComponentKind,
    ComponentRef,
    DependencyEdge,
    DependencyKind,
    DependencyRecord,
    SolutionRef,
)
from solution_reaper.resolver import ComponentResolver
from solution_reaper.solutions import SolutionManager
from solution_reaper.store import ComponentStore, WebApiStore
from solution_reaper.walker import DependencyWalker

__all__ = [
    "CascadingDeleter",
    "ComponentDescriptor",
    "ComponentKind",
    "ComponentRef",
    "ComponentResolver",
    "ComponentStore",
    "DeletionContext",
    "DeletionOutcome",
    "DeletionReport",
    "DependencyEdge",
    "DependencyKind",
    "DependencyQueryAdapter",
    "DependencyRecord",
    "DependencyWalker",
    "Direction",
    "EntityCache",
    "ObjectNotFoundError",
    "ReaperError",
    "SolutionManager",
    "SolutionNotFoundError",
    "SolutionReaper",
    "SolutionRef",
    "StoreFaultError",
    "StrategyRegistry",
    "UnknownComponentKindError",
    "WebApiStore",
    "create_default_registry",
]
