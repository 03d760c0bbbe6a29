"""Strategy registry: maps component kinds to deletion strategies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from solution_reaper.deletion.report import DeletionOutcome
from solution_reaper.models.component import ComponentKind, ComponentRef

if TYPE_CHECKING:
    from solution_reaper.deletion.dispatcher import CascadingDeleter, DeletionContext

logger = logging.getLogger(__name__)

DeletionStrategy = Callable[["CascadingDeleter", ComponentRef, "DeletionContext"], DeletionOutcome]


class StrategyRegistry:
    """Deletion strategy registration center.

    Kinds without a registered strategy fall back to *default*.
    """

    def __init__(self, default: DeletionStrategy | None = None) -> None:
        if default is None:
            from solution_reaper.deletion.strategies import delete_unsupported

            default = delete_unsupported
        self._default = default
        self._strategies: dict[ComponentKind, DeletionStrategy] = {}

    def register(self, kind: ComponentKind, strategy: DeletionStrategy) -> None:
        self._strategies[kind] = strategy
        logger.debug("Registered deletion strategy for %s: %s", kind.name, strategy.__name__)

    def get(self, kind: ComponentKind) -> DeletionStrategy:
        return self._strategies.get(kind, self._default)

    def kinds(self) -> list[ComponentKind]:
        return list(self._strategies)

    def __contains__(self, kind: object) -> bool:
        return kind in self._strategies


# Record kinds removed with a plain delete once their blockers are gone.
GENERIC_RECORD_KINDS = (
    ComponentKind.CONNECTION_ROLE,
    ComponentKind.SDK_MESSAGE_PROCESSING_STEP_IMAGE,
    ComponentKind.PLUGIN_TYPE,
    ComponentKind.PLUGIN_ASSEMBLY,
    ComponentKind.SERVICE_ENDPOINT,
    ComponentKind.SAVED_QUERY,
    ComponentKind.WEB_RESOURCE,
    ComponentKind.ROLE,
    ComponentKind.EMAIL_TEMPLATE,
    ComponentKind.CONTRACT_TEMPLATE,
    ComponentKind.KB_ARTICLE_TEMPLATE,
    ComponentKind.MAIL_MERGE_TEMPLATE,
    ComponentKind.FIELD_SECURITY_PROFILE,
    ComponentKind.SYSTEM_FORM,
    ComponentKind.REPORT,
    ComponentKind.SITE_MAP,
    ComponentKind.SLA,
    ComponentKind.CUSTOM_CONTROL,
)


def create_default_registry() -> StrategyRegistry:
    """Create a registry with the built-in strategies registered."""
    from solution_reaper.deletion import strategies

    registry = StrategyRegistry(default=strategies.delete_unsupported)
    registry.register(ComponentKind.ENTITY, strategies.delete_entity)
    registry.register(ComponentKind.ENTITY_RELATIONSHIP, strategies.delete_relationship)
    registry.register(ComponentKind.OPTION_SET, strategies.delete_option_set)
    registry.register(ComponentKind.WORKFLOW, strategies.delete_workflow)
    registry.register(ComponentKind.SDK_MESSAGE_PROCESSING_STEP, strategies.delete_processing_step)
    for kind in GENERIC_RECORD_KINDS:
        registry.register(kind, strategies.delete_record)
    return registry
