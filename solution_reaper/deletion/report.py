"""Outcome tracking for cascading deletes."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from solution_reaper.models.component import ComponentRef

logger = logging.getLogger(__name__)


class DeletionOutcome(Enum):
    """What happened to one component during a cascading delete."""

    DELETED = "deleted"
    PRESERVED = "preserved"  # edited in place instead of deleted
    SKIPPED_MANAGED = "skipped_managed"
    SKIPPED_HIDDEN = "skipped_hidden"
    DECLINED = "declined"  # dry run, or the confirm callback said no
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"


@dataclass
class DeletionRecord:
    ref: ComponentRef
    outcome: DeletionOutcome
    name: str | None = None
    detail: str = ""
    depth: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.ref.kind.name,
            "object_id": str(self.ref.object_id),
            "name": self.name,
            "outcome": self.outcome.value,
            "detail": self.detail,
            "depth": self.depth,
        }


class DeletionReport:
    """Ordered record of every component a cascading delete touched."""

    def __init__(self) -> None:
        self.records: list[DeletionRecord] = []
        self.callbacks: list[Callable[[DeletionRecord], None]] = []

    def add(self, record: DeletionRecord) -> None:
        self.records.append(record)
        self._notify(record)

    def by_outcome(self) -> dict[DeletionOutcome, list[DeletionRecord]]:
        grouped: dict[DeletionOutcome, list[DeletionRecord]] = {}
        for r in self.records:
            grouped.setdefault(r.outcome, []).append(r)
        return grouped

    def outcome_of(self, ref: ComponentRef) -> DeletionOutcome | None:
        for r in self.records:
            if r.ref == ref:
                return r.outcome
        return None

    @property
    def deleted(self) -> list[ComponentRef]:
        return [r.ref for r in self.records if r.outcome is DeletionOutcome.DELETED]

    def summary(self) -> dict[str, Any]:
        counts = Counter(r.outcome.value for r in self.records)
        return {
            "total": len(self.records),
            "counts": dict(counts),
            "records": [r.to_dict() for r in self.records],
        }

    def __len__(self) -> int:
        return len(self.records)

    def _notify(self, record: DeletionRecord) -> None:
        for cb in self.callbacks:
            try:
                cb(record)
            except Exception:
                logger.debug("Report callback error for %s", record.ref, exc_info=True)
