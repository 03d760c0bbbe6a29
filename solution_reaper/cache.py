"""Session-scoped, compute-once cache for point lookups against the store."""

from __future__ import annotations

import threading
import uuid
from collections.abc import Hashable, Iterable
from typing import Any, Callable, TypeVar

import structlog

from solution_reaper.models.component import ComponentKind
from solution_reaper.store.base import ComponentStore

log = structlog.get_logger("solution_reaper.cache")

T = TypeVar("T")


class _Pending:
    """One in-flight load that other callers can wait on."""

    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None


class EntityCache:
    """Memoise store reads for the lifetime of one session.

    Records are keyed by object id alone: the first projection requested for
    an id is the one kept, and later calls with other columns get that same
    record back. Concurrent callers on one key wait for a single load; a load
    that raises is not stored, so the next caller tries again.
    """

    def __init__(self, store: ComponentStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._values: dict[Hashable, Any] = {}
        self._pending: dict[Hashable, _Pending] = {}

    def get(
        self, kind: ComponentKind, object_id: uuid.UUID, columns: Iterable[str]
    ) -> dict[str, Any]:
        """Return the record for *object_id*, reading it at most once."""
        cols = list(columns)
        return self.get_or_load(object_id, lambda: self._store.fetch_record(kind, object_id, cols))

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        with self._lock:
            if key in self._values:
                return self._values[key]
            pending = self._pending.get(key)
            owner = pending is None
            if owner:
                pending = self._pending[key] = _Pending()

        if not owner:
            pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return pending.value

        try:
            value = loader()
        except BaseException as exc:
            pending.error = exc
            with self._lock:
                del self._pending[key]
            pending.done.set()
            raise

        with self._lock:
            self._values[key] = value
            del self._pending[key]
        pending.value = value
        pending.done.set()
        log.debug("cache.loaded", key=str(key))
        return value

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._values
