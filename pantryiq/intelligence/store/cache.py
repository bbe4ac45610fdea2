"""Time-to-live cache in front of an EquivalencyStore."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..models import EquivalencyEdge
from . import EquivalencyStore

logger = logging.getLogger(__name__)


@dataclass
class _NameEntry:
    """Cached edges of both scopes for one food name.

    Both scopes share ``fetched_at`` so they always expire together.
    """

    fetched_at: float
    system: list[EquivalencyEdge] | None = None
    households: dict[str, list[EquivalencyEdge]] = field(default_factory=dict)

    def mentions(self, food_name: str) -> bool:
        """True if any cached edge names ``food_name`` on either side."""
        groups = list(self.households.values())
        if self.system is not None:
            groups.append(self.system)
        return any(
            food_name in (edge.subject_name, edge.equivalent_name)
            for edges in groups
            for edge in edges
        )


class CachedEquivalencyStore(EquivalencyStore):
    """Caches store reads per food name for ``ttl_seconds``.

    Owned by the caller and injected into the engine; never process-global.
    Failed reads are not cached, so a StoreUnavailable is retried on the
    next call. A read that was in flight when an invalidation happened is
    returned to its caller but not cached.
    """

    def __init__(
        self,
        store: EquivalencyStore,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _NameEntry] = {}
        # Bumped by every invalidation
        self._generation = 0

    @property
    def store(self) -> EquivalencyStore:
        return self._store

    def get_system_edges(self, food_name: str) -> list[EquivalencyEdge]:
        with self._lock:
            entry = self._live_entry(food_name)
            if entry is not None and entry.system is not None:
                return list(entry.system)
            generation = self._generation

        edges = self._store.get_system_edges(food_name)

        with self._lock:
            if generation == self._generation:
                entry = self._entry_for_write(food_name)
                entry.system = list(edges)
        return list(edges)

    def get_household_edges(
        self, household_id: str, food_name: str
    ) -> list[EquivalencyEdge]:
        with self._lock:
            entry = self._live_entry(food_name)
            if entry is not None and household_id in entry.households:
                return list(entry.households[household_id])
            generation = self._generation

        edges = self._store.get_household_edges(household_id, food_name)

        with self._lock:
            if generation == self._generation:
                entry = self._entry_for_write(food_name)
                entry.households[household_id] = list(edges)
        return list(edges)

    def invalidate(self, food_name: str) -> None:
        """Drop both scopes cached for a food name.

        Entries cached under other names are dropped too when they hold an
        edge naming ``food_name``, so the far end of an edited bidirectional
        rule is refreshed.
        """
        with self._lock:
            self._generation += 1
            stale = [
                name
                for name, entry in self._entries.items()
                if name == food_name or entry.mentions(food_name)
            ]
            for name in stale:
                del self._entries[name]
        if len(stale) > 1:
            logger.debug("Invalidated %d cached names for %r", len(stale), food_name)

    def invalidate_all(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
        logger.debug("Equivalency cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _live_entry(self, food_name: str) -> _NameEntry | None:
        entry = self._entries.get(food_name)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            del self._entries[food_name]
            return None
        return entry

    def _entry_for_write(self, food_name: str) -> _NameEntry:
        entry = self._live_entry(food_name)
        if entry is None:
            entry = _NameEntry(fetched_at=self._clock())
            self._entries[food_name] = entry
        return entry
