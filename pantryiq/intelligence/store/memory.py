"""In-process equivalency store."""

from __future__ import annotations

import threading
from dataclasses import replace

from ..models import EquivalencyEdge, Scope
from ..normalizer import normalize
from . import EquivalencyStore, edge_from_record, validate_edge


def _touches(edge: EquivalencyEdge, food_name: str) -> bool:
    if edge.subject_name == food_name:
        return True
    return edge.bidirectional and edge.equivalent_name == food_name


class InMemoryEquivalencyStore(EquivalencyStore):
    """Keeps both rule tiers in lists; suitable for tests and seeding."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._system: list[EquivalencyEdge] = []
        self._household: dict[str, list[EquivalencyEdge]] = {}
        self._next_id = 1

    def get_system_edges(self, food_name: str) -> list[EquivalencyEdge]:
        with self._lock:
            return [e for e in self._system if _touches(e, food_name)]

    def get_household_edges(
        self, household_id: str, food_name: str
    ) -> list[EquivalencyEdge]:
        with self._lock:
            edges = self._household.get(household_id, [])
            return [e for e in edges if _touches(e, food_name)]

    def add_system_edge(
        self,
        subject_name: str,
        equivalent_name: str,
        *,
        confidence: float = 1.0,
        substitution_ratio: str = "1:1",
        bidirectional: bool = False,
        notes: str = "",
        overwrite: bool = True,
    ) -> EquivalencyEdge | None:
        """Insert a system default rule. Returns the stored edge.

        With ``overwrite=False`` nothing is written if a rule for the pair
        already exists, and None is returned.
        """
        return self._add(
            {
                "subject_name": subject_name,
                "equivalent_name": equivalent_name,
                "confidence": confidence,
                "substitution_ratio": substitution_ratio,
                "bidirectional": bidirectional,
                "notes": notes,
            },
            Scope.SYSTEM,
            overwrite=overwrite,
        )

    def add_household_edge(
        self,
        household_id: str,
        subject_name: str,
        equivalent_name: str,
        *,
        confidence: float = 1.0,
        substitution_ratio: str = "1:1",
        bidirectional: bool = False,
        notes: str = "",
    ) -> EquivalencyEdge:
        """Insert a household override rule. Returns the stored edge."""
        return self._add(
            {
                "household_id": household_id,
                "subject_name": subject_name,
                "equivalent_name": equivalent_name,
                "confidence": confidence,
                "substitution_ratio": substitution_ratio,
                "bidirectional": bidirectional,
                "notes": notes,
            },
            Scope.HOUSEHOLD,
        )

    def deactivate_household_edge(
        self, household_id: str, subject_name: str, equivalent_name: str
    ) -> int:
        """Mark matching household edges inactive. Returns the count."""
        return self._rewrite(household_id, subject_name, equivalent_name, drop=False)

    def delete_household_edge(
        self, household_id: str, subject_name: str, equivalent_name: str
    ) -> int:
        """Remove a household override so the system default applies again."""
        return self._rewrite(household_id, subject_name, equivalent_name, drop=True)

    def _add(
        self, record: dict, scope: Scope, *, overwrite: bool = True
    ) -> EquivalencyEdge | None:
        with self._lock:
            record["id"] = self._next_id
            edge = edge_from_record(record, scope)
            validate_edge(edge)
            if not overwrite and any(
                e.subject_name == edge.subject_name
                and e.equivalent_name == edge.equivalent_name
                for e in self._system
            ):
                return None
            self._next_id += 1
            if scope is Scope.SYSTEM:
                self._system.append(edge)
            else:
                self._household.setdefault(edge.household_id, []).append(edge)
            return edge

    def _rewrite(
        self, household_id: str, subject_name: str, equivalent_name: str, *, drop: bool
    ) -> int:
        subject, equivalent = normalize(subject_name), normalize(equivalent_name)
        with self._lock:
            kept: list[EquivalencyEdge] = []
            count = 0
            for edge in self._household.get(household_id, []):
                if edge.subject_name == subject and edge.equivalent_name == equivalent:
                    count += 1
                    if drop:
                        continue
                    edge = replace(edge, active=False)
                kept.append(edge)
            self._household[household_id] = kept
            return count
