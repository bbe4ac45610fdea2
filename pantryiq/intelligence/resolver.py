"""Equivalency resolution across household overrides and system defaults."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .models import EquivalencyEdge, EquivalentCandidate, Scope
from .normalizer import normalize
from .store import EquivalencyStore

logger = logging.getLogger(__name__)


class RuleTier(ABC):
    """One precedence level of equivalency rules."""

    scope: Scope

    @abstractmethod
    def lookup(self, food_name: str) -> list[EquivalencyEdge]:
        ...


class HouseholdTier(RuleTier):
    scope = Scope.HOUSEHOLD

    def __init__(self, store: EquivalencyStore, household_id: str) -> None:
        self._store = store
        self._household_id = household_id

    def lookup(self, food_name: str) -> list[EquivalencyEdge]:
        return self._store.get_household_edges(self._household_id, food_name)


class SystemTier(RuleTier):
    scope = Scope.SYSTEM

    def __init__(self, store: EquivalencyStore) -> None:
        self._store = store

    def lookup(self, food_name: str) -> list[EquivalencyEdge]:
        return self._store.get_system_edges(food_name)


def _orient(
    edge: EquivalencyEdge, food_name: str, ratio_penalty: float
) -> EquivalentCandidate | None:
    """Express an edge as a substitute for ``food_name``, or None if it does not apply."""
    if not edge.active:
        return None

    if edge.subject_name == food_name:
        target, ratio = edge.equivalent_name, edge.ratio
    elif edge.bidirectional and edge.equivalent_name == food_name:
        target, ratio = edge.subject_name, edge.ratio.inverted()
    else:
        return None

    if not target or target == food_name:
        logger.debug("Ignoring self-referencing equivalency for %r", food_name)
        return None
    if not 0 < edge.confidence <= 1:
        logger.debug(
            "Ignoring equivalency %r -> %r with confidence %r",
            edge.subject_name,
            edge.equivalent_name,
            edge.confidence,
        )
        return None

    confidence = edge.confidence
    if not edge.ratio_valid:
        confidence *= ratio_penalty

    return EquivalentCandidate(
        equivalent_name=target,
        confidence=confidence,
        ratio=ratio,
        bidirectional=edge.bidirectional,
        scope=edge.scope,
    )


class EquivalencyResolver:
    """Find substitutable names for a food, honoring rule precedence.

    Tiers are consulted in order (household, then system). For each
    ``(name, equivalent)`` pair the first tier that defines an active edge
    wins outright; later tiers never merge into or average with it.
    Unrelated pairs from later tiers still apply.

    Store failures propagate as StoreUnavailable.
    """

    def __init__(
        self,
        store: EquivalencyStore,
        malformed_ratio_penalty: float = 0.9,
    ) -> None:
        self._store = store
        self._ratio_penalty = malformed_ratio_penalty

    @property
    def store(self) -> EquivalencyStore:
        return self._store

    def tiers(self, household_id: str | None = None) -> list[RuleTier]:
        chain: list[RuleTier] = []
        if household_id:
            chain.append(HouseholdTier(self._store, household_id))
        chain.append(SystemTier(self._store))
        return chain

    def resolve(
        self, food_name: str, household_id: str | None = None
    ) -> list[EquivalentCandidate]:
        """Return substitutes sorted by confidence desc, then name.

        An empty list means no rule applies.
        """
        name = normalize(food_name)
        if not name:
            return []

        winners: dict[str, EquivalentCandidate] = {}
        for tier in self.tiers(household_id):
            tier_best: dict[str, EquivalentCandidate] = {}
            for edge in tier.lookup(name):
                candidate = _orient(edge, name, self._ratio_penalty)
                if candidate is None:
                    continue
                current = tier_best.get(candidate.equivalent_name)
                if current is None or candidate.confidence > current.confidence:
                    tier_best[candidate.equivalent_name] = candidate

            for pair, candidate in tier_best.items():
                if pair in winners:
                    logger.debug(
                        "%s rule %r -> %r shadowed by %s rule",
                        tier.scope.value,
                        name,
                        pair,
                        winners[pair].scope.value,
                    )
                    continue
                winners[pair] = candidate

        return sorted(
            winners.values(), key=lambda c: (-c.confidence, c.equivalent_name)
        )
