"""Equivalency store base class, boundary decoding, and factory."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..models import EquivalencyEdge, Scope
from ..normalizer import normalize
from ..ratio import ONE_TO_ONE, parse_ratio

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    """The equivalency store could not be queried (network, timeout, I/O).

    Distinct from "no rules found", which is an empty list.
    """


class EquivalencyStore(ABC):
    """Read interface over the two equivalency rule tiers.

    Implementations return every edge whose subject is ``food_name``, and
    bidirectional edges whose equivalent is ``food_name``. Inactive edges
    may be included; the resolver filters them.
    """

    @abstractmethod
    def get_system_edges(self, food_name: str) -> list[EquivalencyEdge]:
        ...

    @abstractmethod
    def get_household_edges(
        self, household_id: str, food_name: str
    ) -> list[EquivalencyEdge]:
        ...


def validate_edge(edge: EquivalencyEdge) -> None:
    """Write-time checks applied by writable stores.

    Raises:
        ValueError: On self-referencing edges, empty names or confidence
            outside (0, 1].
    """
    if not edge.subject_name or not edge.equivalent_name:
        raise ValueError("Equivalency names must not be empty")
    if edge.subject_name == edge.equivalent_name:
        raise ValueError(
            f"Self-referencing equivalency rejected: {edge.subject_name!r}"
        )
    if not 0 < edge.confidence <= 1:
        raise ValueError(
            f"Confidence must be in (0, 1], got {edge.confidence!r}"
        )
    if edge.scope is Scope.HOUSEHOLD and not edge.household_id:
        raise ValueError("Household edges require a household_id")


def edge_from_record(record: Mapping[str, Any], scope: Scope | str) -> EquivalencyEdge:
    """Decode a stored row into an EquivalencyEdge.

    Names are normalized and the ratio string is parsed exactly once here.
    A malformed ratio becomes 1:1 with ``ratio_valid=False``.
    """
    scope = Scope(scope)
    raw_ratio = record.get("substitution_ratio")
    ratio = parse_ratio(raw_ratio) if raw_ratio is not None else ONE_TO_ONE
    ratio_valid = ratio is not None
    if not ratio_valid:
        logger.debug(
            "Unparseable substitution ratio %r for %r -> %r",
            raw_ratio,
            record.get("subject_name"),
            record.get("equivalent_name"),
        )
        ratio = ONE_TO_ONE

    try:
        confidence = float(record.get("confidence", 1.0))
    except (TypeError, ValueError):
        confidence = 0.0

    return EquivalencyEdge(
        subject_name=normalize(record.get("subject_name")),
        equivalent_name=normalize(record.get("equivalent_name")),
        confidence=confidence,
        ratio=ratio,
        bidirectional=bool(record.get("bidirectional", False)),
        scope=scope,
        active=bool(record.get("active", True)),
        household_id=record.get("household_id"),
        ratio_valid=ratio_valid,
        notes=record.get("notes") or "",
        id=record.get("id"),
    )


def create_store(config: EngineConfig) -> EquivalencyStore:
    """Create the equivalency store described by configuration.

    The result is wrapped in a TTL cache when ``cache.enabled`` is set.
    """
    backend_name = config.store.backend

    match backend_name:
        case "memory":
            from .memory import InMemoryEquivalencyStore

            store: EquivalencyStore = InMemoryEquivalencyStore()
        case "sqlite":
            from ..db import EquivalencyDB

            store = EquivalencyDB(config.database.path)
        case _:
            raise ValueError(
                f"Unknown equivalency store backend: {backend_name!r} "
                f"(choose memory or sqlite)"
            )

    if config.store.seed_defaults:
        from ..defaults import seed_system_defaults

        seed_system_defaults(store)

    if config.cache.enabled:
        from .cache import CachedEquivalencyStore

        store = CachedEquivalencyStore(store, ttl_seconds=config.cache.ttl_seconds)
    return store


__all__ = [
    "EquivalencyStore",
    "StoreUnavailable",
    "create_store",
    "edge_from_record",
    "validate_edge",
]
