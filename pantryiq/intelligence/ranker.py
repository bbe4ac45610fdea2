"""Merging and ordering of replenishment recommendations."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Recommendation

DEFAULT_CAP = 20


def rank(
    stockout_candidates: Iterable[Recommendation],
    expiration_candidates: Iterable[Recommendation],
    cap: int = DEFAULT_CAP,
) -> list[Recommendation]:
    """Merge both signals into one deduplicated, ordered, capped list.

    Stockout candidates come first and win over expiration candidates for
    the same product. The sort on (priority, confidence) is stable, so
    ties keep stockout-before-expiration and per-source input order.

    Raises:
        ValueError: If ``cap`` is negative.
    """
    if cap < 0:
        raise ValueError(f"cap must not be negative, got {cap!r}")

    seen: set[str] = set()
    combined: list[Recommendation] = []
    for candidate in [*stockout_candidates, *expiration_candidates]:
        if candidate.product_id in seen:
            continue
        seen.add(candidate.product_id)
        combined.append(candidate)

    combined.sort(key=lambda r: (-r.priority, -r.confidence))
    return combined[:cap]
