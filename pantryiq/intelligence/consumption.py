"""Consumption velocity from inventory removal events."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone

from .models import CategoryTrend, ConsumptionEvent, Product, ProductUsage

logger = logging.getLogger(__name__)


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _is_usable(event: ConsumptionEvent) -> bool:
    if not getattr(event, "product_id", None):
        return False
    if not isinstance(getattr(event, "occurred_at", None), datetime):
        return False
    delta = getattr(event, "quantity_delta", None)
    return isinstance(delta, (int, float)) and delta > 0


def analyze(
    events: Iterable[ConsumptionEvent],
    window_days: int,
    now: datetime | None = None,
) -> dict[str, ProductUsage]:
    """Compute per-product weekly consumption over the last ``window_days``.

    Products with no events in the window are absent from the result,
    which means "no signal", not "zero consumption".

    Raises:
        ValueError: If ``window_days`` is not positive.
    """
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days!r}")

    cutoff = as_utc(now or datetime.now(timezone.utc)) - timedelta(days=window_days)

    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    units: dict[str, str | None] = {}
    for event in events:
        if not _is_usable(event):
            logger.debug("Skipping malformed consumption event: %r", event)
            continue
        if as_utc(event.occurred_at) < cutoff:
            continue
        pid = event.product_id
        totals[pid] = totals.get(pid, 0.0) + event.quantity_delta
        counts[pid] = counts.get(pid, 0) + 1
        if event.unit and pid not in units:
            units[pid] = event.unit

    return {
        pid: ProductUsage(
            product_id=pid,
            total=total,
            events_count=counts[pid],
            weekly_rate=(total / window_days) * 7,
            unit=units.get(pid),
        )
        for pid, total in totals.items()
    }


def category_trends(
    usage: Mapping[str, ProductUsage],
    products: Iterable[Product],
) -> dict[str, CategoryTrend]:
    """Roll product usage up into categories.

    Products that are unknown or uncategorized fall under "Other".
    """
    by_id = {p.id: p for p in products if p is not None}
    trends: dict[str, CategoryTrend] = {}
    for pid, stats in usage.items():
        product = by_id.get(pid)
        category = (product.category if product else "") or "Other"
        trend = trends.setdefault(category, CategoryTrend())
        trend.total += stats.total
        name = product.name if product else pid
        if name not in trend.product_names:
            trend.product_names.append(name)
    return trends


def products_from_events(events: Iterable[ConsumptionEvent]) -> list[Product]:
    """Products named by consumption events, first occurrence per id.

    Lets a product that is no longer in stock keep its category.
    """
    seen: set[str] = set()
    products: list[Product] = []
    for event in events:
        name = getattr(event, "product_name", "")
        pid = getattr(event, "product_id", None)
        if not name or not pid or pid in seen:
            continue
        seen.add(pid)
        products.append(
            Product(id=pid, name=name, category=getattr(event, "category", ""))
        )
    return products
