"""Stockout and expiration predictions over inventory snapshots."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

from .models import InventoryItem, ProductUsage, Recommendation, RecommendationSource

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "pieces"


@dataclass(frozen=True)
class PredictionRules:
    """Thresholds for turning signals into recommendations."""

    stockout_horizon_days: float = 14
    critical_days: float = 3
    urgent_days: float = 7
    supply_weeks: float = 2
    full_confidence_events: int = 5
    expiration_confidence: float = 90
    expiration_priority: int = 3


def _usable_items(items: Iterable[InventoryItem]) -> list[InventoryItem]:
    usable: list[InventoryItem] = []
    for item in items:
        product = getattr(item, "product", None)
        quantity = getattr(item, "quantity", None)
        if product is None or not getattr(product, "id", None):
            logger.debug("Skipping inventory item without product: %r", item)
            continue
        if not isinstance(quantity, (int, float)) or quantity < 0:
            logger.debug("Skipping inventory item with bad quantity: %r", item)
            continue
        if item.is_consumed:
            continue
        usable.append(item)
    return usable


def _stockout_priority(days_until_empty: float, rules: PredictionRules) -> int:
    if days_until_empty <= rules.critical_days:
        return 5
    if days_until_empty <= rules.urgent_days:
        return 4
    return 3


def predict_stockouts(
    rates: Mapping[str, ProductUsage],
    current_inventory: Iterable[InventoryItem],
    rules: PredictionRules | None = None,
) -> list[Recommendation]:
    """Recommend products whose stock runs out within the horizon.

    Stock of a product is the sum over its unconsumed items; a product that
    is being consumed but has no stock left has a runway of 0 days. This
    holds for an empty inventory too: everything in ``rates`` is then a
    critical candidate.
    """
    rules = rules or PredictionRules()

    stock: dict[str, float] = {}
    units: dict[str, str] = {}
    names: dict[str, str] = {}
    for item in _usable_items(current_inventory):
        pid = item.product.id
        stock[pid] = stock.get(pid, 0.0) + item.quantity
        units.setdefault(pid, item.unit or DEFAULT_UNIT)
        names.setdefault(pid, item.product.name)

    candidates: list[Recommendation] = []
    for pid, usage in rates.items():
        if usage.weekly_rate <= 0:
            continue
        current = stock.get(pid, 0.0)
        days_until_empty = current / (usage.weekly_rate / 7)
        if days_until_empty > rules.stockout_horizon_days:
            continue

        candidates.append(
            Recommendation(
                product_id=pid,
                predicted_quantity=math.ceil(usage.weekly_rate * rules.supply_weeks),
                unit=units.get(pid) or usage.unit or DEFAULT_UNIT,
                priority=_stockout_priority(days_until_empty, rules),
                reason=f"Predicted to run out in {math.ceil(days_until_empty)} days",
                confidence=min(
                    usage.events_count / rules.full_confidence_events * 100, 100
                ),
                source=RecommendationSource.CONSUMPTION_PATTERN,
                product_name=names.get(pid, ""),
                current_stock=current,
                weekly_usage=usage.weekly_rate,
                days_remaining=days_until_empty,
            )
        )
    return candidates


def predict_expirations(
    current_inventory: Iterable[InventoryItem],
    horizon_days: int = 7,
    today: date | None = None,
    rules: PredictionRules | None = None,
) -> list[Recommendation]:
    """Recommend replacing stock that expires within ``horizon_days``.

    Already-expired items (0 days or fewer left) are not included. When a
    product has several expiring items, only the soonest is kept, at the
    position of the product's first appearance.

    Raises:
        ValueError: If ``horizon_days`` is negative.
    """
    if horizon_days < 0:
        raise ValueError(f"horizon_days must not be negative, got {horizon_days!r}")
    rules = rules or PredictionRules()
    today = today or date.today()

    soonest: dict[str, Recommendation] = {}
    for item in _usable_items(current_inventory):
        if item.expiration_date is None:
            continue
        days_until_expiry = (item.expiration_date - today).days
        if not 0 < days_until_expiry <= horizon_days:
            continue

        pid = item.product.id
        previous = soonest.get(pid)
        if previous is not None and previous.days_remaining <= days_until_expiry:
            continue
        soonest[pid] = Recommendation(
            product_id=pid,
            predicted_quantity=1,
            unit=item.unit or DEFAULT_UNIT,
            priority=rules.expiration_priority,
            reason=f"Current stock expires in {days_until_expiry} days",
            confidence=rules.expiration_confidence,
            source=RecommendationSource.EXPIRATION_REPLACEMENT,
            product_name=item.product.name,
            current_stock=item.quantity,
            days_remaining=days_until_expiry,
            expiration_date=item.expiration_date,
        )
    return list(soonest.values())
