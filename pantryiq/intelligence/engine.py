"""PantryEngine: the synchronous entry point used by the surrounding app."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import TypeVar

from .config import EngineConfig
from .consumption import analyze, as_utc, category_trends, products_from_events
from .matcher import AvailabilityMatcher
from .models import (
    ConsumptionReport,
    EquivalentCandidate,
    MatchResult,
    Product,
    RecipeAvailability,
    RecipeIngredient,
    Recommendation,
)
from .normalizer import normalize
from .predictor import PredictionRules, predict_expirations, predict_stockouts
from .providers import ConsumptionEventProvider, InventorySnapshotProvider
from .ranker import rank
from .resolver import EquivalencyResolver
from .shelf_life import ShelfLifeTaxonomy, StorageLocation
from .store import EquivalencyStore, StoreUnavailable, create_store
from .store.cache import CachedEquivalencyStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def prediction_rules(config: EngineConfig) -> PredictionRules:
    p = config.prediction
    return PredictionRules(
        stockout_horizon_days=p.stockout_horizon_days,
        critical_days=p.critical_days,
        urgent_days=p.urgent_days,
        supply_weeks=p.supply_weeks,
        full_confidence_events=p.full_confidence_events,
        expiration_confidence=p.expiration_confidence,
        expiration_priority=p.expiration_priority,
    )


class PantryEngine:
    """Availability, substitution and replenishment answers for a household.

    Every call reads fresh snapshots from the providers and has no side
    effects, so identical snapshots (and an identical clock reading) give
    identical output. The equivalency store, and any cache in front of it,
    is owned by the caller.
    """

    def __init__(
        self,
        store: EquivalencyStore,
        inventory: InventorySnapshotProvider,
        events: ConsumptionEventProvider,
        config: EngineConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        taxonomy: ShelfLifeTaxonomy | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Equivalency rules, typically a CachedEquivalencyStore.
            inventory: Source of current inventory snapshots.
            events: Source of consumption events.
            config: EngineConfig; defaults are used when omitted.
            clock: Returns the current time. Naive values are read as UTC.
            taxonomy: Shelf-life data; the bundled file is loaded on first use.
        """
        self._config = config or EngineConfig()
        self._store = store
        self._inventory = inventory
        self._events = events
        self._clock = clock or _utc_now
        self._taxonomy = taxonomy

        matcher_cfg = self._config.matcher
        self._resolver = EquivalencyResolver(
            store,
            malformed_ratio_penalty=self._config.resolver.malformed_ratio_penalty,
        )
        self._matcher = AvailabilityMatcher(
            self._resolver,
            partial_min_length=matcher_cfg.partial_min_length,
            partial_confidence=matcher_cfg.partial_confidence,
        )
        self._exact_matcher = AvailabilityMatcher(
            None,
            partial_min_length=matcher_cfg.partial_min_length,
            partial_confidence=matcher_cfg.partial_confidence,
        )
        self._rules = prediction_rules(self._config)

    @classmethod
    def from_config(cls, config: EngineConfig) -> PantryEngine:
        """Build an engine over the configured store and the SQLite inventory."""
        from .db import InventoryDB

        inventory = InventoryDB(config.database.path)
        return cls(create_store(config), inventory, inventory, config)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def resolver(self) -> EquivalencyResolver:
        return self._resolver

    # -- Matching ------------------------------------------------------------

    def check_availability(
        self, ingredients: Sequence[str], household_id: str
    ) -> list[MatchResult]:
        """Classify each ingredient against the household's inventory.

        Raises:
            StoreUnavailable: If equivalency rules cannot be read and the
                exact-only fallback is disabled.
        """
        products = self._products(household_id)
        results = self._with_fallback(
            lambda m: m.match(ingredients, products, household_id)
        )
        logger.info(
            "Availability for household %s: %d ingredients, %d products",
            household_id,
            len(ingredients),
            len(products),
        )
        return results

    def check_recipe(
        self, ingredients: Sequence[RecipeIngredient], household_id: str
    ) -> RecipeAvailability:
        """Recipe-level availability summary for a household."""
        products = self._products(household_id)
        return self._with_fallback(
            lambda m: m.check_recipe(ingredients, products, household_id)
        )

    def resolve_equivalents(
        self, food_name: str, household_id: str | None = None
    ) -> list[EquivalentCandidate]:
        """Substitutes for a food, household rules first."""
        return self._resolver.resolve(food_name, household_id)

    def invalidate_equivalencies(self, *food_names: str) -> None:
        """Forget cached rules after they were edited.

        Pass both names of an edited rule, e.g.
        ``invalidate_equivalencies("butter", "margarine")``: a bidirectional
        rule is also served under its equivalent name. Cached entries that
        hold a rule touching any given name are dropped as well. Without
        names the whole cache is cleared. No-op when the store is not cached.
        """
        if not isinstance(self._store, CachedEquivalencyStore):
            return
        if not food_names:
            self._store.invalidate_all()
            return
        for food_name in food_names:
            self._store.invalidate(normalize(food_name))

    # -- Replenishment -------------------------------------------------------

    def predict_replenishment(
        self,
        household_id: str,
        window_days: int | None = None,
        horizon_days: int | None = None,
    ) -> list[Recommendation]:
        """Ranked restock suggestions from consumption and expiry signals.

        Raises:
            ValueError: If ``window_days`` is not positive or
                ``horizon_days`` is negative.
        """
        prediction = self._config.prediction
        window_days = prediction.window_days if window_days is None else window_days
        horizon_days = (
            prediction.horizon_days if horizon_days is None else horizon_days
        )
        if window_days <= 0:
            raise ValueError(f"window_days must be positive, got {window_days!r}")
        if horizon_days < 0:
            raise ValueError(f"horizon_days must not be negative, got {horizon_days!r}")

        now = as_utc(self._clock())
        inventory = self._inventory.get_inventory(household_id)
        events = self._events.get_consumption_events(
            household_id, now - timedelta(days=window_days)
        )

        usage = analyze(events, window_days, now=now)
        stockouts = predict_stockouts(usage, inventory, self._rules)
        expirations = predict_expirations(
            inventory, horizon_days, today=now.date(), rules=self._rules
        )
        ranked = rank(stockouts, expirations, cap=prediction.max_recommendations)

        logger.info(
            "Replenishment for household %s: %d stockout, %d expiration, %d returned",
            household_id,
            len(stockouts),
            len(expirations),
            len(ranked),
        )
        return ranked

    def consumption_report(
        self, household_id: str, window_days: int | None = None
    ) -> ConsumptionReport:
        """Per-product usage and per-category trends over a window."""
        if window_days is None:
            window_days = self._config.prediction.window_days
        if window_days <= 0:
            raise ValueError(f"window_days must be positive, got {window_days!r}")

        now = as_utc(self._clock())
        events = list(
            self._events.get_consumption_events(
                household_id, now - timedelta(days=window_days)
            )
        )
        usage = analyze(events, window_days, now=now)
        # Inventory records override what the events carried
        products = products_from_events(events) + [
            item.product
            for item in self._inventory.get_inventory(household_id)
            if item.product is not None
        ]
        return ConsumptionReport(
            usage=usage,
            category_trends=category_trends(usage, products),
            window_days=window_days,
        )

    # -- Shelf life ----------------------------------------------------------

    def suggest_expiration(
        self,
        product: Product,
        purchase_date: date | None = None,
        location: StorageLocation | None = None,
        shelf_life_days: int | None = None,
    ) -> date:
        """Estimated expiration date for a new purchase of ``product``."""
        if self._taxonomy is None:
            self._taxonomy = ShelfLifeTaxonomy.load()
        return self._taxonomy.suggest_expiration_date(
            product.name,
            product.category,
            purchase_date or as_utc(self._clock()).date(),
            location=location,
            shelf_life_days=shelf_life_days,
        )

    # -- Internals -----------------------------------------------------------

    def _products(self, household_id: str) -> list[Product]:
        """Distinct products that currently have stock, in snapshot order."""
        seen: set[str] = set()
        products: list[Product] = []
        for item in self._inventory.get_inventory(household_id):
            product = item.product
            if product is None or item.is_consumed:
                continue
            if not isinstance(item.quantity, (int, float)) or item.quantity <= 0:
                continue
            if product.id in seen:
                continue
            seen.add(product.id)
            products.append(product)
        return products

    def _with_fallback(self, call: Callable[[AvailabilityMatcher], T]) -> T:
        try:
            return call(self._matcher)
        except StoreUnavailable as e:
            if not self._config.matcher.fallback_to_exact_on_store_error:
                raise
            logger.warning("Equivalency store unavailable, matching exact only: %s", e)
            return call(self._exact_matcher)
