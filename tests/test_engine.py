"""Tests for the PantryEngine facade."""

import threading
from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from pantryiq.intelligence.config import (
    CacheConfig,
    DatabaseConfig,
    EngineConfig,
    MatcherConfig,
    PredictionConfig,
    StoreConfig,
)
from pantryiq.intelligence.db import InventoryDB
from pantryiq.intelligence.engine import PantryEngine
from pantryiq.intelligence.models import (
    ConsumptionEvent,
    InventoryItem,
    MatchStatus,
    Product,
    RecipeIngredient,
    RecommendationSource,
)
from pantryiq.intelligence.providers import (
    ConsumptionEventProvider,
    InventorySnapshotProvider,
)
from pantryiq.intelligence.store import EquivalencyStore, StoreUnavailable
from pantryiq.intelligence.store.cache import CachedEquivalencyStore
from pantryiq.intelligence.store.memory import InMemoryEquivalencyStore

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

MILK = Product("p-milk", "Whole Milk", "Dairy")
SEA_SALT = Product("p-salt", "Sea Salt", "Pantry Staples")
BREAD = Product("p-bread", "Bread", "Bakery")


class FakeInventory(InventorySnapshotProvider):
    def __init__(self, items=()):
        self.items = list(items)
        self.calls = 0

    def get_inventory(self, household_id):
        self.calls += 1
        return list(self.items)


class FakeEvents(ConsumptionEventProvider):
    def __init__(self, events=()):
        self.events = list(events)
        self.since = None

    def get_consumption_events(self, household_id, since):
        self.since = since
        return [e for e in self.events if e.occurred_at >= since]


def _milk_events():
    return FakeEvents(
        [ConsumptionEvent("p-milk", 1, NOW - timedelta(days=d)) for d in (1, 4, 8)]
    )


@pytest.fixture
def store():
    return InMemoryEquivalencyStore()


def _engine(store, items=(), events=None, config=None, **kwargs):
    return PantryEngine(
        store,
        FakeInventory(items),
        events or FakeEvents(),
        config,
        clock=kwargs.pop("clock", lambda: NOW),
        **kwargs,
    )


class TestCheckAvailability:
    def test_equivalent_match(self, store):
        store.add_system_edge("salt", "sea salt", confidence=0.95)
        engine = _engine(store, [InventoryItem(SEA_SALT, 1)])

        (result,) = engine.check_availability(["Salt"], "h1")

        assert result.status is MatchStatus.EQUIVALENT
        assert result.confidence == 0.95

    def test_household_rules_apply(self, store):
        store.add_household_edge("h1", "butter", "margarine", confidence=0.7)
        engine = _engine(store, [InventoryItem(Product("p-m", "Margarine"), 1)])

        assert engine.check_availability(["butter"], "h1")[0].status is MatchStatus.EQUIVALENT
        assert engine.check_availability(["butter"], "h2")[0].status is MatchStatus.MISSING

    def test_items_without_stock_are_ignored(self, store):
        items = [
            InventoryItem(Product("p-s", "Salt"), 0),
            InventoryItem(Product("p-s2", "Salt"), 2, is_consumed=True),
            InventoryItem(None, 1),
        ]
        assert _engine(store, items).check_availability(["salt"], "h1") == []

    def test_empty_inventory(self, store):
        assert _engine(store).check_availability(["salt"], "h1") == []

    def test_store_failure_propagates_by_default(self):
        failing = Mock(spec=EquivalencyStore)
        failing.get_household_edges.side_effect = StoreUnavailable("timeout")
        engine = _engine(failing, [InventoryItem(SEA_SALT, 1)])

        with pytest.raises(StoreUnavailable):
            engine.check_availability(["salt"], "h1")

    def test_exact_only_fallback(self):
        failing = Mock(spec=EquivalencyStore)
        failing.get_household_edges.side_effect = StoreUnavailable("timeout")
        config = EngineConfig(matcher=MatcherConfig(fallback_to_exact_on_store_error=True))
        engine = _engine(failing, [InventoryItem(SEA_SALT, 1)], config=config)

        results = engine.check_availability(["sea salt", "salt"], "h1")

        assert [r.status for r in results] == [MatchStatus.EXACT, MatchStatus.PARTIAL]

    def test_check_recipe(self, store):
        engine = _engine(store, [InventoryItem(MILK, 1)])
        summary = engine.check_recipe(
            [RecipeIngredient("milk"), RecipeIngredient("flour")], "h1"
        )
        assert summary.missing == ["flour"]
        assert summary.availability_pct == 50.0


class TestResolveEquivalents:
    def test_delegates_to_resolver(self, store):
        store.add_household_edge(
            "h1", "butter", "margarine", confidence=0.8,
            substitution_ratio="2:1", bidirectional=True,
        )
        (candidate,) = _engine(store).resolve_equivalents("Margarine", "h1")
        assert candidate.equivalent_name == "butter"
        assert str(candidate.ratio) == "1:2"

    def test_invalidate_cached_rules(self, store):
        cached = CachedEquivalencyStore(store, ttl_seconds=300)
        engine = _engine(cached)
        assert engine.resolve_equivalents("salt") == []

        store.add_system_edge("salt", "sea salt", confidence=0.9)
        assert engine.resolve_equivalents("salt") == []

        engine.invalidate_equivalencies("Salt")
        assert len(engine.resolve_equivalents("salt")) == 1

    def test_invalidate_without_cache_is_noop(self, store):
        _engine(store).invalidate_equivalencies()

    def test_invalidate_refreshes_both_ends_of_bidirectional_rule(self, store):
        store.add_household_edge(
            "h1", "butter", "margarine", confidence=0.8, bidirectional=True
        )
        engine = _engine(CachedEquivalencyStore(store, ttl_seconds=300))
        assert len(engine.resolve_equivalents("margarine", "h1")) == 1

        store.delete_household_edge("h1", "butter", "margarine")
        engine.invalidate_equivalencies("butter")

        assert engine.resolve_equivalents("margarine", "h1") == []

    def test_invalidate_several_names(self, store):
        engine = _engine(CachedEquivalencyStore(store, ttl_seconds=300))
        assert engine.resolve_equivalents("margarine", "h1") == []

        store.add_household_edge(
            "h1", "butter", "margarine", confidence=0.8, bidirectional=True
        )
        engine.invalidate_equivalencies("Butter", "Margarine")

        (candidate,) = engine.resolve_equivalents("margarine", "h1")
        assert candidate.equivalent_name == "butter"


class TestPredictReplenishment:
    def test_milk_scenario(self, store):
        engine = _engine(store, [InventoryItem(MILK, 2)], _milk_events())

        (rec,) = engine.predict_replenishment("h1", window_days=14)

        assert rec.product_id == "p-milk"
        assert rec.priority == 3
        assert rec.days_remaining == pytest.approx(9.333, rel=1e-3)
        assert rec.product_name == "Whole Milk"

    def test_window_is_passed_to_provider(self, store):
        events = FakeEvents()
        _engine(store, events=events).predict_replenishment("h1", window_days=14)
        assert events.since == NOW - timedelta(days=14)

    def test_defaults_come_from_config(self, store):
        events = FakeEvents()
        _engine(store, events=events).predict_replenishment("h1")
        assert events.since == NOW - timedelta(days=30)

    def test_empty_inventory_with_usage(self, store):
        """A household that used everything up gets critical restocks."""
        (rec,) = _engine(store, [], _milk_events()).predict_replenishment(
            "h1", window_days=14
        )
        assert rec.product_id == "p-milk"
        assert rec.current_stock == 0
        assert rec.priority == 5

    def test_expiration_suppressed_by_stockout(self, store):
        items = [InventoryItem(MILK, 2, expiration_date=TODAY + timedelta(days=5))]
        engine = _engine(store, items, _milk_events())

        (rec,) = engine.predict_replenishment("h1", window_days=14)
        assert rec.source is RecommendationSource.CONSUMPTION_PATTERN

    def test_expiration_only(self, store):
        items = [InventoryItem(BREAD, 1, expiration_date=TODAY + timedelta(days=5))]
        (rec,) = _engine(store, items).predict_replenishment("h1")

        assert rec.source is RecommendationSource.EXPIRATION_REPLACEMENT
        assert rec.priority == 3
        assert rec.confidence == 90
        assert rec.predicted_quantity == 1

    def test_idempotent(self, store):
        items = [
            InventoryItem(MILK, 2, expiration_date=TODAY + timedelta(days=5)),
            InventoryItem(BREAD, 1, expiration_date=TODAY + timedelta(days=2)),
        ]
        engine = _engine(store, items, _milk_events())
        assert engine.predict_replenishment("h1", 14, 7) == engine.predict_replenishment(
            "h1", 14, 7
        )

    def test_cap_from_config(self, store):
        products = [Product(f"p{i}", f"Item {i}") for i in range(5)]
        items = [
            InventoryItem(p, 1, expiration_date=TODAY + timedelta(days=3)) for p in products
        ]
        config = EngineConfig(prediction=PredictionConfig(max_recommendations=2))
        assert len(_engine(store, items, config=config).predict_replenishment("h1")) == 2

    def test_naive_clock(self, store):
        engine = _engine(
            store, [InventoryItem(MILK, 2)], _milk_events(),
            clock=lambda: NOW.replace(tzinfo=None),
        )
        assert len(engine.predict_replenishment("h1", window_days=14)) == 1

    @pytest.mark.parametrize("window,horizon", [(0, 7), (-1, 7), (30, -1)])
    def test_invalid_arguments(self, store, window, horizon):
        inventory = FakeInventory()
        engine = PantryEngine(store, inventory, FakeEvents(), clock=lambda: NOW)
        with pytest.raises(ValueError):
            engine.predict_replenishment("h1", window, horizon)
        assert inventory.calls == 0


class TestConsumptionReport:
    def test_report(self, store):
        report = _engine(store, [InventoryItem(MILK, 2)], _milk_events()).consumption_report(
            "h1", window_days=14
        )
        assert report.window_days == 14
        assert report.usage["p-milk"].weekly_rate == pytest.approx(1.5)
        assert report.category_trends["Dairy"].product_names == ["Whole Milk"]

    def test_used_up_product_keeps_its_category(self, store):
        events = FakeEvents(
            [
                ConsumptionEvent(
                    "p-milk", 1, NOW - timedelta(days=d),
                    product_name="Whole Milk", category="Dairy",
                )
                for d in (1, 4)
            ]
        )
        report = _engine(store, [], events).consumption_report("h1", window_days=14)

        assert "Other" not in report.category_trends
        assert report.category_trends["Dairy"].product_names == ["Whole Milk"]
        assert report.category_trends["Dairy"].total == 2

    def test_inventory_record_wins_over_event(self, store):
        events = FakeEvents(
            [ConsumptionEvent("p-milk", 1, NOW, product_name="Milk", category="Drinks")]
        )
        report = _engine(store, [InventoryItem(MILK, 1)], events).consumption_report("h1")
        assert report.category_trends["Dairy"].product_names == ["Whole Milk"]

    def test_invalid_window(self, store):
        with pytest.raises(ValueError):
            _engine(store).consumption_report("h1", window_days=0)


class TestSuggestExpiration:
    def test_defaults_to_today(self, store):
        assert _engine(store).suggest_expiration(MILK) == TODAY + timedelta(days=7)

    def test_explicit_purchase_date(self, store):
        assert _engine(store).suggest_expiration(
            BREAD, date(2026, 1, 1), shelf_life_days=10
        ) == date(2026, 1, 11)


def test_from_config(tmp_path):
    """An engine wired from config reads the SQLite inventory."""
    config = EngineConfig(
        store=StoreConfig(backend="memory", seed_defaults=True),
        cache=CacheConfig(ttl_seconds=60),
        database=DatabaseConfig(path=str(tmp_path / "pantry.db")),
    )
    engine = PantryEngine.from_config(config)
    assert engine.check_availability(["salt"], "h1") == []
    assert engine.config is config


def test_sqlite_engine_serves_worker_threads(tmp_path):
    """One engine over SQLite answers calls from threads other than its creator."""
    db_path = tmp_path / "pantry.db"
    stock = InventoryDB(db_path)
    stock.add_product(SEA_SALT)
    stock.add_item("h1", SEA_SALT.id, 1)
    stock.close()

    config = EngineConfig(
        store=StoreConfig(backend="sqlite", seed_defaults=True),
        cache=CacheConfig(enabled=False),
        database=DatabaseConfig(path=str(db_path)),
    )
    engine = PantryEngine.from_config(config)
    engine.check_availability(["salt"], "h1")

    errors = []
    statuses = []

    def worker():
        try:
            (result,) = engine.check_availability(["salt"], "h1")
            statuses.append(result.status)
            engine.predict_replenishment("h1")
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert statuses == [MatchStatus.EQUIVALENT] * 4
