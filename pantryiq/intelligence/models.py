"""Data models for pantry snapshots, equivalency rules and engine results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .ratio import ONE_TO_ONE, SubstitutionRatio


class Scope(str, Enum):
    SYSTEM = "system"
    HOUSEHOLD = "household"


class MatchStatus(str, Enum):
    EXACT = "exact"
    EQUIVALENT = "equivalent"
    PARTIAL = "partial"
    MISSING = "missing"


class RecommendationSource(str, Enum):
    CONSUMPTION_PATTERN = "consumption_pattern"
    EXPIRATION_REPLACEMENT = "expiration_replacement"


# -- Snapshot records (owned by the inventory store, read-only here) --------


@dataclass(frozen=True)
class Product:
    id: str
    name: str  # Display name, normalized at lookup time
    category: str = ""
    brand: str = ""


@dataclass(frozen=True)
class InventoryItem:
    """One stock entry of a product in a household."""

    product: Product | None
    quantity: float
    unit: str = "pieces"
    purchase_date: date | None = None
    expiration_date: date | None = None
    is_consumed: bool = False
    id: str = ""

    @property
    def product_id(self) -> str | None:
        return self.product.id if self.product is not None else None


@dataclass(frozen=True)
class ConsumptionEvent:
    """A removal drawn from the inventory audit log."""

    product_id: str
    quantity_delta: float  # Magnitude of the removal, > 0
    occurred_at: datetime
    unit: str | None = None
    # Joined from the product record when the provider knows it
    product_name: str = ""
    category: str = ""


# -- Equivalency rules ------------------------------------------------------


@dataclass(frozen=True)
class EquivalencyEdge:
    """A rule stating ``equivalent_name`` may substitute for ``subject_name``.

    Names are FoodName keys. ``ratio_valid`` is False when the stored ratio
    string could not be parsed and ``ratio`` fell back to 1:1.
    """

    subject_name: str
    equivalent_name: str
    confidence: float
    ratio: SubstitutionRatio = ONE_TO_ONE
    bidirectional: bool = False
    scope: Scope = Scope.SYSTEM
    active: bool = True
    household_id: str | None = None
    ratio_valid: bool = True
    notes: str = ""
    id: int | str | None = None


@dataclass(frozen=True)
class EquivalentCandidate:
    """A resolved substitute for a queried food name."""

    equivalent_name: str
    confidence: float
    ratio: SubstitutionRatio
    bidirectional: bool
    scope: Scope


# -- Matching results -------------------------------------------------------


@dataclass(frozen=True)
class MatchResult:
    ingredient_name: str
    status: MatchStatus
    matched_product_id: str | None = None
    confidence: float = 0.0
    substitution_ratio: SubstitutionRatio | None = None
    matched_name: str | None = None


@dataclass(frozen=True)
class RecipeIngredient:
    name: str
    optional: bool = False


@dataclass
class RecipeAvailability:
    """Recipe-level view over per-ingredient match results."""

    results: list[MatchResult] = field(default_factory=list)
    can_make: bool = True
    missing: list[str] = field(default_factory=list)
    optional_missing: list[str] = field(default_factory=list)
    availability_pct: float = 100.0


# -- Consumption and replenishment -----------------------------------------


@dataclass(frozen=True)
class ProductUsage:
    """Consumption velocity of one product over an analysis window."""

    product_id: str
    total: float
    events_count: int
    weekly_rate: float
    unit: str | None = None


@dataclass
class CategoryTrend:
    total: float = 0.0
    product_names: list[str] = field(default_factory=list)


@dataclass
class ConsumptionReport:
    usage: dict[str, ProductUsage] = field(default_factory=dict)
    category_trends: dict[str, CategoryTrend] = field(default_factory=dict)
    window_days: int = 30


@dataclass(frozen=True)
class Recommendation:
    """A suggestion to restock a product."""

    product_id: str
    predicted_quantity: int
    unit: str
    priority: int  # 1 (low) .. 5 (urgent)
    reason: str
    confidence: float  # 0 .. 100
    source: RecommendationSource
    product_name: str = ""
    current_stock: float = 0.0
    weekly_usage: float | None = None
    days_remaining: float | None = None
    expiration_date: date | None = None
