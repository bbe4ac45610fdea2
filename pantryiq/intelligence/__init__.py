"""Pantry intelligence: ingredient availability, substitutions and restocking."""

from .config import (
    CacheConfig,
    DatabaseConfig,
    EngineConfig,
    MatcherConfig,
    PredictionConfig,
    ResolverConfig,
    StoreConfig,
    load_config,
)
from .engine import PantryEngine
from .matcher import AvailabilityMatcher
from .models import (
    CategoryTrend,
    ConsumptionEvent,
    ConsumptionReport,
    EquivalencyEdge,
    EquivalentCandidate,
    InventoryItem,
    MatchResult,
    MatchStatus,
    Product,
    ProductUsage,
    RecipeAvailability,
    RecipeIngredient,
    Recommendation,
    RecommendationSource,
    Scope,
)
from .normalizer import normalize
from .providers import ConsumptionEventProvider, InventorySnapshotProvider
from .ratio import SubstitutionRatio, parse_ratio
from .resolver import EquivalencyResolver
from .shelf_life import ShelfLifeTaxonomy, StorageLocation, storage_recommendation
from .store import EquivalencyStore, StoreUnavailable, create_store
from .store.cache import CachedEquivalencyStore
from .store.memory import InMemoryEquivalencyStore

__all__ = [
    "PantryEngine",
    "AvailabilityMatcher",
    "EquivalencyResolver",
    "EquivalencyStore",
    "InMemoryEquivalencyStore",
    "CachedEquivalencyStore",
    "StoreUnavailable",
    "create_store",
    "InventorySnapshotProvider",
    "ConsumptionEventProvider",
    "Product",
    "InventoryItem",
    "ConsumptionEvent",
    "EquivalencyEdge",
    "EquivalentCandidate",
    "MatchResult",
    "MatchStatus",
    "RecipeIngredient",
    "RecipeAvailability",
    "ProductUsage",
    "CategoryTrend",
    "ConsumptionReport",
    "Recommendation",
    "RecommendationSource",
    "Scope",
    "SubstitutionRatio",
    "parse_ratio",
    "normalize",
    "ShelfLifeTaxonomy",
    "StorageLocation",
    "storage_recommendation",
    "EngineConfig",
    "MatcherConfig",
    "ResolverConfig",
    "PredictionConfig",
    "CacheConfig",
    "StoreConfig",
    "DatabaseConfig",
    "load_config",
]
