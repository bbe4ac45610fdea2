"""TOML configuration loader for the pantry intelligence engine."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class MatcherConfig:
    partial_min_length: int = 3
    partial_confidence: float = 0.5
    fallback_to_exact_on_store_error: bool = False


@dataclass
class ResolverConfig:
    malformed_ratio_penalty: float = 0.9


@dataclass
class PredictionConfig:
    window_days: int = 30
    horizon_days: int = 7
    stockout_horizon_days: float = 14
    critical_days: float = 3
    urgent_days: float = 7
    supply_weeks: float = 2
    full_confidence_events: int = 5
    expiration_confidence: float = 90
    expiration_priority: int = 3
    max_recommendations: int = 20


@dataclass
class CacheConfig:
    enabled: bool = True
    ttl_seconds: float = 300.0


@dataclass
class StoreConfig:
    backend: str = "sqlite"
    seed_defaults: bool = False


@dataclass
class DatabaseConfig:
    path: str = "~/.config/pantryiq/pantry.db"


@dataclass
class EngineConfig:
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path and cache TTL can be overridden via environment
    variables (a ``.env`` file is honored).
    """
    load_dotenv()
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    mat = raw.get("matcher", {})
    res = raw.get("resolver", {})
    prd = raw.get("prediction", {})
    cch = raw.get("cache", {})
    sto = raw.get("store", {})
    dbs = raw.get("database", {})

    defaults = PredictionConfig()

    # Environment variable wins over the config file
    db_path = os.environ.get("PANTRYIQ_DB_PATH") or dbs.get(
        "path", DatabaseConfig().path
    )
    ttl_env = os.environ.get("PANTRYIQ_CACHE_TTL")
    ttl_seconds = float(ttl_env) if ttl_env else cch.get("ttl_seconds", 300.0)

    return EngineConfig(
        matcher=MatcherConfig(
            partial_min_length=mat.get("partial_min_length", 3),
            partial_confidence=mat.get("partial_confidence", 0.5),
            fallback_to_exact_on_store_error=mat.get(
                "fallback_to_exact_on_store_error", False
            ),
        ),
        resolver=ResolverConfig(
            malformed_ratio_penalty=res.get("malformed_ratio_penalty", 0.9),
        ),
        prediction=PredictionConfig(
            window_days=prd.get("window_days", defaults.window_days),
            horizon_days=prd.get("horizon_days", defaults.horizon_days),
            stockout_horizon_days=prd.get(
                "stockout_horizon_days", defaults.stockout_horizon_days
            ),
            critical_days=prd.get("critical_days", defaults.critical_days),
            urgent_days=prd.get("urgent_days", defaults.urgent_days),
            supply_weeks=prd.get("supply_weeks", defaults.supply_weeks),
            full_confidence_events=prd.get(
                "full_confidence_events", defaults.full_confidence_events
            ),
            expiration_confidence=prd.get(
                "expiration_confidence", defaults.expiration_confidence
            ),
            expiration_priority=prd.get(
                "expiration_priority", defaults.expiration_priority
            ),
            max_recommendations=prd.get(
                "max_recommendations", defaults.max_recommendations
            ),
        ),
        cache=CacheConfig(
            enabled=cch.get("enabled", True),
            ttl_seconds=ttl_seconds,
        ),
        store=StoreConfig(
            backend=sto.get("backend", "sqlite"),
            seed_defaults=sto.get("seed_defaults", False),
        ),
        database=DatabaseConfig(path=db_path),
    )
