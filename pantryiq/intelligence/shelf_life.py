"""Shelf-life taxonomy and expiration-date suggestions.

The bundled ``data/shelf_life.json`` is decoded once into a typed tree
(Category -> Subcategory -> Item). Lookups walk the tree; nothing else
touches the raw JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Any

from .normalizer import normalize

FALLBACK_SHELF_LIFE_DAYS = 7


class StorageLocation(str, Enum):
    PANTRY = "pantry"
    REFRIGERATOR = "refrigerator"
    FREEZER = "freezer"


@dataclass(frozen=True)
class ShelfLife:
    """Days an item keeps per storage location. 0 or None means unsuitable."""

    pantry: int | None = None
    refrigerator: int | None = None
    freezer: int | None = None
    notes: str = ""

    def days(self, location: StorageLocation) -> int | None:
        value = getattr(self, location.value)
        return value if value else None


@dataclass(frozen=True)
class ShelfLifeItem:
    name: str
    shelf_life: ShelfLife


@dataclass(frozen=True)
class Subcategory:
    name: str
    items: tuple[ShelfLifeItem, ...] = ()


@dataclass(frozen=True)
class Category:
    name: str
    subcategories: tuple[Subcategory, ...] = ()


def _decode_shelf_life(raw: Any, where: str) -> ShelfLife:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: expected an object, got {type(raw).__name__}")
    values: dict[str, Any] = {}
    for location in StorageLocation:
        value = raw.get(location.value)
        if value is not None and (not isinstance(value, int) or value < 0):
            raise ValueError(f"{where}.{location.value}: expected a non-negative integer")
        values[location.value] = value
    return ShelfLife(notes=str(raw.get("notes", "")), **values)


@dataclass(frozen=True)
class ShelfLifeTaxonomy:
    categories: tuple[Category, ...] = ()
    category_defaults: dict[str, ShelfLife] = field(default_factory=dict)
    unknown_product: ShelfLife = ShelfLife(pantry=7, refrigerator=7, freezer=90)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ShelfLifeTaxonomy:
        """Decode and validate the JSON document.

        Raises:
            ValueError: If the document does not follow the schema.
        """
        if not isinstance(raw, dict):
            raise ValueError("Shelf-life document must be an object")

        raw_categories = raw.get("categories", {})
        raw_defaults = raw.get("category_defaults", {})
        if not isinstance(raw_categories, dict) or not isinstance(raw_defaults, dict):
            raise ValueError("categories and category_defaults must be objects")

        categories: list[Category] = []
        for cat_name, subcats in raw_categories.items():
            if not isinstance(subcats, dict):
                raise ValueError(f"categories.{cat_name}: expected an object")
            subcategories: list[Subcategory] = []
            for sub_name, items in subcats.items():
                if not isinstance(items, dict):
                    raise ValueError(f"categories.{cat_name}.{sub_name}: expected an object")
                subcategories.append(
                    Subcategory(
                        name=sub_name,
                        items=tuple(
                            ShelfLifeItem(
                                name=normalize(item_name),
                                shelf_life=_decode_shelf_life(
                                    data, f"categories.{cat_name}.{sub_name}.{item_name}"
                                ),
                            )
                            for item_name, data in items.items()
                        ),
                    )
                )
            categories.append(Category(name=cat_name, subcategories=tuple(subcategories)))

        defaults = {
            normalize(name): _decode_shelf_life(data, f"category_defaults.{name}")
            for name, data in raw_defaults.items()
        }
        unknown = raw.get("unknown_product")
        return cls(
            categories=tuple(categories),
            category_defaults=defaults,
            unknown_product=(
                _decode_shelf_life(unknown, "unknown_product")
                if unknown is not None
                else ShelfLife(pantry=7, refrigerator=7, freezer=90)
            ),
        )

    @classmethod
    def load(cls, path: str | Path | None = None) -> ShelfLifeTaxonomy:
        """Load a taxonomy file, or the bundled one when no path is given."""
        if path is None:
            text = (
                resources.files("pantryiq.intelligence")
                .joinpath("data/shelf_life.json")
                .read_text(encoding="utf-8")
            )
        else:
            text = Path(path).read_text(encoding="utf-8")
        return cls.from_dict(json.loads(text))

    def find_item(self, product_name: str) -> ShelfLifeItem | None:
        """First item whose name contains, or is contained in, the product name."""
        name = normalize(product_name)
        if not name:
            return None
        for category in self.categories:
            for subcategory in category.subcategories:
                for item in subcategory.items:
                    if item.name in name or name in item.name:
                        return item
        return None

    def category_default(self, category: str | None) -> ShelfLife | None:
        cat = normalize(category)
        if not cat:
            return None
        for key, shelf_life in self.category_defaults.items():
            if key in cat or cat in key:
                return shelf_life
        return None

    def default_shelf_life(
        self,
        product_name: str,
        category: str | None = None,
        location: StorageLocation = StorageLocation.REFRIGERATOR,
    ) -> int | None:
        """Days a product keeps at ``location``.

        Tries the item tree, then the category defaults, then the
        unknown-product default. None means the product should not be
        stored there.
        """
        item = self.find_item(product_name)
        if item is not None:
            return item.shelf_life.days(location)
        default = self.category_default(category)
        if default is not None:
            return default.days(location)
        return self.unknown_product.days(location)

    def storage_options(
        self, product_name: str, category: str | None = None
    ) -> list[tuple[StorageLocation, int, bool]]:
        """(location, days, recommended) for every suitable location.

        Recommended location first, then longest shelf life.
        """
        recommended = storage_recommendation(product_name, category)
        options = []
        for location in StorageLocation:
            days = self.default_shelf_life(product_name, category, location)
            if days:
                options.append((location, days, location is recommended))
        options.sort(key=lambda o: (not o[2], -o[1]))
        return options

    def suggest_expiration_date(
        self,
        product_name: str,
        category: str | None,
        purchase_date: date,
        location: StorageLocation | None = None,
        shelf_life_days: int | None = None,
    ) -> date:
        """Estimate when a purchase expires.

        An explicit positive ``shelf_life_days`` wins; otherwise the
        taxonomy is consulted for the given (or recommended) location,
        falling back to one week.
        """
        if shelf_life_days and shelf_life_days > 0:
            return purchase_date + timedelta(days=shelf_life_days)
        location = location or storage_recommendation(product_name, category)
        days = self.default_shelf_life(product_name, category, location)
        return purchase_date + timedelta(days=days or FALLBACK_SHELF_LIFE_DAYS)


_REFRIGERATED_TERMS = (
    "meat", "seafood", "fish", "poultry", "dairy", "milk", "cheese",
    "fresh", "produce", "vegetable", "fruit", "salad",
)
_FROZEN_TERMS = ("frozen", "ice cream")
_PANTRY_TERMS = (
    "canned", "dry", "grain", "cereal", "pasta", "rice", "snack", "chip", "cracker",
)


def storage_recommendation(
    product_name: str, category: str | None = None
) -> StorageLocation:
    """Where a product should be kept, refrigerator when unsure."""
    name = normalize(product_name)
    cat = normalize(category)

    def mentions(terms: tuple[str, ...]) -> bool:
        return any(t in cat or t in name for t in terms)

    if mentions(_REFRIGERATED_TERMS):
        return StorageLocation.REFRIGERATOR
    if mentions(_FROZEN_TERMS):
        return StorageLocation.FREEZER
    if mentions(_PANTRY_TERMS):
        return StorageLocation.PANTRY
    return StorageLocation.REFRIGERATOR
