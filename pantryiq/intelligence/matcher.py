"""Recipe ingredient availability against an inventory snapshot."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import (
    MatchResult,
    MatchStatus,
    Product,
    RecipeAvailability,
    RecipeIngredient,
)
from .normalizer import normalize
from .resolver import EquivalencyResolver

logger = logging.getLogger(__name__)


def _index_products(products: Iterable[Product | None]) -> list[tuple[str, Product]]:
    """Pair each usable product with its FoodName, keeping input order."""
    indexed: list[tuple[str, Product]] = []
    for product in products:
        if product is None or not getattr(product, "id", None):
            logger.debug("Skipping product without identity: %r", product)
            continue
        key = normalize(product.name)
        if not key:
            continue
        indexed.append((key, product))
    return indexed


def _is_partial(ingredient: str, product_name: str, min_length: int) -> bool:
    """Substring containment either way; the contained side must be long enough."""
    if len(ingredient) >= min_length and ingredient in product_name:
        return True
    return len(product_name) >= min_length and product_name in ingredient


class AvailabilityMatcher:
    """Classify ingredients as exact / equivalent / partial / missing.

    Rules are applied as a strict cascade; the first hit wins. Without a
    resolver the equivalent step is skipped.
    """

    def __init__(
        self,
        resolver: EquivalencyResolver | None = None,
        *,
        partial_min_length: int = 3,
        partial_confidence: float = 0.5,
    ) -> None:
        self._resolver = resolver
        self._partial_min_length = partial_min_length
        self._partial_confidence = partial_confidence

    def match(
        self,
        ingredients: Sequence[str],
        inventory_products: Iterable[Product | None],
        household_id: str | None = None,
    ) -> list[MatchResult]:
        """Return one MatchResult per ingredient, in input order.

        An empty ingredient list or an inventory with no usable products
        yields an empty list.

        Raises:
            StoreUnavailable: If the resolver cannot reach its store.
        """
        indexed = _index_products(inventory_products)
        if not ingredients or not indexed:
            return []
        return self._classify(ingredients, indexed, household_id)

    def check_recipe(
        self,
        ingredients: Sequence[RecipeIngredient],
        inventory_products: Iterable[Product | None],
        household_id: str | None = None,
    ) -> RecipeAvailability:
        """Summarize whether a recipe can be made from the inventory.

        Partial and equivalent matches count as available. Unlike
        :meth:`match`, an empty inventory reports every ingredient missing.
        """
        results = self._classify(
            [i.name for i in ingredients],
            _index_products(inventory_products),
            household_id,
        )

        missing: list[str] = []
        optional_missing: list[str] = []
        required = 0
        available = 0
        for ingredient, result in zip(ingredients, results):
            found = result.status is not MatchStatus.MISSING
            if not ingredient.optional:
                required += 1
                if found:
                    available += 1
                else:
                    missing.append(ingredient.name)
            elif not found:
                optional_missing.append(ingredient.name)

        return RecipeAvailability(
            results=results,
            can_make=not missing,
            missing=missing,
            optional_missing=optional_missing,
            availability_pct=(available / required * 100) if required else 100.0,
        )

    def _classify(
        self,
        ingredients: Sequence[str],
        indexed: list[tuple[str, Product]],
        household_id: str | None,
    ) -> list[MatchResult]:
        by_name: dict[str, Product] = {}
        for key, product in indexed:
            by_name.setdefault(key, product)
        return [
            self._match_one(i, indexed, by_name, household_id) for i in ingredients
        ]

    def _match_one(
        self,
        raw_ingredient: str,
        indexed: list[tuple[str, Product]],
        by_name: dict[str, Product],
        household_id: str | None,
    ) -> MatchResult:
        ingredient = normalize(raw_ingredient)
        missing = MatchResult(ingredient_name=ingredient, status=MatchStatus.MISSING)
        if not ingredient or not indexed:
            return missing

        # 1. Exact
        product = by_name.get(ingredient)
        if product is not None:
            return MatchResult(
                ingredient_name=ingredient,
                status=MatchStatus.EXACT,
                matched_product_id=product.id,
                confidence=1.0,
                matched_name=ingredient,
            )

        # 2. Equivalent, highest confidence first
        if self._resolver is not None:
            for candidate in self._resolver.resolve(ingredient, household_id):
                product = by_name.get(candidate.equivalent_name)
                if product is not None:
                    return MatchResult(
                        ingredient_name=ingredient,
                        status=MatchStatus.EQUIVALENT,
                        matched_product_id=product.id,
                        confidence=candidate.confidence,
                        substitution_ratio=candidate.ratio,
                        matched_name=candidate.equivalent_name,
                    )

        # 3. Partial
        for key, product in indexed:
            if _is_partial(ingredient, key, self._partial_min_length):
                return MatchResult(
                    ingredient_name=ingredient,
                    status=MatchStatus.PARTIAL,
                    matched_product_id=product.id,
                    confidence=self._partial_confidence,
                    matched_name=key,
                )

        # 4. Missing
        return missing
