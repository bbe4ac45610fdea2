"""Tests for recommendation ranking."""

import pytest

from pantryiq.intelligence.models import Recommendation, RecommendationSource
from pantryiq.intelligence.ranker import rank


def _rec(pid, priority=3, confidence=50, source=RecommendationSource.CONSUMPTION_PATTERN):
    return Recommendation(
        product_id=pid,
        predicted_quantity=1,
        unit="pieces",
        priority=priority,
        reason="",
        confidence=confidence,
        source=source,
    )


def _expiring(pid, priority=3, confidence=90):
    return _rec(pid, priority, confidence, RecommendationSource.EXPIRATION_REPLACEMENT)


def test_stockout_suppresses_expiration_for_same_product():
    ranked = rank([_rec("milk")], [_expiring("milk")])
    assert len(ranked) == 1
    assert ranked[0].source is RecommendationSource.CONSUMPTION_PATTERN


def test_orders_by_priority_then_confidence():
    ranked = rank(
        [_rec("a", 3, 40), _rec("b", 5, 20), _rec("c", 3, 80)],
        [_expiring("d", 4, 90)],
    )
    assert [r.product_id for r in ranked] == ["b", "d", "c", "a"]


def test_ties_keep_stockouts_first():
    ranked = rank([_rec("a", 3, 90)], [_expiring("b", 3, 90)])
    assert [r.product_id for r in ranked] == ["a", "b"]


def test_ties_keep_input_order():
    ranked = rank([_rec("x"), _rec("y"), _rec("z")], [])
    assert [r.product_id for r in ranked] == ["x", "y", "z"]


def test_default_cap():
    ranked = rank([_rec(f"s{i}") for i in range(15)], [_expiring(f"e{i}") for i in range(15)])
    assert len(ranked) == 20


def test_custom_cap():
    assert len(rank([_rec(f"s{i}") for i in range(10)], [], cap=5)) == 5
    assert rank([_rec("a")], [], cap=0) == []


def test_negative_cap():
    with pytest.raises(ValueError, match="cap"):
        rank([], [], cap=-1)


def test_never_duplicates_or_exceeds_cap():
    for n in range(0, 60, 7):
        stockouts = [_rec(f"p{i % 25}", 3 + i % 3, i) for i in range(n)]
        expirations = [_expiring(f"p{i % 30}") for i in range(n)]
        ranked = rank(stockouts, expirations)
        ids = [r.product_id for r in ranked]
        assert len(ranked) <= 20
        assert len(ids) == len(set(ids))
