"""Tests for equivalency resolution and rule precedence."""

from unittest.mock import Mock

import pytest

from pantryiq.intelligence.models import EquivalencyEdge, Scope
from pantryiq.intelligence.ratio import ONE_TO_ONE, SubstitutionRatio
from pantryiq.intelligence.resolver import (
    EquivalencyResolver,
    HouseholdTier,
    SystemTier,
)
from pantryiq.intelligence.store import EquivalencyStore, StoreUnavailable
from pantryiq.intelligence.store.memory import InMemoryEquivalencyStore


@pytest.fixture
def store():
    return InMemoryEquivalencyStore()


@pytest.fixture
def resolver(store):
    return EquivalencyResolver(store)


def _stub_store(system=(), household=()):
    store = Mock(spec=EquivalencyStore)
    store.get_system_edges.return_value = list(system)
    store.get_household_edges.return_value = list(household)
    return store


def test_household_rule_shadows_system_rule(store, resolver):
    """Household data wins outright for a pair both tiers define."""
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)

    candidates = resolver.resolve("salt", "h1")

    assert len(candidates) == 1
    assert candidates[0].equivalent_name == "sea salt"
    assert candidates[0].confidence == 0.9
    assert candidates[0].scope is Scope.HOUSEHOLD


def test_household_rule_wins_even_with_lower_confidence(store, resolver):
    """Precedence is by tier, not by confidence."""
    store.add_system_edge("salt", "sea salt", confidence=0.9)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.3)

    (candidate,) = resolver.resolve("salt", "h1")
    assert candidate.confidence == 0.3


def test_system_rules_without_household(store, resolver):
    """Without a household only system rules apply."""
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)

    (candidate,) = resolver.resolve("salt")
    assert candidate.confidence == 0.5
    assert candidate.scope is Scope.SYSTEM


def test_other_household_rules_do_not_leak(store, resolver):
    """A household only sees its own overrides."""
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)

    (candidate,) = resolver.resolve("salt", "h2")
    assert candidate.scope is Scope.SYSTEM


def test_unrelated_system_pairs_still_apply(store, resolver):
    """Shadowing is per pair; other system rules are merged in."""
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_system_edge("salt", "kosher salt", confidence=0.8)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)

    candidates = resolver.resolve("salt", "h1")
    assert [(c.equivalent_name, c.scope) for c in candidates] == [
        ("sea salt", Scope.HOUSEHOLD),
        ("kosher salt", Scope.SYSTEM),
    ]


def test_bidirectional_edge_inverts_ratio(store, resolver):
    """Looking up the equivalent side returns the subject with 1/ratio."""
    store.add_household_edge(
        "h1", "butter", "margarine", confidence=0.8,
        substitution_ratio="2:1", bidirectional=True,
    )

    (forward,) = resolver.resolve("butter", "h1")
    (reverse,) = resolver.resolve("margarine", "h1")

    assert forward.equivalent_name == "margarine"
    assert str(forward.ratio) == "2:1"
    assert reverse.equivalent_name == "butter"
    assert str(reverse.ratio) == "1:2"
    assert reverse.confidence == 0.8


def test_directed_edge_has_no_reverse(store, resolver):
    store.add_system_edge("sugar", "honey", confidence=0.6)
    assert resolver.resolve("honey") == []


def test_malformed_ratio_downgrades_confidence(store, resolver):
    """Unparseable ratio becomes 1:1 and confidence is multiplied by 0.9."""
    store.add_system_edge("milk", "oat milk", confidence=0.8, substitution_ratio="lots")

    (candidate,) = resolver.resolve("milk")
    assert candidate.ratio == ONE_TO_ONE
    assert candidate.confidence == pytest.approx(0.72)


def test_custom_ratio_penalty(store):
    store.add_system_edge("milk", "oat milk", confidence=0.8, substitution_ratio="?")
    resolver = EquivalencyResolver(store, malformed_ratio_penalty=0.5)
    (candidate,) = resolver.resolve("milk")
    assert candidate.confidence == pytest.approx(0.4)


def test_sorted_by_confidence_then_name(store, resolver):
    store.add_system_edge("flour", "plain flour", confidence=0.7)
    store.add_system_edge("flour", "all purpose flour", confidence=0.7)
    store.add_system_edge("flour", "wheat flour", confidence=0.9)

    names = [c.equivalent_name for c in resolver.resolve("flour")]
    assert names == ["wheat flour", "all purpose flour", "plain flour"]


def test_query_is_normalized(store, resolver):
    store.add_system_edge("sea salt", "kosher salt", confidence=0.8)
    assert len(resolver.resolve("  SEA   Salt ")) == 1


def test_no_rules_is_empty(resolver):
    assert resolver.resolve("saffron", "h1") == []


def test_empty_name_does_not_query_store():
    store = _stub_store()
    assert EquivalencyResolver(store).resolve("  ", "h1") == []
    store.get_system_edges.assert_not_called()
    store.get_household_edges.assert_not_called()


def test_self_reference_is_ignored():
    """A self-referencing edge read from storage is a no-op."""
    store = _stub_store(system=[EquivalencyEdge("salt", "salt", 0.9)])
    assert EquivalencyResolver(store).resolve("salt") == []


def test_out_of_range_confidence_is_ignored():
    store = _stub_store(system=[EquivalencyEdge("salt", "sea salt", 0.0)])
    assert EquivalencyResolver(store).resolve("salt") == []


def test_best_edge_per_pair_within_a_tier():
    store = _stub_store(
        system=[
            EquivalencyEdge("salt", "sea salt", 0.6),
            EquivalencyEdge("salt", "sea salt", 0.8, ratio=SubstitutionRatio(2, 1)),
        ]
    )
    (candidate,) = EquivalencyResolver(store).resolve("salt")
    assert candidate.confidence == 0.8
    assert str(candidate.ratio) == "2:1"


def test_inactive_household_edge_does_not_shadow(store, resolver):
    """A deactivated override lets the system rule through."""
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)
    store.deactivate_household_edge("h1", "salt", "sea salt")

    (candidate,) = resolver.resolve("salt", "h1")
    assert candidate.scope is Scope.SYSTEM


def test_deleting_override_restores_default(store, resolver):
    store.add_system_edge("salt", "sea salt", confidence=0.5)
    store.add_household_edge("h1", "salt", "sea salt", confidence=0.9)
    store.delete_household_edge("h1", "salt", "sea salt")

    (candidate,) = resolver.resolve("salt", "h1")
    assert candidate.confidence == 0.5


def test_store_failure_propagates():
    store = _stub_store()
    store.get_household_edges.side_effect = StoreUnavailable("timeout")
    with pytest.raises(StoreUnavailable):
        EquivalencyResolver(store).resolve("salt", "h1")


def test_tier_order(store, resolver):
    tiers = resolver.tiers("h1")
    assert [type(t) for t in tiers] == [HouseholdTier, SystemTier]
    assert [type(t) for t in resolver.tiers()] == [SystemTier]
