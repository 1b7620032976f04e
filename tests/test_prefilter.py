from __future__ import annotations

from datetime import date

from lodging_search.properties.models import Budget, NormalizedProperty, ResolvedCriteria
from lodging_search.ranking.prefilter import prefilter


def _criteria(budget: Budget | None = None) -> ResolvedCriteria:
    return ResolvedCriteria(
        destination="Paris",
        check_in=date(2025, 6, 1),
        check_out=date(2025, 6, 4),
        guests=2,
        budget=budget,
    )


def _prop(name: str, price: int, rating: float | None = 4.2) -> NormalizedProperty:
    return NormalizedProperty(name=name, price=price, source="stub", rating=rating)


def test_prefilter_applies_budget_band_and_keeps_order() -> None:
    props = [_prop("A", 80), _prop("B", 120), _prop("C", 250), _prop("D", 150)]

    kept = prefilter(props, _criteria(Budget(min=100, max=200)))

    assert [prop.name for prop in kept] == ["B", "D"]


def test_prefilter_treats_missing_bound_as_unbounded() -> None:
    props = [_prop("cheap", 20), _prop("pricey", 900)]

    assert len(prefilter(props, _criteria(Budget(max=None, min=50)))) == 1
    assert len(prefilter(props, _criteria(Budget(max=100)))) == 1
    assert len(prefilter(props, _criteria())) == 2


def test_prefilter_drops_low_ratings_but_keeps_unrated() -> None:
    props = [_prop("poor", 100, rating=2.9), _prop("unrated", 100, rating=None), _prop("ok", 100, rating=3.0)]

    kept = prefilter(props, _criteria())

    assert [prop.name for prop in kept] == ["unrated", "ok"]


def test_prefilter_drops_blank_names_and_non_positive_prices() -> None:
    props = [_prop("  ", 100), _prop("free", 0), _prop("negative", -5), _prop("valid", 10)]

    kept = prefilter(props, _criteria())

    assert [prop.name for prop in kept] == ["valid"]


def test_prefilter_does_not_mutate_input() -> None:
    props = [_prop("A", 300), _prop("B", 100)]
    snapshot = list(props)

    prefilter(props, _criteria(Budget(max=200)))

    assert props == snapshot
