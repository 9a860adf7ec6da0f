"""Ranking engine: filtering, ordering and top-k bounds."""

import numpy as np
import pytest

from catalog.store import build_catalog
from recommender.recommend import FilterSpec, as_number, top_k_similar
from search_core.errors import DimensionMismatchError


def titles(results):
    return [r.record["title"] for r in results]


def test_unfiltered_ranking(two_wine_catalog):
    results = top_k_similar(two_wine_catalog, [1.0, 0.0], k=2)
    assert titles(results) == ["A", "B"]
    assert results[0].score == 1.0
    assert results[1].score == 0.0
    assert [r.index for r in results] == [0, 1]


def test_max_price_filter(two_wine_catalog):
    results = top_k_similar(two_wine_catalog, [1.0, 0.0], k=2, filters=FilterSpec(max_price=20))
    assert titles(results) == ["A"]


def test_max_price_is_inclusive(two_wine_catalog):
    results = top_k_similar(two_wine_catalog, [1.0, 0.0], k=2, filters=FilterSpec(max_price=50))
    assert titles(results) == ["A", "B"]


def test_excluded_favorite_is_skipped(two_wine_catalog):
    results = top_k_similar(two_wine_catalog, [1.0, 0.0], k=2,
                            filters=FilterSpec(exclude_indices=frozenset({0})))
    assert titles(results) == ["B"]


def test_country_filter_is_case_insensitive(two_wine_catalog):
    upper = top_k_similar(two_wine_catalog, [1.0, 1.0], k=5, filters=FilterSpec(country="France"))
    lower = top_k_similar(two_wine_catalog, [1.0, 1.0], k=5, filters=FilterSpec(country="france"))
    assert titles(upper) == titles(lower) == ["A"]


def test_variety_filter(two_wine_catalog):
    results = top_k_similar(two_wine_catalog, [1.0, 0.0], k=5, filters=FilterSpec(variety="SANGIOVESE"))
    assert titles(results) == ["B"]


def test_blank_filters_mean_no_filter(two_wine_catalog):
    spec = FilterSpec(country="", variety="  ", max_price="")
    assert spec.country is None and spec.variety is None and spec.max_price is None
    assert len(top_k_similar(two_wine_catalog, [1.0, 0.0], k=5, filters=spec)) == 2


def test_unknown_attributes_pass_filters():
    catalog = build_catalog(
        [
            {"title": "known", "country": "Spain", "price": 100},
            {"title": "no country", "country": None, "price": None},
            {"title": "odd price", "country": "France", "price": "ask"},
            {"title": "nan price", "country": "France", "price": float("nan")},
        ],
        [[1.0, 0.0]] * 4,
    )
    results = top_k_similar(catalog, [1.0, 0.0], k=10, filters=FilterSpec(country="France", max_price=20))
    assert titles(results) == ["no country", "odd price", "nan price"]


def test_numeric_string_price_is_compared():
    catalog = build_catalog([{"title": "cheap", "price": "12"}, {"title": "dear", "price": "80"}],
                            [[1.0, 0.0], [1.0, 0.0]])
    results = top_k_similar(catalog, [1.0, 0.0], k=10, filters=FilterSpec(max_price=20))
    assert titles(results) == ["cheap"]


def test_results_bounded_by_k_and_sorted():
    rng = np.random.default_rng(7)
    vectors = rng.standard_normal((50, 6))
    catalog = build_catalog([{"title": str(i)} for i in range(50)], vectors)
    excluded = frozenset({0, 3, 9, 27})

    for k in (1, 5, 10, 60):
        results = top_k_similar(catalog, rng.standard_normal(6), k=k,
                                filters=FilterSpec(exclude_indices=excluded))
        assert len(results) == min(k, 46)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert not excluded & {r.index for r in results}
        assert all(-1.0 - 1e-9 <= s <= 1.0 + 1e-9 for s in scores)


def test_ties_break_by_ascending_index():
    catalog = build_catalog([{"title": t} for t in "abcd"],
                            [[0.0, 1.0], [1.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
    results = top_k_similar(catalog, [1.0, 0.0], k=4)
    assert [r.index for r in results] == [1, 3, 0, 2]


def test_zero_vectors_sink_to_bottom():
    catalog = build_catalog([{"title": "zero"}, {"title": "opposite"}, {"title": "same"}],
                            [[0.0, 0.0], [-1.0, 0.0], [1.0, 0.0]])
    results = top_k_similar(catalog, [1.0, 0.0], k=3)
    assert titles(results) == ["same", "zero", "opposite"]
    assert results[1].score == 0.0


def test_non_positive_k_returns_nothing(two_wine_catalog):
    assert top_k_similar(two_wine_catalog, [1.0, 0.0], k=0) == []
    assert top_k_similar(two_wine_catalog, [1.0, 0.0], k=-3) == []


def test_query_dimension_checked(two_wine_catalog):
    with pytest.raises(DimensionMismatchError):
        top_k_similar(two_wine_catalog, [1.0, 0.0, 0.0], k=2)


def test_records_without_vectors_are_skipped():
    catalog = build_catalog([{"title": "A"}, {"title": "B"}], [[1.0, 0.0]])
    assert titles(top_k_similar(catalog, [1.0, 0.0], k=5)) == ["A"]


def test_vectors_without_records_are_skipped():
    catalog = build_catalog([{"title": "A"}], [[1.0, 0.0], [1.0, 0.0]])
    assert titles(top_k_similar(catalog, [1.0, 0.0], k=5)) == ["A"]


@pytest.mark.parametrize("value, expected", [
    (10, 10.0), (9.5, 9.5), ("12", 12.0), (" 7.5 ", 7.5),
    ("n/a", None), (None, None), (True, None), (float("nan"), None), (np.float32(3), 3.0),
])
def test_as_number(value, expected):
    assert as_number(value) == expected
