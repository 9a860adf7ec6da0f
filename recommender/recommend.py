"""
recommender/recommend.py
------------------------
Ranking engine: scores every eligible catalog entry against a query vector
and returns the top-k by cosine similarity.

Exact O(N) scan, no index structure. Ties are broken by ascending catalog
index so results are reproducible.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from catalog.store import Catalog, CatalogRecord
from recommender.vector_utils import cosine_similarities
from search_core.config import DEFAULT_TOP_K
from search_core.errors import DimensionMismatchError


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def as_number(value: Any) -> float | None:
    """Numeric view of a price cell, or None when it is missing or not a number."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _is_unknown(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = str(text).strip()
    return text or None


@dataclass(frozen=True)
class FilterSpec:
    """
    Hard filters applied before scoring.

    country / variety: case-insensitive exact match; records where the
        attribute is unknown are kept.
    max_price: inclusive upper bound; records without a numeric price are kept.
    exclude_indices: catalog indices skipped entirely.
    """

    country: str | None = None
    variety: str | None = None
    max_price: float | None = None
    exclude_indices: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "country", _clean(self.country))
        object.__setattr__(self, "variety", _clean(self.variety))
        object.__setattr__(self, "max_price", as_number(self.max_price))
        object.__setattr__(self, "exclude_indices", frozenset(int(i) for i in self.exclude_indices))

    @staticmethod
    def _text_matches(value: Any, wanted: str | None) -> bool:
        if wanted is None or _is_unknown(value):
            return True
        return str(value).strip().casefold() == wanted.casefold()

    def allows(self, index: int, record: CatalogRecord | None) -> bool:
        if index in self.exclude_indices or record is None:
            return False
        if not self._text_matches(record.get("country"), self.country):
            return False
        if not self._text_matches(record.get("variety"), self.variety):
            return False
        if self.max_price is not None:
            price = as_number(record.get("price"))
            if price is not None and price > self.max_price:
                return False
        return True


# ---------------------------------------------------------------------------
# Core Ranking
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoredResult:
    record: CatalogRecord
    score: float

    @property
    def index(self) -> int:
        return self.record.index


def top_k_similar(catalog: Catalog, query_vector, k: int = DEFAULT_TOP_K,
                  filters: FilterSpec | None = None) -> list[ScoredResult]:
    """
    Rank catalog entries that pass `filters` by cosine similarity to
    `query_vector`, highest first, and return at most `k` of them.
    """
    filters = filters or FilterSpec()
    query = np.asarray(query_vector, dtype=np.float64).ravel()
    if query.shape[0] != catalog.dimension:
        raise DimensionMismatchError(
            f"Query vector has length {query.shape[0]}, catalog dimension is {catalog.dimension}"
        )
    if k <= 0:
        return []

    eligible = [
        i for i in range(len(catalog))
        if catalog.vector(i) is not None and filters.allows(i, catalog.record(i))
    ]
    if not eligible:
        return []

    idx = np.asarray(eligible, dtype=np.int64)
    sims = cosine_similarities(query, catalog.vectors[idx])

    # lexsort: last key is primary -> score descending, then index ascending
    order = np.lexsort((idx, -sims))[:k]
    return [ScoredResult(record=catalog.records[idx[j]], score=float(sims[j])) for j in order]
