"""
query/use_cases.py
------------------
The three search use cases, each turning a UI-level request into a query
vector plus filters and handing them to the ranking engine:

    1. by_description                - free text
    2. by_description_with_filters   - free text + country / variety / max price
    3. by_favorites                  - mean vector of selected items, selection excluded

Per-query failures (model unavailable, wrong vector size) and validation
problems come back as a SearchResponse with a message instead of raising.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Iterable

from catalog.store import CatalogRef
from embeddings.text_embed import EmbeddingGateway
from recommender.recommend import FilterSpec, ScoredResult, top_k_similar
from recommender.vector_utils import average_embeddings
from search_core.config import DEFAULT_TOP_K
from search_core.errors import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    NoSelectionError,
)
from search_core.logger import get_logger, log_event, log_perf

logger = get_logger("query")

DESCRIPTION = "description"
FILTERED = "filtered"
FAVORITES = "favorites"

EMPTY_QUERY_MESSAGE = "Please enter a wine description."
NO_VECTOR_MESSAGE = "Could not build an embedding for the selected items."
NOT_READY_MESSAGE = "Catalog is not loaded."


@dataclass
class SearchResponse:
    use_case: str
    status: str = "ok"                     # ok | invalid | error
    results: list[ScoredResult] = field(default_factory=list)
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class CatalogSearch:
    """Use-case adapters over a shared catalog reference and embedding gateway."""

    def __init__(self, catalog_ref: CatalogRef, gateway: EmbeddingGateway,
                 top_k: int = DEFAULT_TOP_K):
        self.catalog_ref = catalog_ref
        self.gateway = gateway
        self.top_k = top_k

    # ── 1. Description ───────────────────────────────────────────
    async def by_description(self, query: str, k: int | None = None) -> SearchResponse:
        return await self._search_text(DESCRIPTION, query, FilterSpec(), k)

    # ── 2. Description + filters ─────────────────────────────────
    async def by_description_with_filters(self, query: str, country: str | None = None,
                                          variety: str | None = None,
                                          max_price: float | None = None,
                                          k: int | None = None) -> SearchResponse:
        filters = FilterSpec(country=country, variety=variety, max_price=max_price)
        return await self._search_text(FILTERED, query, filters, k)

    # ── 3. Favorites ─────────────────────────────────────────────
    def by_favorites(self, indices: Iterable[int], k: int | None = None) -> SearchResponse:
        indices = [int(i) for i in indices]
        log_event("query_received", {"use_case": FAVORITES, "indices": indices})

        catalog = self.catalog_ref.current
        if catalog is None:
            return SearchResponse(FAVORITES, status="error", message=NOT_READY_MESSAGE)
        if not indices:
            return SearchResponse(FAVORITES, status="invalid", message=str(NoSelectionError()))

        t0 = time.perf_counter()
        avg = average_embeddings(catalog, indices)
        if avg is None:
            return SearchResponse(FAVORITES, status="invalid", message=NO_VECTOR_MESSAGE)

        filters = FilterSpec(exclude_indices=frozenset(indices))
        try:
            results = top_k_similar(catalog, avg, self._k(k), filters)
        except DimensionMismatchError as e:
            logger.error("Favorites search failed: %s", e)
            return SearchResponse(FAVORITES, status="error", message=str(e))
        return self._done(FAVORITES, results, t0)

    # ── shared ───────────────────────────────────────────────────
    def _k(self, k: int | None) -> int:
        return self.top_k if k is None else k

    async def _search_text(self, use_case: str, query: str, filters: FilterSpec,
                           k: int | None) -> SearchResponse:
        query = (query or "").strip()
        log_event("query_received", {
            "use_case": use_case,
            "text": query,
            "country": filters.country,
            "variety": filters.variety,
            "max_price": filters.max_price,
        })
        if not query:
            return SearchResponse(use_case, status="invalid", message=EMPTY_QUERY_MESSAGE)

        # one snapshot for the whole query; a reload mid-query does not affect it
        catalog = self.catalog_ref.current
        if catalog is None:
            return SearchResponse(use_case, status="error", message=NOT_READY_MESSAGE)

        t0 = time.perf_counter()
        try:
            vec = await self.gateway.embed(query)
            results = top_k_similar(catalog, vec, self._k(k), filters)
        except (EmbeddingUnavailableError, DimensionMismatchError) as e:
            logger.error("%s search failed: %s", use_case, e)
            log_event("query_failed", {"use_case": use_case, "error": str(e)})
            return SearchResponse(use_case, status="error", message=f"Search failed: {e}")
        return self._done(use_case, results, t0)

    def _done(self, use_case: str, results: list[ScoredResult], t0: float) -> SearchResponse:
        log_perf("search", (time.perf_counter() - t0) * 1000, use_case=use_case, hits=len(results))
        log_event("response_generated", {
            "use_case": use_case,
            "indices": [r.index for r in results],
            "scores": [round(r.score, 4) for r in results],
        })
        return SearchResponse(use_case, results=results)
