"""
api/main.py
-----------
Wine Semantic Search: REST API Layer
------------------------------------
Loads the catalog and embedding gateway at startup and exposes the three
search use cases plus the data needed to build the search form.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from catalog.loader import load_from_settings
from catalog.store import CatalogRef
from embeddings.text_embed import create_gateway
from query.options import favorite_choices, filter_options
from query.use_cases import CatalogSearch, SearchResponse
from search_core.config import SearchSettings, load_settings
from search_core.errors import DimensionMismatchError, EmbeddingUnavailableError, LoadError
from search_core.logger import configure_logging, get_logger

logger = get_logger("api")

MAX_K = 100


# ─────────────────────────────────────────────────────────────────────────────
# 📥 1. Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────

class DescriptionRequest(BaseModel):
    query: str = Field(..., description="Free-text wine description")
    k: Optional[int] = Field(None, ge=1, le=MAX_K, description="Number of results")


class FilteredRequest(DescriptionRequest):
    country: Optional[str] = Field(None, description="Exact country, case-insensitive")
    variety: Optional[str] = Field(None, description="Exact variety, case-insensitive")
    max_price: Optional[float] = Field(None, description="Inclusive price ceiling")

    @field_validator("max_price", mode="before")
    @classmethod
    def _blank_price(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class FavoritesRequest(BaseModel):
    indices: list[int] = Field(default_factory=list, description="Selected catalog indices")
    k: Optional[int] = Field(None, ge=1, le=MAX_K)


class ResultItem(BaseModel):
    index: int
    record: dict[str, Any]
    similarity: float


class SearchResult(BaseModel):
    use_case: str
    status: str = "ok"
    message: Optional[str] = None
    results: list[ResultItem] = []


def to_payload(response: SearchResponse) -> SearchResult:
    return SearchResult(
        use_case=response.use_case,
        status=response.status,
        message=response.message,
        results=[
            ResultItem(index=r.index, record=dict(r.record.attributes), similarity=r.score)
            for r in response.results
        ],
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 2. Runtime State + Lifespan
# ─────────────────────────────────────────────────────────────────────────────

class Runtime:
    """Everything the endpoints share: settings, catalog snapshot, gateway."""

    def __init__(self, settings: SearchSettings):
        self.settings = settings
        self.catalog_ref = CatalogRef()
        self.gateway = create_gateway(settings)
        self.search = CatalogSearch(self.catalog_ref, self.gateway, top_k=settings.default_top_k)
        self.startup_error: Optional[str] = None
        self.model_error: Optional[str] = None

    async def load(self):
        """Build a fresh catalog and swap it in; the old one stays on failure."""
        catalog = await load_from_settings(self.settings)
        self.catalog_ref.replace(catalog)
        self.gateway.expected_dimension = catalog.dimension
        self.startup_error = None
        return catalog

    async def warm_up(self):
        """Load the embedding model and check it against the catalog dimension."""
        try:
            dim = await self.gateway.warm_up()
        except (EmbeddingUnavailableError, DimensionMismatchError) as e:
            # queries still retry; the error stays visible in /health
            self.model_error = str(e)
            logger.error("Embedding warm-up failed: %s", e)
            return None
        self.model_error = None
        logger.info("Embedding model ready: dim=%d", dim)
        return dim


def create_app(settings: Optional[SearchSettings] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or load_settings()
        configure_logging(cfg.log_level, cfg.log_dir, cfg.event_log_enabled)
        runtime = Runtime(cfg)
        app.state.runtime = runtime
        try:
            catalog = await runtime.load()
            logger.info("Wine search ready: %d items, dim=%d", len(catalog), catalog.dimension)
            if cfg.warm_up_on_startup:
                await runtime.warm_up()
        except LoadError as e:
            runtime.startup_error = f"Failed to load data: {e}"
            logger.error(runtime.startup_error)
        yield
        logger.info("Wine search shutting down...")

    app = FastAPI(
        title="Wine Semantic Search",
        version="0.1.0",
        description="Semantic wine search by description, filters or favorites.",
        lifespan=lifespan,
    )
    _register_routes(app)
    return app


def _runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def _ready(request: Request) -> Runtime:
    runtime = _runtime(request)
    if runtime.startup_error or runtime.catalog_ref.current is None:
        raise HTTPException(status_code=503, detail=runtime.startup_error or "Catalog is not loaded.")
    return runtime


# ─────────────────────────────────────────────────────────────────────────────
# 🔍 3. Endpoints
# ─────────────────────────────────────────────────────────────────────────────

def _register_routes(app: FastAPI):

    @app.get("/")
    def root(request: Request):
        runtime = _runtime(request)
        return {
            "message": "Wine search running.",
            "model": runtime.settings.embed_model,
            "endpoints": [
                "/search/description", "/search/filtered", "/search/favorites",
                "/filters", "/favorites", "/health", "/config", "/catalog/reload",
            ],
        }

    @app.get("/health")
    def health_check(request: Request):
        runtime = _runtime(request)
        catalog = runtime.catalog_ref.current
        return {
            "status": "error" if runtime.startup_error else "healthy",
            "error": runtime.startup_error,
            "catalog_items": len(catalog) if catalog is not None else 0,
            "dimension": catalog.dimension if catalog is not None else None,
            "count_mismatch": catalog.count_mismatch if catalog is not None else None,
            "model": runtime.settings.embed_model,
            "model_loaded": runtime.gateway.initialized,
            "model_error": runtime.model_error,
        }

    @app.get("/config")
    def get_current_config(request: Request):
        return _runtime(request).settings.model_dump()

    @app.get("/filters")
    def get_filters(request: Request):
        return filter_options(_ready(request).catalog_ref.current)

    @app.get("/favorites")
    def get_favorites(request: Request):
        return favorite_choices(_ready(request).catalog_ref.current)

    @app.post("/search/description", response_model=SearchResult)
    async def search_description(req: DescriptionRequest, request: Request):
        runtime = _ready(request)
        return to_payload(await runtime.search.by_description(req.query, k=req.k))

    @app.post("/search/filtered", response_model=SearchResult)
    async def search_filtered(req: FilteredRequest, request: Request):
        runtime = _ready(request)
        response = await runtime.search.by_description_with_filters(
            req.query, country=req.country, variety=req.variety, max_price=req.max_price, k=req.k,
        )
        return to_payload(response)

    @app.post("/search/favorites", response_model=SearchResult)
    def search_favorites(req: FavoritesRequest, request: Request):
        runtime = _ready(request)
        return to_payload(runtime.search.by_favorites(req.indices, k=req.k))

    @app.post("/catalog/reload")
    async def reload_catalog(request: Request):
        runtime = _runtime(request)
        try:
            catalog = await runtime.load()
        except LoadError as e:
            logger.error("Catalog reload failed: %s", e)
            raise HTTPException(status_code=500, detail=f"Failed to reload catalog: {e}")
        if runtime.gateway.initialized:
            # the new catalog may have a different dimension
            await runtime.warm_up()
        return {"status": "ok", "catalog_items": len(catalog), "dimension": catalog.dimension}

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error("Internal Error: %s", traceback.format_exc())
        return JSONResponse(status_code=500, content={"detail": f"Internal Server Error: {exc}"})


app = create_app()
