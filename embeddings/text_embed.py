"""
embeddings/text_embed.py
------------------------
Text embedding boundary used by the query use cases and the offline builder.

Core API:
    - EmbeddingGateway.embed(text) -> np.ndarray   (async)
    - create_gateway(settings, expected_dimension) -> EmbeddingGateway

Behavior:
    • The provider (model) is built lazily on first use, exactly once;
      concurrent first callers share the same initialization
    • Model work runs in a worker thread, the event loop only waits
    • Always returns L2-normalized float64 vectors
    • Load/encode failures surface as EmbeddingUnavailableError
    • Logs init and encode latency to perf.jsonl
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from abc import ABC, abstractmethod
from typing import Callable, Sequence

import numpy as np

from recommender.vector_utils import normalize
from search_core.errors import EmbeddingDimensionError, EmbeddingUnavailableError
from search_core.logger import get_logger, log_perf

DEFAULT_MODEL_NAME = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"

logger = get_logger("embeddings")


# ===== PROVIDERS =====
class IEmbeddingProvider(ABC):
    """Synchronous text -> vector encoder."""

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """Embed a single text."""

    def embed_batch(self, texts: Sequence[str], batch_size: int = 64) -> np.ndarray:
        """Embed many texts, shape (len(texts), dim)."""
        if not texts:
            return np.empty((0, self.get_dimension()), dtype=np.float32)
        return np.vstack([self.embed_text(t) for t in texts])

    @abstractmethod
    def get_dimension(self) -> int:
        """Length of the produced vectors."""


def resolve_device(device: str = "auto") -> str:
    if device != "auto":
        return device
    import torch
    return "cuda" if torch.cuda.is_available() else "cpu"


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """
    sentence-transformers encoder (mean pooling, unit-normalized output).
    Loading the model takes seconds; build it once and reuse it.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, device: str = "auto"):
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name
        self.device = resolve_device(device)
        self.model = SentenceTransformer(model_name, device=self.device)

    def embed_text(self, text: str) -> np.ndarray:
        return self.model.encode(text, convert_to_numpy=True, normalize_embeddings=True)

    def embed_batch(self, texts: Sequence[str], batch_size: int = 64) -> np.ndarray:
        return self.model.encode(
            list(texts),
            batch_size=batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )

    def get_dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())


class DeterministicHashEmbedding(IEmbeddingProvider):
    """
    Seeded pseudo-embedding: the same text always maps to the same unit vector.
    Used in tests and for offline runs without a model download.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> np.ndarray:
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:4], "big")
        rng = np.random.default_rng(seed)
        return normalize(rng.standard_normal(self.dimension))

    def get_dimension(self) -> int:
        return self.dimension


# ===== GATEWAY =====
class EmbeddingGateway:
    """
    Async front for an IEmbeddingProvider built on first use.

    `provider_factory` is called at most once per successful initialization.
    A failed initialization is not cached; the next call tries again.
    """

    def __init__(self, provider_factory: Callable[[], IEmbeddingProvider],
                 expected_dimension: int | None = None):
        self._provider_factory = provider_factory
        self.expected_dimension = expected_dimension
        self._provider: IEmbeddingProvider | None = None
        self._init_task: asyncio.Future | None = None

    @property
    def initialized(self) -> bool:
        return self._provider is not None

    async def _initialize(self) -> IEmbeddingProvider:
        t0 = time.perf_counter()
        logger.info("Initializing embedding provider...")
        try:
            provider = await asyncio.to_thread(self._provider_factory)
        except Exception as e:
            self._init_task = None
            logger.error("Embedding provider failed to load: %s", e)
            raise EmbeddingUnavailableError(f"Embedding model could not be loaded: {e}") from e

        self._provider = provider
        log_perf("embedding_init", (time.perf_counter() - t0) * 1000)
        return provider

    async def _get_provider(self) -> IEmbeddingProvider:
        if self._provider is not None:
            return self._provider
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        # shield: a cancelled caller must not cancel the shared initialization
        return await asyncio.shield(self._init_task)

    async def warm_up(self) -> int:
        """Load the provider now and check its dimension; returns it."""
        provider = await self._get_provider()
        dim = provider.get_dimension()
        if self.expected_dimension is not None and dim != self.expected_dimension:
            raise EmbeddingDimensionError(self.expected_dimension, dim)
        return dim

    async def embed(self, text: str) -> np.ndarray:
        """Embed `text` into a unit-length vector."""
        provider = await self._get_provider()

        t0 = time.perf_counter()
        try:
            raw = await asyncio.to_thread(provider.embed_text, text)
        except Exception as e:
            logger.error("Embedding call failed: %s", e)
            raise EmbeddingUnavailableError(f"Could not embed query: {e}") from e

        vec = normalize(np.asarray(raw, dtype=np.float64).ravel())
        if self.expected_dimension is not None and vec.shape[0] != self.expected_dimension:
            raise EmbeddingDimensionError(self.expected_dimension, vec.shape[0])

        log_perf("embedding", (time.perf_counter() - t0) * 1000, chars=len(text))
        return vec


def provider_factory(settings) -> Callable[[], IEmbeddingProvider]:
    """Return a zero-arg factory for the provider named in settings."""
    kind = settings.embed_provider
    if kind == "hash":
        return lambda: DeterministicHashEmbedding(settings.hash_dimension)
    if kind == "sentence-transformers":
        return lambda: SentenceTransformerEmbedding(settings.embed_model, settings.device)
    raise ValueError(f"Unknown embed_provider: {kind!r}")


def create_gateway(settings, expected_dimension: int | None = None) -> EmbeddingGateway:
    return EmbeddingGateway(provider_factory(settings), expected_dimension=expected_dimension)
