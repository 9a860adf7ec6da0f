import json

import numpy as np
import pytest

from catalog.store import build_catalog
from embeddings.text_embed import EmbeddingGateway, IEmbeddingProvider
import search_core.logger as event_log


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Keep JSON event/perf logs out of the repo."""
    monkeypatch.setattr(event_log, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(event_log, "EVENT_LOG_ENABLED", True)
    return tmp_path / "logs"


@pytest.fixture
def two_wine_catalog():
    """A (France, $10, [1, 0]) and B (Italy, $50, [0, 1])."""
    records = [
        {"title": "A", "country": "France", "variety": "Pinot Noir", "price": 10},
        {"title": "B", "country": "Italy", "variety": "Sangiovese", "price": 50},
    ]
    return build_catalog(records, [[1.0, 0.0], [0.0, 1.0]], dimension=2)


class StubProvider(IEmbeddingProvider):
    """Maps known texts to fixed vectors; anything else gets `default`."""

    def __init__(self, vectors, default=None):
        self.vectors = {k: np.asarray(v, dtype=np.float64) for k, v in vectors.items()}
        self.dimension = len(next(iter(self.vectors.values())))
        self.default = default

    def embed_text(self, text):
        if text in self.vectors:
            return self.vectors[text]
        if self.default is not None:
            return np.asarray(self.default, dtype=np.float64)
        raise KeyError(f"no stub vector for {text!r}")

    def get_dimension(self):
        return self.dimension


@pytest.fixture
def stub_gateway():
    provider = StubProvider({
        "light red": [1.0, 0.0],
        "tuscan red": [0.0, 1.0],
        "both": [1.0, 1.0],
    })
    return EmbeddingGateway(lambda: provider, expected_dimension=2)


@pytest.fixture
def write_sources(tmp_path):
    """Write a CSV table and JSON sidecar, return their paths."""

    def _write(csv_text, embeddings, dimension=None, name="wines"):
        csv_path = tmp_path / f"{name}.csv"
        json_path = tmp_path / f"{name}_embeddings.json"
        csv_path.write_text(csv_text, encoding="utf-8")
        payload = {"embeddings": embeddings}
        if dimension is not None:
            payload["dimension"] = dimension
        json_path.write_text(json.dumps(payload), encoding="utf-8")
        return csv_path, json_path

    return _write


@pytest.fixture
def stub_provider_cls():
    return StubProvider
