"""Offline sidecar builder and catalog validator."""

import json

import numpy as np
import pytest

from catalog.loader import load_catalog_sync
from catalog.validate_catalog import main as validate_main
from embeddings.build_embeddings import build_embeddings, main as build_main, record_text, verify_sidecar
from embeddings.text_embed import DeterministicHashEmbedding

CSV = """title,country,variety,price,description,winery
Alpha,France,Pinot Noir,10,bright cherry,Dom A
Beta,Italy,Sangiovese,,earthy,
"""


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "df.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def test_record_text_skips_blanks():
    text = record_text({"title": "Alpha", "variety": " Pinot Noir ", "country": None, "description": ""})
    assert text == "Alpha. Pinot Noir"


def test_build_and_load_round_trip(csv_path, tmp_path):
    out = tmp_path / "emb.json"
    provider = DeterministicHashEmbedding(dimension=8)
    payload = build_embeddings(csv_path, out, provider, "hash", batch_size=1, verify=True)

    assert payload["count"] == 2 and payload["dimension"] == 8
    catalog = load_catalog_sync(csv_path, out)
    assert catalog.dimension == 8 and not catalog.count_mismatch

    expected = provider.embed_text(record_text({"title": "Beta", "variety": "Sangiovese",
                                                "country": "Italy", "description": "earthy"}))
    np.testing.assert_allclose(catalog.vector(1), expected, rtol=1e-6, atol=1e-6)


def test_verify_rejects_unnormalized(tmp_path):
    path = tmp_path / "emb.json"
    path.write_text(json.dumps({"embeddings": [[2.0, 0.0]], "dimension": 2}), encoding="utf-8")
    with pytest.raises(ValueError, match="not normalized"):
        verify_sidecar(path)


def test_verify_rejects_count_mismatch(tmp_path):
    path = tmp_path / "emb.json"
    path.write_text(json.dumps({"embeddings": [[1.0, 0.0]], "dimension": 2}), encoding="utf-8")
    with pytest.raises(ValueError, match="Count mismatch"):
        verify_sidecar(path, expected_count=3)


def test_cli_build_then_validate(csv_path, tmp_path, monkeypatch):
    monkeypatch.setenv("WINESEARCH_CONFIG_FILE", str(tmp_path / "none.yaml"))
    monkeypatch.setenv("WINESEARCH_HASH_DIMENSION", "16")
    out = tmp_path / "emb.json"

    assert build_main([str(csv_path), str(out), "--provider", "hash", "--verify"]) == 0
    assert json.loads(out.read_text())["dimension"] == 16
    assert validate_main([str(csv_path), str(out)]) == 0


def test_cli_validate_reports_load_error(tmp_path, monkeypatch):
    monkeypatch.setenv("WINESEARCH_CONFIG_FILE", str(tmp_path / "none.yaml"))
    assert validate_main([str(tmp_path / "missing.csv"), str(tmp_path / "missing.json")]) == 1
