"""
embeddings/build_embeddings.py
------------------------------
Builds the embedding sidecar (wine_embeddings.json) from the catalog CSV.

Each row is turned into one text from its descriptive columns, embedded in
batches and written as {"embeddings", "dimension", "model", "count"}.

    python -m embeddings.build_embeddings data/df.csv data/wine_embeddings.json --verify
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from pathlib import Path

import numpy as np
from tqdm import tqdm

from catalog.loader import parse_records, read_source
from embeddings.text_embed import provider_factory
from search_core.config import load_settings
from search_core.errors import LoadError

TEXT_FIELDS = ("title", "variety", "country", "province", "region_1", "winery", "description")


def record_text(record: dict) -> str:
    """Join the descriptive fields of a row, skipping blanks."""
    parts = []
    for name in TEXT_FIELDS:
        value = record.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            parts.append(value)
    return ". ".join(parts)


def embed_records(records: list[dict], provider, batch_size: int = 64) -> np.ndarray:
    texts = [record_text(r) for r in records]
    chunks = []
    for start in tqdm(range(0, len(texts), batch_size), desc="Embedding catalog", unit="batch"):
        chunks.append(np.asarray(provider.embed_batch(texts[start:start + batch_size], batch_size)))
    if not chunks:
        return np.empty((0, provider.get_dimension()), dtype=np.float32)
    return np.vstack(chunks).astype(np.float32, copy=False)


def _atomic_write_text(dst: Path, text: str):
    """Write to disk atomically."""
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dst.parent, suffix=".tmp")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    Path(tmp).replace(dst)


def write_sidecar(path: Path, embeddings: np.ndarray, model_name: str) -> dict:
    payload = {
        "embeddings": embeddings.tolist(),
        "dimension": int(embeddings.shape[1]),
        "model": model_name,
        "count": int(embeddings.shape[0]),
    }
    _atomic_write_text(Path(path), json.dumps(payload))
    return payload


def verify_sidecar(path: Path, expected_count: int | None = None) -> float:
    """Re-read the sidecar and check shape and norms; returns the mean norm."""
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    data = np.asarray(payload["embeddings"], dtype=np.float64)
    print(f"Verified shape={data.shape}, declared dimension={payload.get('dimension')}")
    if expected_count is not None and data.shape[0] != expected_count:
        raise ValueError(f"Count mismatch: {data.shape[0]} embeddings vs {expected_count} rows")
    mean_norm = float(np.linalg.norm(data, axis=1).mean()) if len(data) else 0.0
    print(f"Mean norm ≈ {mean_norm:.4f} (should be ~1.0)")
    if not np.isclose(mean_norm, 1.0, atol=1e-2):
        raise ValueError("Embeddings not normalized")
    return mean_norm


def build_embeddings(csv_path, out_path, provider, model_name: str,
                     batch_size: int = 64, verify: bool = False) -> dict:
    records = parse_records(read_source(csv_path))
    print(f"Embedding {len(records)} catalog rows...")
    embeddings = embed_records(records, provider, batch_size=batch_size)
    payload = write_sidecar(Path(out_path), embeddings, model_name)
    print(f"Saved {embeddings.shape} embeddings → {out_path}")
    if verify:
        verify_sidecar(Path(out_path), expected_count=len(records))
    return payload


def main(argv=None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Build catalog text embeddings")
    parser.add_argument("csv", nargs="?", default=settings.catalog_csv, help="Catalog CSV path or URL")
    parser.add_argument("out", nargs="?", default=settings.embeddings_json, help="Output JSON path")
    parser.add_argument("--batch-size", type=int, default=64)
    parser.add_argument("--provider", default=settings.embed_provider,
                        choices=["sentence-transformers", "hash"])
    parser.add_argument("--model", default=settings.embed_model)
    parser.add_argument("--verify", action="store_true", help="Run post-build verification")
    args = parser.parse_args(argv)

    settings = settings.model_copy(update={"embed_provider": args.provider, "embed_model": args.model})
    provider = provider_factory(settings)()
    try:
        build_embeddings(args.csv, args.out, provider, args.model,
                         batch_size=args.batch_size, verify=args.verify)
    except (LoadError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
