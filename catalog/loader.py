"""
catalog/loader.py
-----------------
Loads the wine catalog from its two sources and builds a Catalog snapshot:

    - a CSV table (header row, one record per row, values type-inferred)
    - a JSON sidecar {"embeddings": [[float, ...], ...], "dimension": int}

Row i of the table pairs with embeddings[i]. Sources may be local paths or
http(s) URLs; both are fetched concurrently.
"""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from urllib.parse import urlparse

import pandas as pd
import requests

from catalog.store import Catalog, build_catalog
from search_core.errors import LoadError
from search_core.logger import get_logger

logger = get_logger("catalog.loader")


def _is_url(source: str) -> bool:
    return urlparse(str(source)).scheme in ("http", "https")


def read_source(source: str | Path, timeout: float = 30.0) -> bytes:
    """Return the raw bytes of a local file or an http(s) resource."""
    try:
        if _is_url(source):
            resp = requests.get(str(source), timeout=timeout)
            resp.raise_for_status()
            return resp.content
        return Path(source).read_bytes()
    except (requests.RequestException, OSError) as e:
        raise LoadError(f"Could not load {source}: {e}") from e


def parse_records(data: bytes) -> list[dict]:
    """Parse CSV bytes into row dicts; empty cells become None."""
    try:
        # only empty cells are unknown; literal "NA", "None", "null" stay text
        df = pd.read_csv(io.BytesIO(data), skip_blank_lines=True,
                         keep_default_na=False, na_values=[""])
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise LoadError(f"Could not parse catalog table: {e}") from e

    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def parse_embeddings(data: bytes) -> tuple[list, int | None]:
    """Parse the sidecar JSON into (vectors, declared dimension)."""
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LoadError(f"Could not parse embeddings file: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("embeddings"), list):
        raise LoadError("Embeddings file must be an object with an 'embeddings' list")

    dimension = payload.get("dimension")
    if dimension is not None and (isinstance(dimension, bool) or not isinstance(dimension, int)):
        raise LoadError(f"'dimension' must be an integer, got {dimension!r}")
    return payload["embeddings"], dimension or None


async def load_catalog(csv_source: str | Path, embeddings_source: str | Path,
                       timeout: float = 30.0) -> Catalog:
    """Fetch both sources in parallel, parse them and build the catalog."""
    csv_bytes, emb_bytes = await asyncio.gather(
        asyncio.to_thread(read_source, csv_source, timeout),
        asyncio.to_thread(read_source, embeddings_source, timeout),
    )
    records = parse_records(csv_bytes)
    vectors, dimension = parse_embeddings(emb_bytes)
    logger.info("Fetched %d rows and %d embeddings", len(records), len(vectors))
    return build_catalog(records, vectors, dimension)


def load_catalog_sync(csv_source: str | Path, embeddings_source: str | Path,
                      timeout: float = 30.0) -> Catalog:
    return asyncio.run(load_catalog(csv_source, embeddings_source, timeout))


async def load_from_settings(settings) -> Catalog:
    return await load_catalog(settings.catalog_csv, settings.embeddings_json, settings.fetch_timeout)
