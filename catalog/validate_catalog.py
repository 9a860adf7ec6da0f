"""
catalog/validate_catalog.py
---------------------------
Checks that a catalog CSV and its embedding sidecar load together and that
the vectors look usable (aligned counts, unit norms).

    python -m catalog.validate_catalog [csv] [embeddings.json]
"""

import argparse
import sys

import numpy as np

from catalog.loader import load_catalog_sync
from search_core.config import load_settings
from search_core.errors import LoadError


def catalog_report(catalog) -> dict:
    norms = np.linalg.norm(catalog.vectors, axis=1)
    return {
        "records": len(catalog.records),
        "vectors": len(catalog.vectors),
        "dimension": catalog.dimension,
        "count_mismatch": catalog.count_mismatch,
        "mean_norm": round(float(norms.mean()), 4),
        "zero_vectors": int((norms == 0).sum()),
        "normalized": bool(np.allclose(norms, 1.0, atol=1e-2)),
    }


def validate_catalog(csv_source, embeddings_source, timeout: float = 30.0) -> dict:
    report = catalog_report(load_catalog_sync(csv_source, embeddings_source, timeout))
    for key, value in report.items():
        print(f"{key:>15}: {value}")
    if report["count_mismatch"]:
        print("[WARN] Records and embeddings differ in count; were both built from the same table?")
    return report


def main(argv=None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Validate a catalog / embeddings pair")
    parser.add_argument("csv", nargs="?", default=settings.catalog_csv)
    parser.add_argument("embeddings", nargs="?", default=settings.embeddings_json)
    args = parser.parse_args(argv)

    try:
        report = validate_catalog(args.csv, args.embeddings, settings.fetch_timeout)
    except LoadError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    if not report["normalized"]:
        print("[ERROR] Embeddings are not unit-normalized", file=sys.stderr)
        return 1
    print(f"Catalog validated successfully: {report['records']} items")
    return 0


if __name__ == "__main__":
    sys.exit(main())
