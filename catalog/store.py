"""
catalog/store.py
----------------
In-memory catalog: records paired by position with their embedding vectors.

A Catalog is an immutable snapshot. Rebuilding the catalog means building a
new snapshot and swapping it into a CatalogRef; readers take one snapshot per
query and never observe a half-built catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence

import numpy as np

from search_core.errors import DimensionMismatchError, EmptyCatalogError, LoadError
from search_core.logger import get_logger

logger = get_logger("catalog")


@dataclass(frozen=True, eq=False)
class CatalogRecord:
    """One catalog row. Missing attributes read as None."""

    index: int
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name]

    def to_dict(self) -> dict:
        return {**self.attributes, "_index": self.index}


@dataclass(frozen=True, eq=False)
class Catalog:
    records: tuple[CatalogRecord, ...]
    vectors: np.ndarray
    dimension: int

    @property
    def count_mismatch(self) -> bool:
        return len(self.records) != len(self.vectors)

    def __len__(self) -> int:
        # Every position that has either a record or a vector.
        return max(len(self.records), len(self.vectors))

    def record(self, index: int) -> CatalogRecord | None:
        if 0 <= index < len(self.records):
            return self.records[index]
        return None

    def vector(self, index: int) -> np.ndarray | None:
        if 0 <= index < len(self.vectors):
            return self.vectors[index]
        return None

    def get(self, index: int) -> tuple[CatalogRecord, np.ndarray] | None:
        """Return (record, vector) for index, or None if either side is missing."""
        record = self.record(index)
        vector = self.vector(index)
        if record is None or vector is None:
            return None
        return record, vector

    def __iter__(self) -> Iterator[tuple[CatalogRecord, np.ndarray]]:
        for i in range(min(len(self.records), len(self.vectors))):
            yield self.records[i], self.vectors[i]


def build_catalog(records: Sequence[Mapping[str, Any]],
                  vectors: Sequence[Sequence[float]],
                  dimension: int | None = None) -> Catalog:
    """
    Pair records with vectors by position.

    Raises EmptyCatalogError when there are no vectors and LoadError when the
    vectors are ragged or disagree with the declared dimension. A records /
    vectors count mismatch only logs a warning.
    """
    if vectors is None or len(vectors) == 0:
        raise EmptyCatalogError("Embedding source contains no vectors")

    try:
        matrix = np.array(vectors, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise LoadError(f"Embedding vectors are not a rectangular numeric matrix: {e}") from e
    if matrix.ndim != 2:
        raise LoadError(f"Embedding vectors must be 2-dimensional, got shape {matrix.shape}")
    if not np.isfinite(matrix).all():
        bad = sorted({int(i) for i in np.argwhere(~np.isfinite(matrix))[:, 0]})
        raise LoadError(f"Embedding vectors contain null or non-finite values at rows {bad[:10]}")

    actual_dim = matrix.shape[1]
    if dimension is not None and int(dimension) != actual_dim:
        raise LoadError(f"Declared dimension {dimension} does not match vector length {actual_dim}")
    matrix.setflags(write=False)

    # the stable index is always the position in this load
    frozen = tuple(
        CatalogRecord(index=i, attributes=rec.attributes if isinstance(rec, CatalogRecord) else rec)
        for i, rec in enumerate(records)
    )

    if len(frozen) != len(matrix):
        logger.warning(
            "%s",
            DimensionMismatchError(
                f"Catalog has {len(frozen)} records but {len(matrix)} embeddings; "
                "both sources should come from the same table"
            ),
        )

    logger.info("Catalog loaded: %d records, %d vectors, dim=%d", len(frozen), len(matrix), actual_dim)
    return Catalog(records=frozen, vectors=matrix, dimension=actual_dim)


class CatalogRef:
    """Holds the current catalog snapshot; replace() swaps it in one assignment."""

    def __init__(self, catalog: Catalog | None = None):
        self._catalog = catalog

    @property
    def current(self) -> Catalog | None:
        return self._catalog

    def replace(self, catalog: Catalog) -> Catalog | None:
        previous, self._catalog = self._catalog, catalog
        return previous
