"""
recommender/vector_utils.py
---------------------------
Vector math used by the ranking engine and the favorites use case.

Zero-norm vectors score 0 against anything (never NaN), which sinks them to
the bottom of a ranking instead of poisoning the sort.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from search_core.errors import DimensionMismatchError


# === CORE MATH ===
def normalize(vec) -> np.ndarray:
    """L2-normalize a vector (safe for zero-length)."""
    vec = np.asarray(vec, dtype=np.float64)
    norm = np.linalg.norm(vec)
    return vec / norm if norm > 0 else vec


def cosine_similarity(a, b) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 if either norm is zero."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(f"Cannot compare vectors of length {a.shape[0]} and {b.shape[0]}")

    norm_a = np.sqrt(np.dot(a, a))
    norm_b = np.sqrt(np.dot(b, b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_similarities(query, matrix) -> np.ndarray:
    """
    Cosine similarity of `query` against every row of `matrix`.
    Same semantics as cosine_similarity() per row, shape (len(matrix),).
    """
    q = np.asarray(query, dtype=np.float64).ravel()
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        raise DimensionMismatchError(f"Query has length {q.shape[0]}, catalog vectors have shape {m.shape}")

    q_norm = np.sqrt(np.dot(q, q))
    row_norms = np.sqrt(np.einsum("ij,ij->i", m, m))
    denom = row_norms * q_norm
    sims = np.zeros(m.shape[0], dtype=np.float64)
    if q_norm == 0:
        return sims
    nonzero = denom > 0
    sims[nonzero] = (m[nonzero] @ q) / denom[nonzero]
    return sims


# === AGGREGATION ===
def average_embeddings(catalog, indices: Iterable[int]) -> np.ndarray | None:
    """
    Element-wise mean of the catalog vectors at `indices`.

    Indices without a vector are skipped, but the divisor is still the number
    of requested indices, so missing entries pull the mean towards zero.
    Returns None for an empty selection or a catalog without a dimension.
    """
    indices = list(indices)
    if not indices:
        return None
    dim = getattr(catalog, "dimension", 0) or 0
    if not dim:
        return None

    total = np.zeros(dim, dtype=np.float64)
    for idx in indices:
        vec = catalog.vector(idx)
        if vec is None:
            continue
        total += vec
    return total / len(indices)
