"""
recommender/__init__.py
-----------------------
Similarity scoring, vector averaging and top-k ranking.
"""

from .recommend import FilterSpec, ScoredResult, top_k_similar
from .vector_utils import average_embeddings, cosine_similarity

__all__ = ["FilterSpec", "ScoredResult", "top_k_similar", "average_embeddings", "cosine_similarity"]
