
"""
embeddings/__init__.py
----------------------
Expose the text embedding interface.
"""

from .text_embed import EmbeddingGateway, IEmbeddingProvider, create_gateway

__all__ = ["EmbeddingGateway", "IEmbeddingProvider", "create_gateway"]
