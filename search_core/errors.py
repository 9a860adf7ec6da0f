"""
search_core/errors.py
---------------------
Error taxonomy for catalog loading, scoring and query embedding.

Startup errors (LoadError, EmptyCatalogError) are fatal to initialization.
Per-query errors (EmbeddingUnavailableError, DimensionMismatchError) are
caught by the use-case adapters and turned into inline messages.
"""


class SearchError(Exception):
    """Base class for all catalog search errors."""


class LoadError(SearchError):
    """A catalog resource could not be fetched or parsed."""


class EmptyCatalogError(LoadError):
    """The embedding sidecar holds no vectors."""


class DimensionMismatchError(SearchError):
    """Two vectors, or records and vectors, disagree in length."""


class EmbeddingDimensionError(DimensionMismatchError):
    """The embedding model produces vectors of the wrong size for the catalog."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding model returned {actual}-dim vectors, catalog expects {expected}"
        )


class EmbeddingUnavailableError(SearchError):
    """The embedding model could not be loaded or invoked."""


class NoSelectionError(SearchError):
    """Favorites search was requested without any selected items."""

    def __init__(self, message: str = "Select at least one item from the list."):
        super().__init__(message)
