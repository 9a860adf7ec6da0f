"""
catalog/__init__.py
-------------------
Catalog snapshot types and loaders.
"""

from .store import Catalog, CatalogRecord, CatalogRef, build_catalog

__all__ = ["Catalog", "CatalogRecord", "CatalogRef", "build_catalog"]
