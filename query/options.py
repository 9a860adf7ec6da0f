"""
query/options.py
----------------
Read-only views of the catalog for building the search form:
filter dropdown values and the favorites picker list.
"""

from __future__ import annotations

from catalog.store import Catalog, CatalogRecord
from recommender.recommend import as_number


def _distinct(catalog: Catalog, attribute: str) -> list[str]:
    values = set()
    for record in catalog.records:
        value = record.get(attribute)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            values.add(value)
    return sorted(values, key=lambda v: (v.casefold(), v))


def filter_options(catalog: Catalog) -> dict[str, list[str]]:
    """Distinct countries and varieties, sorted case-insensitively."""
    return {
        "countries": _distinct(catalog, "country"),
        "varieties": _distinct(catalog, "variety"),
    }


def favorite_label(record: CatalogRecord) -> str:
    """'Title (country • variety • $price)', skipping unknown parts."""
    name = record.get("title") or "Untitled"
    parts = [str(record.get(a)) for a in ("country", "variety") if record.get(a)]
    price = as_number(record.get("price"))
    if price is not None:
        parts.append(f"${price:g}")
    return f"{name} ({' • '.join(parts)})"


def favorite_choices(catalog: Catalog) -> list[dict]:
    return [{"index": r.index, "label": favorite_label(r)} for r in catalog.records]
