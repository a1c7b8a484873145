"""Filtering and sorting for the template gallery."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

TEMPLATE_CATEGORIES = ("all", "modern", "minimalist", "creative", "professional", "artistic")
SORT_OPTIONS = ("popular", "newest", "rating", "name")


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _timestamp(value: Any) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0
    return 0.0


def _matches(template: Dict[str, Any], query: str) -> bool:
    haystack = " ".join(
        str(template.get(key) or "") for key in ("name", "description", "category")
    ).lower()
    return query in haystack


def filter_templates(
    templates: Iterable[Dict[str, Any]],
    *,
    category: Optional[str] = "all",
    search: Optional[str] = None,
    sort_by: Optional[str] = "popular",
) -> List[Dict[str, Any]]:
    """Return the catalog rows matching a category and search query, sorted.

    Unknown sort keys keep the incoming order.
    """
    results = list(templates)

    if category and category != "all":
        wanted = category.lower()
        results = [row for row in results if str(row.get("category") or "").lower() == wanted]

    query = (search or "").strip().lower()
    if query:
        results = [row for row in results if _matches(row, query)]

    if sort_by == "popular":
        results.sort(key=lambda row: _number(row.get("usage_count")), reverse=True)
    elif sort_by == "newest":
        results.sort(key=lambda row: _timestamp(row.get("created_at")), reverse=True)
    elif sort_by == "rating":
        results.sort(key=lambda row: _number(row.get("rating")), reverse=True)
    elif sort_by == "name":
        results.sort(key=lambda row: str(row.get("name") or "").lower())

    return results
