"""
Tests for template gallery filtering.
"""

from services.template_catalog import filter_templates

TEMPLATES = [
    {"id": "1", "name": "Modern Clean", "category": "modern", "usage_count": 40, "rating": 4.1,
     "created_at": "2024-01-01T00:00:00Z", "description": "Professional and minimalist"},
    {"id": "2", "name": "Minimalist", "category": "minimalist", "usage_count": 90, "rating": 4.8,
     "created_at": "2024-03-01T00:00:00Z", "description": "Clean and simple"},
    {"id": "3", "name": "Artful", "category": "artistic", "usage_count": None, "rating": "4.5",
     "created_at": "2024-02-01T00:00:00Z", "description": "Bold colours"},
]


def _ids(rows):
    return [row["id"] for row in rows]


def test_popular_is_the_default_sort():
    assert _ids(filter_templates(TEMPLATES)) == ["2", "1", "3"]


def test_sort_by_newest_rating_and_name():
    assert _ids(filter_templates(TEMPLATES, sort_by="newest")) == ["2", "3", "1"]
    assert _ids(filter_templates(TEMPLATES, sort_by="rating")) == ["2", "3", "1"]
    assert _ids(filter_templates(TEMPLATES, sort_by="name")) == ["3", "2", "1"]


def test_category_filter():
    assert _ids(filter_templates(TEMPLATES, category="artistic")) == ["3"]
    assert _ids(filter_templates(TEMPLATES, category="all")) == ["2", "1", "3"]


def test_search_matches_name_and_description_case_insensitively():
    assert _ids(filter_templates(TEMPLATES, search="CLEAN")) == ["2", "1"]
    assert filter_templates(TEMPLATES, search="nothing matches") == []


def test_input_is_not_reordered():
    rows = list(TEMPLATES)

    filter_templates(rows, sort_by="name")

    assert _ids(rows) == ["1", "2", "3"]
