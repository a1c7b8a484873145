"""
Tests for the portfolio edit reducer.
"""

import pytest

from builder.models import DesignSettings, Document, Profile, TemplateRef, TextSection
from builder.reducer import (
    Action,
    load_document,
    portfolio_reducer,
    reset_document,
    set_design,
    set_profile,
    set_sections,
    set_template,
)


def test_unknown_action_returns_same_state(sample_document):
    assert portfolio_reducer(sample_document, Action("SET_NOTHING", {"x": 1})) is sample_document


def test_action_without_type_returns_same_state(sample_document):
    assert portfolio_reducer(sample_document, object()) is sample_document


def test_load_document_replaces_everything(sample_document):
    incoming = Document(id="other", profile=Profile(name="Grace"))

    result = portfolio_reducer(sample_document, load_document(incoming))

    assert result == incoming
    assert result.sections == []


def test_reset_document_replaces_everything(sample_document):
    result = portfolio_reducer(sample_document, reset_document(Document()))

    assert result == Document()


def test_set_profile_merges_partial_fields(sample_document):
    result = portfolio_reducer(sample_document, set_profile({"name": "Ada King"}))

    assert result.profile.name == "Ada King"
    assert result.profile.title == sample_document.profile.title
    assert sample_document.profile.name == "Ada Lovelace"


def test_set_profile_with_model_replaces(sample_document):
    profile = Profile(name="Grace")

    assert portfolio_reducer(sample_document, set_profile(profile)).profile == profile


def test_set_design_accepts_both_key_styles(sample_document):
    result = portfolio_reducer(sample_document, set_design({"primaryColor": "#10b981", "font_family": "Roboto"}))

    assert result.design == DesignSettings(font_family="Roboto", primary_color="#10b981")


def test_invalid_design_leaves_state_alone(sample_document):
    assert portfolio_reducer(sample_document, set_design({"primaryColor": "blue"})) is sample_document


def test_set_template(sample_document):
    result = portfolio_reducer(sample_document, set_template(TemplateRef(value="minimalist", label="Minimalist")))

    assert result.template.value == "minimalist"
    assert result.profile == sample_document.profile


def test_set_sections_replaces_the_list(sample_document):
    sections = [TextSection(id="only", content="one")]

    result = portfolio_reducer(sample_document, set_sections(sections))

    assert [section.id for section in result.sections] == ["only"]
    assert len(sample_document.sections) == 4


def test_set_sections_with_duplicate_ids_returns_same_state(sample_document):
    repeated = TextSection(id="dup", content="one")

    assert portfolio_reducer(sample_document, set_sections([repeated, repeated])) is sample_document


def test_set_sections_coerces_records(sample_document):
    result = portfolio_reducer(sample_document, set_sections([{"id": "d1", "type": "text", "content": "hi"}]))

    assert result.sections == [TextSection(id="d1", content="hi")]


@pytest.mark.parametrize(
    "payload",
    [
        [{"id": "d1", "content": "no type"}],
        [{"id": "d1", "type": "cards", "content": "not a list"}],
        ["junk"],
        42,
    ],
)
def test_set_sections_with_bad_items_returns_same_state(sample_document, payload):
    assert portfolio_reducer(sample_document, Action("SET_SECTIONS", payload)) is sample_document
