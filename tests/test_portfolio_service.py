"""
Tests for PortfolioService.

Tests the Supabase persistence gateway:
- row mapping for documents and sections
- retries and failure classification
- create / update / publish payloads
- all-or-nothing section reorder

Run with: pytest tests/test_portfolio_service.py -v
"""

from unittest.mock import MagicMock

import httpx
import pytest

from builder.models import CardsSection, DesignSettings, Document, Profile, ProjectCard, TextSection
from config.settings import BuilderSettings
from services.errors import (
    SERVICE_UNAVAILABLE_MESSAGE,
    ConfigurationError,
    NotFoundError,
    PortfolioServiceError,
    ReorderError,
    ServiceUnavailableError,
    classify_error,
    user_message,
)
from services.portfolio_service import PortfolioService, section_from_row, section_to_row


def _portfolio_row():
    return {
        "id": "p1",
        "user_id": "user-123",
        "title": "Ada Portfolio",
        "slug": "ada-portfolio",
        "status": "draft",
        "profile_data": {"name": "Ada", "title": "Analyst", "bio": "Bio", "email": None},
        "design_settings": {"fontFamily": "Lato", "primaryColor": "#8b5cf6"},
        "template_id": "t2",
        "template": {"id": "t2", "name": "Minimalist", "description": "Clean", "category": "minimalist"},
        "updated_at": "2025-01-02T00:00:00Z",
        "sections": [
            {"id": "s2", "section_type": "skills", "title": "Skills", "content": {"skills": ["Python"]},
             "is_visible": True, "sort_order": 1},
            {"id": "s1", "section_type": "text", "title": "About", "content": {"content": "Hi"},
             "is_visible": False, "sort_order": 0},
            {"id": "s3", "section_type": "cards", "title": "Projects", "content": {"content": [{"name": "Engine"}]},
             "sort_order": 2},
            {"id": "s4", "section_type": "gallery", "title": "Unknown", "content": {}, "sort_order": 3},
        ],
    }


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def service(supabase_client, settings, sleeps):
    return PortfolioService(client=supabase_client, settings=settings, sleep=sleeps.append)


def _load_chain(client):
    return (
        client.table.return_value
        .select.return_value
        .eq.return_value
        .limit.return_value
        .execute
    )


def _update_chain(client):
    return client.table.return_value.update.return_value.eq.return_value.execute


class TestConfiguration:
    def test_missing_credentials_raise(self):
        with pytest.raises(ConfigurationError):
            PortfolioService(settings=BuilderSettings())


class TestLoad:
    def test_load_maps_row_to_document(self, service, supabase_client):
        _load_chain(supabase_client).return_value.data = [_portfolio_row()]

        document = service.load("p1")

        assert document.id == "p1"
        assert document.owner_id == "user-123"
        assert document.profile.name == "Ada"
        assert document.profile.email == ""
        assert document.design == DesignSettings(font_family="Lato", primary_color="#8b5cf6")
        assert document.template.value == "minimalist"
        assert document.template.id == "t2"
        assert [section.id for section in document.sections] == ["s1", "s2", "s3"]
        assert document.sections[0].visible is False
        assert document.sections[1].content == ["Python"]
        assert document.sections[2].content == [ProjectCard(id="1", name="Engine")]

    def test_load_missing_raises_not_found(self, service, supabase_client):
        _load_chain(supabase_client).return_value.data = []

        with pytest.raises(NotFoundError):
            service.load("missing")

    def test_load_by_public_slug_filters_published(self, service, supabase_client):
        chain = supabase_client.table.return_value.select.return_value.eq.return_value
        chain.eq.return_value.limit.return_value.execute.return_value.data = [
            {**_portfolio_row(), "status": "published"}
        ]

        document = service.load_by_public_slug("ada-portfolio")

        assert document.is_published
        chain.eq.assert_called_with("status", "published")

    def test_load_by_public_slug_draft_is_not_found(self, service, supabase_client):
        chain = supabase_client.table.return_value.select.return_value.eq.return_value
        chain.eq.return_value.limit.return_value.execute.return_value.data = []

        with pytest.raises(NotFoundError):
            service.load_by_public_slug("draft-slug")

    def test_list_for_owner_returns_summaries(self, service, supabase_client):
        (
            supabase_client.table.return_value
            .select.return_value
            .eq.return_value
            .order.return_value
            .execute.return_value
        ).data = [{"id": "p1", "title": "Ada", "status": "published", "template": {"name": "Minimalist"}}]

        summaries = service.list_for_owner("user-123")

        assert [summary.id for summary in summaries] == ["p1"]
        assert summaries[0].template_name == "Minimalist"
        supabase_client.table.return_value.select.return_value.eq.return_value.order.assert_called_with(
            "updated_at", desc=True
        )


class TestRetries:
    def test_transient_failure_is_retried(self, service, supabase_client, sleeps):
        _load_chain(supabase_client).side_effect = [
            httpx.ConnectError("connection refused"),
            MagicMock(data=[_portfolio_row()]),
        ]

        assert service.load("p1").id == "p1"
        assert len(sleeps) == 1

    def test_persistent_outage_is_service_unavailable(self, service, supabase_client):
        execute = _load_chain(supabase_client)
        execute.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ServiceUnavailableError) as excinfo:
            service.load("p1")

        assert execute.call_count == 3
        assert str(excinfo.value) == SERVICE_UNAVAILABLE_MESSAGE

    def test_other_failures_are_not_retried(self, service, supabase_client):
        execute = _load_chain(supabase_client)
        execute.side_effect = Exception("permission denied for table portfolios")

        with pytest.raises(PortfolioServiceError) as excinfo:
            service.load("p1")

        assert not isinstance(excinfo.value, ServiceUnavailableError)
        assert execute.call_count == 1


class TestCreate:
    def test_create_generates_slug_and_inserts(self, service, supabase_client):
        supabase_client.rpc.return_value.execute.return_value.data = "ada-portfolio"
        supabase_client.table.return_value.insert.return_value.execute.return_value.data = [{"id": "p1"}]
        _load_chain(supabase_client).return_value.data = [_portfolio_row()]
        initial = Document(
            profile=Profile(name="Ada"),
            sections=[TextSection(id="local-1", content="Hi")],
        )

        document = service.create("user-123", initial, title="Ada Portfolio")

        assert document.id == "p1"
        supabase_client.rpc.assert_called_once_with(
            "generate_portfolio_slug", {"title_text": "Ada Portfolio", "user_uuid": "user-123"}
        )
        inserted = [call.args[0] for call in supabase_client.table.return_value.insert.call_args_list]
        assert inserted[0]["user_id"] == "user-123"
        assert inserted[0]["slug"] == "ada-portfolio"
        assert inserted[0]["status"] == "draft"
        assert inserted[0]["profile_data"]["name"] == "Ada"
        assert inserted[1]["portfolio_id"] == "p1"
        assert inserted[1]["sort_order"] == 0

    def test_insert_is_not_retried(self, service, supabase_client):
        supabase_client.rpc.return_value.execute.return_value.data = "slug"
        execute = supabase_client.table.return_value.insert.return_value.execute
        execute.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ServiceUnavailableError):
            service.create("user-123", Document())

        assert execute.call_count == 1


class TestUpdateAndPublish:
    def test_update_maps_fields_to_columns(self, service, supabase_client):
        _update_chain(supabase_client).return_value.data = [{"id": "p1"}]
        _load_chain(supabase_client).return_value.data = [_portfolio_row()]

        service.update("p1", {"design": DesignSettings(font_family="Roboto"), "title": "New"})

        supabase_client.table.return_value.update.assert_called_with(
            {"design_settings": {"fontFamily": "Roboto", "primaryColor": "#3b82f6"}, "title": "New"}
        )

    def test_update_rejects_unknown_fields(self, service):
        with pytest.raises(PortfolioServiceError):
            service.update("p1", {"status": "published"})

    def test_update_missing_row_is_not_found(self, service, supabase_client):
        _update_chain(supabase_client).return_value.data = []

        with pytest.raises(NotFoundError):
            service.update("p1", {"title": "x"})

    def test_publish_sets_status_and_timestamp(self, service, supabase_client):
        _update_chain(supabase_client).return_value.data = [{"id": "p1"}]
        _load_chain(supabase_client).return_value.data = [{**_portfolio_row(), "status": "published"}]

        document = service.publish("p1")

        payload = supabase_client.table.return_value.update.call_args.args[0]
        assert payload["status"] == "published"
        assert payload["published_at"]
        assert document.is_published


class TestSections:
    def test_create_section_returns_remote_id(self, service, supabase_client):
        supabase_client.table.return_value.insert.return_value.execute.return_value.data = [{"id": 77}]

        assert service.create_section("p1", TextSection(id="local", content="x"), 2) == "77"

    def test_update_section_writes_wrapped_content(self, service, supabase_client):
        _update_chain(supabase_client).return_value.data = [{"id": "s3"}]
        section = CardsSection(id="s3", title="Projects", content=[ProjectCard(id="1", name="Engine")])

        service.update_section("s3", section)

        payload = supabase_client.table.return_value.update.call_args.args[0]
        assert payload["content"] == {"content": [{"id": "1", "name": "Engine", "description": "", "url": ""}]}
        assert payload["is_visible"] is True

    def test_reorder_writes_every_position(self, service, supabase_client):
        _update_chain(supabase_client).return_value.data = [{}]

        service.reorder_sections([("a", 0), ("b", 1)])

        calls = [call.args[0] for call in supabase_client.table.return_value.update.call_args_list]
        assert calls == [{"sort_order": 0}, {"sort_order": 1}]

    def test_reorder_partial_failure_fails_the_batch(self, service, supabase_client):
        _update_chain(supabase_client).side_effect = [
            MagicMock(data=[{}]),
            Exception("row is locked"),
            MagicMock(data=[{}]),
        ]

        with pytest.raises(ReorderError) as excinfo:
            service.reorder_sections([("a", 0), ("b", 1), ("c", 2)])

        assert excinfo.value.failed_ids == ["b"]

    def test_reorder_outage_is_service_unavailable(self, service, supabase_client):
        _update_chain(supabase_client).side_effect = [
            MagicMock(data=[{}]),
            httpx.ConnectError("down"),
            httpx.ConnectError("down"),
            httpx.ConnectError("down"),
        ]

        with pytest.raises(ServiceUnavailableError):
            service.reorder_sections([("a", 0), ("b", 1)])

    def test_get_user_profile_missing_returns_none(self, service, supabase_client):
        _load_chain(supabase_client).return_value.data = []

        assert service.get_user_profile("user-123") is None


class TestRowMapping:
    def test_unknown_section_type_is_skipped(self):
        assert section_from_row({"id": "x", "section_type": "gallery", "content": {}}) is None

    def test_mismatched_content_falls_back_to_default(self):
        section = section_from_row({"id": "x", "section_type": "text", "content": {"content": ["a", "b"]}})

        assert section.content == "Add your content here..."

    def test_section_to_row(self):
        row = section_to_row(TextSection(id="x", title="About", content="Hi", visible=False), "p1", 4)

        assert row == {
            "portfolio_id": "p1",
            "section_type": "text",
            "title": "About",
            "content": {"content": "Hi"},
            "is_visible": False,
            "sort_order": 4,
        }


class TestErrorClassification:
    @pytest.mark.parametrize(
        "exc",
        [httpx.ConnectError("x"), ConnectionError("x"), Exception("TypeError: Failed to fetch")],
    )
    def test_connectivity_failures(self, exc):
        assert isinstance(classify_error(exc), ServiceUnavailableError)

    def test_no_rows_is_not_found(self):
        assert isinstance(classify_error(Exception("PGRST116: no rows"), context="Load"), NotFoundError)

    def test_user_messages(self):
        assert user_message(ServiceUnavailableError()) == SERVICE_UNAVAILABLE_MESSAGE
        assert user_message(ReorderError("x", ["a"])) == "Section order could not be saved. Please try again."
