"""Supabase persistence for portfolio documents, their sections and templates."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError
from supabase import Client, create_client

from builder.models import (
    SECTION_CLASSES,
    DesignSettings,
    Document,
    DocumentSummary,
    Profile,
    Section,
    TemplateRef,
)
from builder.sections import default_content
from config.settings import BuilderSettings, get_settings

from .errors import (
    ConfigurationError,
    NotFoundError,
    PortfolioServiceError,
    ReorderError,
    ServiceUnavailableError,
    classify_error,
)

logger = logging.getLogger(__name__)

PORTFOLIOS_TABLE = "portfolios"
SECTIONS_TABLE = "portfolio_sections"
TEMPLATES_TABLE = "portfolio_templates"
USER_PROFILES_TABLE = "user_profiles"

DOCUMENT_SELECT = "*, template:portfolio_templates(*), sections:portfolio_sections(*)"
SUMMARY_SELECT = "id, title, slug, status, updated_at, template:portfolio_templates(name)"

# Keys that older rows used to wrap section content in.
_LEGACY_CONTENT_KEYS = ("content", "skills", "projects", "items")


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _clean_mapping(data: Any) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        return {}
    return {key: value for key, value in data.items() if value is not None}


def _unwrap_content(raw: Any) -> Any:
    if isinstance(raw, Mapping):
        for key in _LEGACY_CONTENT_KEYS:
            if key in raw:
                return raw[key]
    return raw


def section_from_row(row: Mapping[str, Any]) -> Optional[Section]:
    section_type = row.get("section_type")
    section_cls = SECTION_CLASSES.get(section_type)
    if section_cls is None:
        logger.warning(f"Skipping section {row.get('id')} with unknown type {section_type!r}")
        return None

    content = _unwrap_content(row.get("content"))
    if isinstance(content, list):
        content = [
            {"id": str(index + 1), **item} if isinstance(item, Mapping) and "id" not in item else item
            for index, item in enumerate(content)
        ]

    fields = {
        "id": str(row["id"]),
        "title": row.get("title") or "",
        "visible": row.get("is_visible", True) is not False,
    }
    try:
        return section_cls.model_validate({**fields, "content": content})
    except ValidationError as exc:
        logger.warning(f"Section {fields['id']} content does not match type {section_type}, using default: {exc}")
        return section_cls.model_validate({**fields, "content": default_content(section_type)})


def section_content_for_row(section: Section) -> Dict[str, Any]:
    content = section.content
    if isinstance(content, list):
        content = [item.model_dump() if isinstance(item, BaseModel) else item for item in content]
    return {"content": content}


def section_to_row(section: Section, portfolio_id: str, sort_order: int) -> Dict[str, Any]:
    return {
        "portfolio_id": portfolio_id,
        "section_type": section.type,
        "title": section.title,
        "content": section_content_for_row(section),
        "is_visible": section.visible,
        "sort_order": sort_order,
    }


def _template_from_row(row: Mapping[str, Any]) -> TemplateRef:
    template_row = row.get("template")
    if isinstance(template_row, Mapping) and template_row:
        return TemplateRef.from_catalog_row(template_row)
    template_id = row.get("template_id")
    return TemplateRef(id=str(template_id)) if template_id else TemplateRef()


def _design_from_row(data: Any) -> DesignSettings:
    try:
        return DesignSettings.model_validate(_clean_mapping(data))
    except ValidationError as exc:
        logger.warning(f"Stored design settings are invalid, using defaults: {exc}")
        return DesignSettings()


def document_from_row(row: Mapping[str, Any]) -> Document:
    section_rows = sorted(
        row.get("sections") or [],
        key=lambda item: item.get("sort_order") if item.get("sort_order") is not None else float("inf"),
    )
    sections = [section for section in map(section_from_row, section_rows) if section is not None]
    return Document(
        id=str(row["id"]),
        owner_id=str(row["user_id"]) if row.get("user_id") else None,
        template=_template_from_row(row),
        profile=Profile.model_validate(_clean_mapping(row.get("profile_data"))),
        sections=sections,
        design=_design_from_row(row.get("design_settings")),
        status=row.get("status") or "draft",
        slug=row.get("slug"),
        title=row.get("title"),
        published_at=row.get("published_at"),
        updated_at=row.get("updated_at"),
    )


def summary_from_row(row: Mapping[str, Any]) -> DocumentSummary:
    template_row = row.get("template")
    return DocumentSummary(
        id=str(row["id"]),
        title=row.get("title"),
        slug=row.get("slug"),
        status=row.get("status") or "draft",
        updated_at=row.get("updated_at"),
        template_name=template_row.get("name") if isinstance(template_row, Mapping) else None,
    )


def _document_fields_to_row(fields: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if "profile" in fields:
        profile = fields["profile"]
        payload["profile_data"] = profile.model_dump() if isinstance(profile, BaseModel) else dict(profile)
    if "design" in fields:
        design = fields["design"]
        if not isinstance(design, BaseModel):
            design = DesignSettings.model_validate(design)
        payload["design_settings"] = design.model_dump(by_alias=True)
    if "template" in fields:
        template = fields["template"]
        if isinstance(template, TemplateRef):
            payload["template_id"] = template.id
        elif isinstance(template, Mapping):
            payload["template_id"] = template.get("id")
        else:
            payload["template_id"] = template
    if "title" in fields:
        payload["title"] = fields["title"]
    return payload


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class PortfolioService:
    """Load, create, update and publish portfolio documents in Supabase.

    Every failure leaves this class as a ``PortfolioServiceError`` subclass:
    ``ServiceUnavailableError`` when Supabase cannot be reached,
    ``NotFoundError`` for missing rows. Calls that are safe to repeat are
    retried on unavailability before giving up.
    """

    UPDATABLE_FIELDS = frozenset({"profile", "design", "template", "title"})

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        *,
        client: Optional[Client] = None,
        settings: Optional[BuilderSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._sleep = sleep

        if client is not None:
            self.client = client
            return

        self.supabase_url = supabase_url or self.settings.supabase_url
        self.supabase_key = supabase_key or self.settings.supabase_key
        if not self.supabase_url or not self.supabase_key:
            raise ConfigurationError("Supabase credentials not configured.")

        try:
            self.client = create_client(self.supabase_url, self.supabase_key)
        except Exception as exc:
            raise ConfigurationError(f"Failed to initialize Supabase client: {exc}") from exc

    def _call(self, operation: str, func: Callable[[], Any], *, retry: bool = True) -> Any:
        attempts = 1 + (self.settings.gateway_retries if retry else 0)
        for attempt in range(1, attempts + 1):
            try:
                return func()
            except Exception as exc:
                error = classify_error(exc, context=f"Failed to {operation}")
                if isinstance(error, ServiceUnavailableError) and attempt < attempts:
                    logger.warning(f"Supabase unreachable during {operation} (attempt {attempt}/{attempts}), retrying")
                    self._sleep(self.settings.retry_backoff_seconds * attempt)
                    continue
                if not isinstance(error, NotFoundError):
                    logger.error(f"Failed to {operation}: {exc}")
                if error is exc:
                    raise
                raise error from exc
        raise PortfolioServiceError(f"Failed to {operation}")  # pragma: no cover

    # --- Documents -------------------------------------------------------

    def list_for_owner(self, owner_id: str) -> List[DocumentSummary]:
        """Summaries of the owner's portfolios, most recently updated first."""
        response = self._call(
            f"list portfolios for user {owner_id}",
            lambda: (
                self.client.table(PORTFOLIOS_TABLE)
                .select(SUMMARY_SELECT)
                .eq("user_id", owner_id)
                .order("updated_at", desc=True)
                .execute()
            ),
        )
        return [summary_from_row(row) for row in response.data or []]

    def load(self, document_id: str) -> Document:
        response = self._call(
            f"load portfolio {document_id}",
            lambda: (
                self.client.table(PORTFOLIOS_TABLE)
                .select(DOCUMENT_SELECT)
                .eq("id", document_id)
                .limit(1)
                .execute()
            ),
        )
        if not response.data:
            raise NotFoundError(f"Portfolio {document_id} not found")
        return document_from_row(response.data[0])

    def load_by_public_slug(self, slug: str) -> Document:
        """Fetch a published portfolio by slug; drafts are reported as missing."""
        response = self._call(
            f"load portfolio with slug {slug}",
            lambda: (
                self.client.table(PORTFOLIOS_TABLE)
                .select(DOCUMENT_SELECT)
                .eq("slug", slug)
                .eq("status", "published")
                .limit(1)
                .execute()
            ),
        )
        if not response.data:
            raise NotFoundError(f"No published portfolio at {slug}")
        return document_from_row(response.data[0])

    def create(self, owner_id: str, initial: Document, *, title: Optional[str] = None) -> Document:
        title = title or initial.title or "My Portfolio"
        slug_response = self._call(
            f"generate a slug for user {owner_id}",
            lambda: self.client.rpc(
                "generate_portfolio_slug",
                {"title_text": title, "user_uuid": owner_id},
            ).execute(),
        )
        slug = slug_response.data
        if not slug:
            raise PortfolioServiceError("Slug generation returned no value")

        row = {
            "user_id": owner_id,
            "title": title,
            "slug": slug,
            "status": "draft",
            **_document_fields_to_row(
                {"profile": initial.profile, "design": initial.design, "template": initial.template}
            ),
        }
        response = self._call(
            f"create portfolio for user {owner_id}",
            lambda: self.client.table(PORTFOLIOS_TABLE).insert(row).execute(),
            retry=False,
        )
        if not response.data:
            raise PortfolioServiceError("No data returned after creating portfolio")
        document_id = str(response.data[0]["id"])

        for position, section in enumerate(initial.sections):
            self.create_section(document_id, section, position)

        logger.info(f"Created portfolio {document_id} ({slug}) for user {owner_id}")
        return self.load(document_id)

    def update(self, document_id: str, fields: Mapping[str, Any]) -> Document:
        """Overwrite profile, design, template reference and/or title.

        Section content is written through the section operations instead.
        """
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise PortfolioServiceError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        payload = _document_fields_to_row(fields)
        if not payload:
            return self.load(document_id)

        response = self._call(
            f"update portfolio {document_id}",
            lambda: self.client.table(PORTFOLIOS_TABLE).update(payload).eq("id", document_id).execute(),
        )
        if not response.data:
            raise NotFoundError(f"Portfolio {document_id} not found")
        return self.load(document_id)

    def publish(self, document_id: str) -> Document:
        payload = {
            "status": "published",
            "published_at": datetime.now(timezone.utc).isoformat(),
        }
        response = self._call(
            f"publish portfolio {document_id}",
            lambda: self.client.table(PORTFOLIOS_TABLE).update(payload).eq("id", document_id).execute(),
        )
        if not response.data:
            raise NotFoundError(f"Portfolio {document_id} not found")
        logger.info(f"Published portfolio {document_id}")
        return self.load(document_id)

    def delete(self, document_id: str) -> bool:
        response = self._call(
            f"delete portfolio {document_id}",
            lambda: self.client.table(PORTFOLIOS_TABLE).delete().eq("id", document_id).execute(),
        )
        return bool(response.data)

    # --- Sections ----------------------------------------------------------

    def create_section(self, document_id: str, section: Section, sort_order: int) -> str:
        """Insert a section row and return the id the store assigned."""
        row = section_to_row(section, document_id, sort_order)
        response = self._call(
            f"create section in portfolio {document_id}",
            lambda: self.client.table(SECTIONS_TABLE).insert(row).execute(),
            retry=False,
        )
        if not response.data:
            raise PortfolioServiceError("No data returned after creating section")
        return str(response.data[0]["id"])

    def update_section(self, section_id: str, section: Section) -> None:
        payload = {
            "section_type": section.type,
            "title": section.title,
            "content": section_content_for_row(section),
            "is_visible": section.visible,
        }
        response = self._call(
            f"update section {section_id}",
            lambda: self.client.table(SECTIONS_TABLE).update(payload).eq("id", section_id).execute(),
        )
        if not response.data:
            raise NotFoundError(f"Section {section_id} not found")

    def delete_section(self, section_id: str) -> None:
        self._call(
            f"delete section {section_id}",
            lambda: self.client.table(SECTIONS_TABLE).delete().eq("id", section_id).execute(),
        )

    def reorder_sections(self, updates: Sequence[Tuple[str, int]]) -> None:
        """Write ``sort_order`` for each ``(section_id, position)`` pair.

        There is no transaction: every row is written independently and any
        failure fails the whole batch, even though earlier rows may already
        carry their new position.
        """
        failed: List[str] = []
        unavailable = False
        for section_id, sort_order in updates:
            try:
                self._call(
                    f"reorder section {section_id}",
                    lambda: (
                        self.client.table(SECTIONS_TABLE)
                        .update({"sort_order": sort_order})
                        .eq("id", section_id)
                        .execute()
                    ),
                )
            except ServiceUnavailableError:
                unavailable = True
                failed.append(section_id)
            except PortfolioServiceError:
                failed.append(section_id)

        if unavailable:
            raise ServiceUnavailableError()
        if failed:
            raise ReorderError(f"Failed to reorder {len(failed)} of {len(updates)} sections", failed)

    # --- Profiles and templates --------------------------------------------

    def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = self._call(
            f"load profile for user {user_id}",
            lambda: self.client.table(USER_PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute(),
        )
        return response.data[0] if response.data else None

    def list_templates(self) -> List[Dict[str, Any]]:
        response = self._call(
            "list templates",
            lambda: self.client.table(TEMPLATES_TABLE).select("*").order("created_at", desc=True).execute(),
        )
        return list(response.data or [])

    def get_template(self, template_id: str) -> Dict[str, Any]:
        response = self._call(
            f"load template {template_id}",
            lambda: self.client.table(TEMPLATES_TABLE).select("*").eq("id", template_id).limit(1).execute(),
        )
        if not response.data:
            raise NotFoundError(f"Template {template_id} not found")
        return response.data[0]
