"""
Portfolio builder API routes
Create, edit, reorder and publish portfolio documents
"""

import logging
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from api.dependencies import AuthContext, get_auth_context, get_portfolio_service
from api.models.portfolio_models import (
    PortfolioCreate,
    PortfolioUpdate,
    SectionCreate,
    SectionOrderUpdate,
    SectionUpdate,
)
from builder.models import SECTION_CLASSES, Document, DocumentSummary, Section, TemplateRef
from builder.reducer import portfolio_reducer, set_design, set_profile
from builder.sections import create_section, default_content
from builder.validation import validate_for_publish
from config.settings import get_settings
from rendering.renderer import render_html
from services.errors import (
    ConfigurationError,
    NotFoundError,
    PortfolioServiceError,
    ReorderError,
    ServiceUnavailableError,
)
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolios", tags=["Portfolios"])


def raise_for_service_error(exc: PortfolioServiceError) -> NoReturn:
    """Translate a persistence failure into the matching HTTP error."""
    detail: Dict[str, Any] = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ServiceUnavailableError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, ConfigurationError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
        if isinstance(exc, ReorderError):
            detail["failed_ids"] = exc.failed_ids
    raise HTTPException(status_code=status_code, detail=detail) from exc


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "not_found", "message": message},
    )


def _invalid(message: str, errors: Optional[List[Any]] = None) -> HTTPException:
    detail: Dict[str, Any] = {"code": "validation_error", "message": message}
    if errors is not None:
        detail["errors"] = errors
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


def _load_owned(service: PortfolioService, portfolio_id: str, user_id: str) -> Document:
    try:
        document = service.load(portfolio_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    # Another user's portfolio is reported exactly like a missing one.
    if document.owner_id != user_id:
        raise _not_found(f"Portfolio {portfolio_id} not found")
    return document


def _find_section(document: Document, section_id: str) -> Section:
    for section in document.sections:
        if section.id == section_id:
            return section
    raise _not_found(f"Section {section_id} not found")


def _build_section(section_type: str, data: Dict[str, Any]) -> Section:
    try:
        return SECTION_CLASSES[section_type].model_validate(data)
    except ValidationError as exc:
        raise _invalid(
            f"Content does not match a {section_type} section",
            [{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()],
        )


# ============================================================================
# Documents
# ============================================================================

@router.get("", response_model=List[DocumentSummary])
def list_portfolios(
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> List[DocumentSummary]:
    try:
        return service.list_for_owner(auth.user_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)


@router.post("", response_model=Document, status_code=status.HTTP_201_CREATED)
def create_portfolio(
    payload: PortfolioCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Document:
    initial = Document(
        template=TemplateRef(id=payload.template_id) if payload.template_id else TemplateRef(),
        profile=payload.profile or Document().profile,
        design=payload.design or Document().design,
        sections=[create_section(section_type) for section_type in payload.section_types],
    )
    try:
        return service.create(auth.user_id, initial, title=payload.title)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)


@router.get("/{portfolio_id}", response_model=Document)
def get_portfolio(
    portfolio_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Document:
    return _load_owned(service, portfolio_id, auth.user_id)


@router.patch("/{portfolio_id}", response_model=Document)
def update_portfolio(
    portfolio_id: str,
    payload: PortfolioUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Document:
    document = _load_owned(service, portfolio_id, auth.user_id)
    changes = payload.model_dump(exclude_unset=True)

    fields: Dict[str, Any] = {}
    if changes.get("title") is not None:
        fields["title"] = changes["title"]
    if "template_id" in changes:
        fields["template"] = changes["template_id"]
    if changes.get("profile") is not None:
        merged = portfolio_reducer(document, set_profile(changes["profile"]))
        if merged is document:
            raise _invalid("Invalid profile fields")
        fields["profile"] = merged.profile
    if changes.get("design") is not None:
        merged = portfolio_reducer(document, set_design(changes["design"]))
        if merged is document:
            raise _invalid("Invalid design settings")
        fields["design"] = merged.design

    try:
        return service.update(portfolio_id, fields)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)


@router.delete("/{portfolio_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_portfolio(
    portfolio_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Response:
    _load_owned(service, portfolio_id, auth.user_id)
    try:
        service.delete(portfolio_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{portfolio_id}/publish", response_model=Document)
def publish_portfolio(
    portfolio_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Document:
    document = _load_owned(service, portfolio_id, auth.user_id)
    validation = validate_for_publish(document)
    if not validation.valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "code": "validation_error",
                "message": "Please complete all required profile fields before publishing.",
                "field_errors": validation.field_errors,
            },
        )
    try:
        return service.publish(portfolio_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)


@router.get("/{portfolio_id}/preview", response_class=HTMLResponse)
def preview_portfolio(
    portfolio_id: str,
    template: Optional[str] = Query(None, description="Render with another theme instead of the saved one"),
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> HTMLResponse:
    document = _load_owned(service, portfolio_id, auth.user_id)
    return HTMLResponse(render_html(document, template=template, default=get_settings().default_template))


# ============================================================================
# Sections
# ============================================================================

@router.post("/{portfolio_id}/sections", response_model=Section, status_code=status.HTTP_201_CREATED)
def add_section(
    portfolio_id: str,
    payload: SectionCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Section:
    document = _load_owned(service, portfolio_id, auth.user_id)
    template = create_section(payload.type)
    data = template.model_dump()
    data["visible"] = payload.visible
    if payload.title is not None:
        data["title"] = payload.title
    if payload.content is not None:
        data["content"] = payload.content
    section = _build_section(payload.type, data)

    try:
        remote_id = service.create_section(portfolio_id, section, len(document.sections))
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    return section.model_copy(update={"id": remote_id})


@router.patch("/{portfolio_id}/sections/{section_id}", response_model=Section)
def update_section(
    portfolio_id: str,
    section_id: str,
    payload: SectionUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Section:
    document = _load_owned(service, portfolio_id, auth.user_id)
    current = _find_section(document, section_id)
    changes = payload.model_dump(exclude_unset=True)

    section_type = changes.get("type") or current.type
    data = current.model_dump()
    data["type"] = section_type
    if section_type != current.type:
        data["content"] = default_content(section_type)
    for key in ("title", "content", "visible"):
        if changes.get(key) is not None:
            data[key] = changes[key]
    section = _build_section(section_type, data)

    try:
        service.update_section(section_id, section)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    return section


@router.delete("/{portfolio_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_section(
    portfolio_id: str,
    section_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Response:
    document = _load_owned(service, portfolio_id, auth.user_id)
    _find_section(document, section_id)
    try:
        service.delete_section(section_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{portfolio_id}/sections/order", response_model=Document)
def reorder_sections(
    portfolio_id: str,
    payload: SectionOrderUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: PortfolioService = Depends(get_portfolio_service),
) -> Document:
    document = _load_owned(service, portfolio_id, auth.user_id)
    current_ids = [section.id for section in document.sections]
    if sorted(payload.section_ids) != sorted(current_ids) or len(set(payload.section_ids)) != len(current_ids):
        raise _invalid("section_ids must list every section of the portfolio exactly once")

    try:
        service.reorder_sections([(section_id, position) for position, section_id in enumerate(payload.section_ids)])
        return service.load(portfolio_id)
    except PortfolioServiceError as exc:
        logger.error(f"Reordering sections of portfolio {portfolio_id} failed: {exc}")
        raise_for_service_error(exc)
