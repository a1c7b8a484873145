"""
Template gallery API routes
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_portfolio_service
from api.portfolio_routes import raise_for_service_error
from builder.models import FONT_FAMILIES, PRIMARY_COLORS
from rendering.renderer import available_templates
from services.errors import PortfolioServiceError
from services.portfolio_service import PortfolioService
from services.template_catalog import SORT_OPTIONS, TEMPLATE_CATEGORIES, filter_templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["Templates"])


@router.get("", response_model=List[Dict[str, Any]])
def list_templates(
    category: str = Query("all"),
    search: Optional[str] = Query(None, max_length=200),
    sort: str = Query("popular"),
    service: PortfolioService = Depends(get_portfolio_service),
) -> List[Dict[str, Any]]:
    if category not in TEMPLATE_CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "validation_error", "message": f"Unknown category: {category}"},
        )
    if sort not in SORT_OPTIONS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "validation_error", "message": f"Unknown sort option: {sort}"},
        )

    try:
        templates = service.list_templates()
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
    return filter_templates(templates, category=category, search=search, sort_by=sort)


@router.get("/options")
def design_options() -> Dict[str, Any]:
    """Themes the renderer knows plus the font and colour choices."""
    return {
        "themes": available_templates(),
        "fonts": [{"value": value, "label": label} for value, label in FONT_FAMILIES],
        "colors": [{"value": value, "label": label} for value, label in PRIMARY_COLORS],
        "categories": list(TEMPLATE_CATEGORIES),
        "sort_options": list(SORT_OPTIONS),
    }


@router.get("/{template_id}", response_model=Dict[str, Any])
def get_template(
    template_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
) -> Dict[str, Any]:
    try:
        return service.get_template(template_id)
    except PortfolioServiceError as exc:
        raise_for_service_error(exc)
