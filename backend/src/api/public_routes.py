"""
Public portfolio pages
Serves published portfolios by slug without authentication
"""

import logging
from html import escape

from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse

from api.dependencies import get_portfolio_service
from config.settings import get_settings
from rendering.renderer import render_page
from services.errors import NotFoundError, PortfolioServiceError, ServiceUnavailableError, user_message
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Public"])


def _error_page(heading: str, message: str, status_code: int) -> HTMLResponse:
    body = (
        "<!DOCTYPE html>"
        f'<html lang="en"><head><meta charset="utf-8"><title>{escape(heading)}</title></head>'
        f"<body><h1>{escape(heading)}</h1><p>{escape(message)}</p></body></html>"
    )
    return HTMLResponse(body, status_code=status_code)


@router.get("/p/{slug}", response_class=HTMLResponse)
def public_portfolio(
    slug: str,
    service: PortfolioService = Depends(get_portfolio_service),
) -> HTMLResponse:
    try:
        document = service.load_by_public_slug(slug)
    except NotFoundError:
        return _error_page(
            "Portfolio not found",
            "This portfolio does not exist or has not been published.",
            status.HTTP_404_NOT_FOUND,
        )
    except ServiceUnavailableError as exc:
        return _error_page("Service unavailable", user_message(exc), status.HTTP_503_SERVICE_UNAVAILABLE)
    except PortfolioServiceError as exc:
        logger.error(f"Failed to serve public portfolio {slug}: {exc}")
        return _error_page("Something went wrong", user_message(exc), status.HTTP_502_BAD_GATEWAY)
    return HTMLResponse(render_page(document, default=get_settings().default_template))
