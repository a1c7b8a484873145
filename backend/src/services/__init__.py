"""Persistence and catalog services for the portfolio builder."""

from .errors import (
    ConfigurationError,
    NotFoundError,
    PortfolioServiceError,
    ReorderError,
    ServiceUnavailableError,
)
from .portfolio_service import PortfolioService

__all__ = [
    "ConfigurationError",
    "NotFoundError",
    "PortfolioService",
    "PortfolioServiceError",
    "ReorderError",
    "ServiceUnavailableError",
]
