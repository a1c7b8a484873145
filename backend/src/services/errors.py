"""Failure taxonomy for portfolio persistence calls."""

from __future__ import annotations

import socket
from typing import Optional, Sequence

import httpx
import requests

SERVICE_UNAVAILABLE_MESSAGE = (
    "Cannot connect to database. Your Supabase project may be paused or deleted."
)

# Substrings seen in connectivity failures surfaced as plain exceptions by the
# Supabase client stack.
_CONNECTIVITY_MARKERS = (
    "failed to fetch",
    "networkerror",
    "authretryablefetcherror",
    "name or service not known",
    "nodename nor servname",
    "connection refused",
    "connection reset",
    "temporary failure in name resolution",
)

_NO_ROWS_CODE = "PGRST116"


class PortfolioServiceError(Exception):
    """Raised when a portfolio persistence operation fails."""

    code = "portfolio_error"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code:
            self.code = code


class ConfigurationError(PortfolioServiceError):
    code = "configuration_error"


class NotFoundError(PortfolioServiceError):
    code = "not_found"


class ServiceUnavailableError(PortfolioServiceError):
    code = "service_unavailable"

    def __init__(self, message: str = SERVICE_UNAVAILABLE_MESSAGE, code: Optional[str] = None) -> None:
        super().__init__(message, code)


class ReorderError(PortfolioServiceError):
    """A reorder batch failed; the persisted order is no longer trustworthy."""

    code = "reorder_failed"

    def __init__(self, message: str, failed_ids: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.failed_ids = list(failed_ids)


def is_connectivity_failure(exc: BaseException) -> bool:
    if isinstance(
        exc,
        (httpx.TransportError, requests.ConnectionError, requests.Timeout, ConnectionError, socket.gaierror, socket.timeout),
    ):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _CONNECTIVITY_MARKERS)


def _is_no_rows(exc: BaseException) -> bool:
    code = getattr(exc, "code", None)
    if code == _NO_ROWS_CODE:
        return True
    return _NO_ROWS_CODE in str(exc)


def classify_error(exc: BaseException, *, context: str = "") -> PortfolioServiceError:
    """Translate any failure into the persistence taxonomy."""
    if isinstance(exc, PortfolioServiceError):
        return exc
    if is_connectivity_failure(exc):
        return ServiceUnavailableError()
    if _is_no_rows(exc):
        return NotFoundError(f"{context or 'Record'} not found")
    message = str(exc) or exc.__class__.__name__
    if context:
        message = f"{context}: {message}"
    return PortfolioServiceError(message)


def user_message(exc: BaseException) -> str:
    if isinstance(exc, ServiceUnavailableError):
        return str(exc)
    if isinstance(exc, NotFoundError):
        return "The requested portfolio could not be found."
    if isinstance(exc, ReorderError):
        return "Section order could not be saved. Please try again."
    return str(exc) or "An unexpected error occurred."
