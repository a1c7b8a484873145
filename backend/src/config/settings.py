"""Environment-backed settings for the portfolio builder backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "modern-clean"
DEFAULT_AUTOSAVE_SECONDS = 30.0
DEFAULT_GATEWAY_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default
    if value < 0:
        logger.warning(f"Ignoring negative value for {name}: {raw!r}")
        return default
    return value


def resolve_supabase_key() -> Optional[str]:
    return (
        os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        or os.getenv("SUPABASE_KEY")
        or os.getenv("SUPABASE_ANON_KEY")
    )


@dataclass(frozen=True)
class BuilderSettings:
    """Runtime configuration shared by the gateway, session and API layers."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    autosave_seconds: float = DEFAULT_AUTOSAVE_SECONDS
    gateway_retries: int = DEFAULT_GATEWAY_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    default_template: str = DEFAULT_TEMPLATE
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BuilderSettings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=resolve_supabase_key(),
            autosave_seconds=_env_number("PORTFOLIO_AUTOSAVE_SECONDS", DEFAULT_AUTOSAVE_SECONDS, float),
            gateway_retries=_env_number("PORTFOLIO_GATEWAY_RETRIES", DEFAULT_GATEWAY_RETRIES, int),
            retry_backoff_seconds=_env_number(
                "PORTFOLIO_RETRY_BACKOFF_SECONDS", DEFAULT_RETRY_BACKOFF_SECONDS, float
            ),
            default_template=os.getenv("PORTFOLIO_DEFAULT_TEMPLATE") or DEFAULT_TEMPLATE,
            log_level=(os.getenv("PORTFOLIO_LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def autosave_enabled(self) -> bool:
        return self.autosave_seconds > 0


@lru_cache(maxsize=1)
def get_settings() -> BuilderSettings:
    return BuilderSettings.from_env()
