"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Define paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
BACKEND_SRC = PROJECT_ROOT / "backend" / "src"

# Ensure the backend src directory is on sys.path so imports resolve.
if str(BACKEND_SRC) not in sys.path:
    sys.path.insert(0, str(BACKEND_SRC))

# Set required env vars BEFORE importing so config checks pass.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-service-role-key")

from builder.models import (  # noqa: E402
    CardsSection,
    Document,
    ListSection,
    ProjectCard,
    Profile,
    SkillsSection,
    TextSection,
)
from builder.sections import SectionIdAllocator  # noqa: E402
from config.settings import BuilderSettings  # noqa: E402


@pytest.fixture()
def settings() -> BuilderSettings:
    """Settings with retries but no real backoff sleeping."""
    return BuilderSettings(
        supabase_url="https://test.supabase.co",
        supabase_key="test-service-role-key",
        autosave_seconds=0,
        gateway_retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture()
def allocator() -> SectionIdAllocator:
    """Allocator on a frozen clock so ids are predictable."""
    return SectionIdAllocator(clock=lambda: 1_700_000_000_000_000_000)


@pytest.fixture()
def supabase_client() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def complete_profile() -> Profile:
    return Profile(
        name="Ada Lovelace",
        title="Analyst",
        bio="Writes programs for engines that do not exist yet.",
        email="ada@example.com",
        github="https://github.com/ada",
    )


@pytest.fixture()
def sample_document(complete_profile) -> Document:
    return Document(
        id="portfolio-1",
        owner_id="user-123",
        profile=complete_profile,
        sections=[
            TextSection(id="s1", title="About Me", content="Hello there"),
            SkillsSection(id="s2", title="Skills", content=["Python", "SQL"]),
            ListSection(id="s3", title="Hidden", content=["secret item"], visible=False),
            CardsSection(
                id="s4",
                title="Projects",
                content=[
                    ProjectCard(id="c1", name="Engine", description="Analytical", url="https://example.com/engine"),
                    ProjectCard(id="c2", name="Notes", description="No link here"),
                ],
            ),
        ],
        slug="ada-lovelace",
    )
