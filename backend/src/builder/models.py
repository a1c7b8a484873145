from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DocumentStatus = Literal["draft", "published"]

SECTION_TYPES = ("text", "list", "cards", "skills", "experience", "education")

DEFAULT_TEMPLATE_VALUE = "modern-clean"

FONT_FAMILIES = [
    ("Inter", "Inter (Default)"),
    ("Roboto", "Roboto"),
    ("Open Sans", "Open Sans"),
    ("Lato", "Lato"),
    ("Poppins", "Poppins"),
    ("Montserrat", "Montserrat"),
    ("Source Sans Pro", "Source Sans Pro"),
    ("Nunito", "Nunito"),
]

PRIMARY_COLORS = [
    ("#3b82f6", "Blue (Default)"),
    ("#10b981", "Emerald"),
    ("#8b5cf6", "Purple"),
    ("#f59e0b", "Amber"),
    ("#ef4444", "Red"),
    ("#06b6d4", "Cyan"),
    ("#84cc16", "Lime"),
    ("#f97316", "Orange"),
    ("#ec4899", "Pink"),
    ("#6366f1", "Indigo"),
]

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def template_value_from_name(name: Optional[str]) -> str:
    """Derive a renderer key from a catalog name ("Modern Clean" -> "modern-clean")."""
    if not name:
        return DEFAULT_TEMPLATE_VALUE
    return re.sub(r"\s+", "-", name.strip().lower())


# ---------------------------------------------------------------------------
# Document parts
# ---------------------------------------------------------------------------


class TemplateRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    value: str = DEFAULT_TEMPLATE_VALUE
    label: str = "Modern Clean"
    description: str = "Professional and minimalist design with clean typography"
    category: Optional[str] = None
    is_premium: bool = False

    @classmethod
    def from_catalog_row(cls, row: dict) -> "TemplateRef":
        name = row.get("name") or ""
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            value=template_value_from_name(name),
            label=name or "Modern Clean",
            description=row.get("description") or "",
            category=row.get("category"),
            is_premium=bool(row.get("is_premium")),
        )


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    title: str = ""
    bio: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    website: str = ""
    linkedin: str = ""
    github: str = ""


class DesignSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    font_family: str = Field("Inter", alias="fontFamily")
    primary_color: str = Field("#3b82f6", alias="primaryColor")

    @field_validator("primary_color")
    @classmethod
    def _check_hex(cls, value: str) -> str:
        if not _HEX_COLOR.match(value):
            raise ValueError(f"primaryColor must be a hex colour, got {value!r}")
        return value


# ---------------------------------------------------------------------------
# Section content records
# ---------------------------------------------------------------------------


class ProjectCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    url: str = ""


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    company: str = ""
    position: str = ""
    duration: str = ""
    description: str = ""


class EducationEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    institution: str = ""
    degree: str = ""
    duration: str = ""
    gpa: str = ""


# ---------------------------------------------------------------------------
# Sections: one variant per content shape, discriminated by ``type``
# ---------------------------------------------------------------------------


class _SectionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    visible: bool = True


class TextSection(_SectionBase):
    type: Literal["text"] = "text"
    content: str = ""


class ListSection(_SectionBase):
    type: Literal["list"] = "list"
    content: List[str] = Field(default_factory=list)


class SkillsSection(_SectionBase):
    type: Literal["skills"] = "skills"
    content: List[str] = Field(default_factory=list)


class CardsSection(_SectionBase):
    type: Literal["cards"] = "cards"
    content: List[ProjectCard] = Field(default_factory=list)


class ExperienceSection(_SectionBase):
    type: Literal["experience"] = "experience"
    content: List[ExperienceEntry] = Field(default_factory=list)


class EducationSection(_SectionBase):
    type: Literal["education"] = "education"
    content: List[EducationEntry] = Field(default_factory=list)


Section = Annotated[
    Union[TextSection, ListSection, SkillsSection, CardsSection, ExperienceSection, EducationSection],
    Field(discriminator="type"),
]

SECTION_CLASSES = {
    "text": TextSection,
    "list": ListSection,
    "skills": SkillsSection,
    "cards": CardsSection,
    "experience": ExperienceSection,
    "education": EducationSection,
}


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class Document(BaseModel):
    """One user's portfolio: profile, ordered sections, design and template."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    owner_id: Optional[str] = None
    template: TemplateRef = Field(default_factory=TemplateRef)
    profile: Profile = Field(default_factory=Profile)
    sections: List[Section] = Field(default_factory=list)
    design: DesignSettings = Field(default_factory=DesignSettings)
    status: DocumentStatus = "draft"
    slug: Optional[str] = None
    title: Optional[str] = None
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("sections")
    @classmethod
    def _unique_section_ids(cls, sections):
        seen = set()
        for section in sections:
            if section.id in seen:
                raise ValueError(f"Duplicate section id: {section.id}")
            seen.add(section.id)
        return sections

    @property
    def is_published(self) -> bool:
        return self.status == "published"


class DocumentSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: Optional[str] = None
    slug: Optional[str] = None
    status: DocumentStatus = "draft"
    updated_at: Optional[datetime] = None
    template_name: Optional[str] = None


def new_document() -> Document:
    """The empty document a builder session starts from."""
    return Document()
