from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from builder.models import DesignSettings, Profile

SectionType = Literal["text", "list", "cards", "skills", "experience", "education"]


class PortfolioCreate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    template_id: Optional[str] = None
    profile: Optional[Profile] = None
    design: Optional[DesignSettings] = None
    section_types: List[SectionType] = Field(
        default_factory=list,
        description="Sections to seed the new portfolio with, in order",
    )


class PortfolioUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    template_id: Optional[str] = None
    profile: Optional[Dict[str, Any]] = Field(
        None, description="Profile fields to merge over the stored profile"
    )
    design: Optional[Dict[str, Any]] = Field(
        None, description="Design fields to merge over the stored design settings"
    )


class SectionCreate(BaseModel):
    type: SectionType
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[Any] = None
    visible: bool = True


class SectionUpdate(BaseModel):
    type: Optional[SectionType] = None
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[Any] = None
    visible: Optional[bool] = None


class SectionOrderUpdate(BaseModel):
    section_ids: List[str] = Field(..., description="Every section id of the portfolio, in display order")
