from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict

from .models import Document

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class PublishValidation:
    valid: bool
    field_errors: Dict[str, str] = field(default_factory=dict)


def validate_for_publish(document: Document) -> PublishValidation:
    """Check the profile fields a portfolio needs before it can go live."""
    profile = document.profile
    errors: Dict[str, str] = {}

    if not profile.name.strip():
        errors["name"] = "Name is required"
    if not profile.title.strip():
        errors["title"] = "Professional title is required"
    if not profile.bio.strip():
        errors["bio"] = "Bio is required"
    if profile.email and not EMAIL_PATTERN.match(profile.email):
        errors["email"] = "Please enter a valid email address"

    return PublishValidation(valid=not errors, field_errors=errors)
