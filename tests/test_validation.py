"""
Tests for publish validation.
"""

import pytest

from builder.models import Document, Profile
from builder.validation import validate_for_publish


def _document(**profile):
    return Document(profile=Profile(**profile))


def test_complete_profile_is_valid(sample_document):
    result = validate_for_publish(sample_document)

    assert result.valid is True
    assert result.field_errors == {}


def test_empty_profile_reports_every_required_field():
    result = validate_for_publish(Document())

    assert result.valid is False
    assert result.field_errors == {
        "name": "Name is required",
        "title": "Professional title is required",
        "bio": "Bio is required",
    }


def test_whitespace_only_counts_as_missing():
    result = validate_for_publish(_document(name="   ", title="Dev", bio="Bio"))

    assert result.field_errors == {"name": "Name is required"}


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@c.com", "@example.com"])
def test_malformed_email_is_rejected(email):
    result = validate_for_publish(_document(name="A", title="B", bio="C", email=email))

    assert result.field_errors == {"email": "Please enter a valid email address"}


def test_email_is_optional():
    assert validate_for_publish(_document(name="A", title="B", bio="C", email="")).valid is True
