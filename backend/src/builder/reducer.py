"""Single entry point for every edit applied to a portfolio document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import BaseModel

from .models import Document

SET_TEMPLATE = "SET_TEMPLATE"
SET_PROFILE = "SET_PROFILE"
SET_SECTIONS = "SET_SECTIONS"
SET_DESIGN = "SET_DESIGN"
LOAD_DOCUMENT = "LOAD_DOCUMENT"
RESET_DOCUMENT = "RESET_DOCUMENT"

# Top-level document field written by each SET_* action.
_FIELD_ACTIONS = {
    SET_TEMPLATE: "template",
    SET_PROFILE: "profile",
    SET_DESIGN: "design",
}


@dataclass(frozen=True)
class Action:
    type: str
    payload: Any = None


def set_template(template: Any) -> Action:
    return Action(SET_TEMPLATE, template)


def set_profile(profile: Any) -> Action:
    return Action(SET_PROFILE, profile)


def set_sections(sections: Any) -> Action:
    return Action(SET_SECTIONS, list(sections))


def set_design(design: Any) -> Action:
    return Action(SET_DESIGN, design)


def load_document(document: Document) -> Action:
    return Action(LOAD_DOCUMENT, document)


def reset_document(document: Document) -> Action:
    return Action(RESET_DOCUMENT, document)


def _merge(current: BaseModel, payload: Any) -> BaseModel:
    if isinstance(payload, BaseModel):
        return payload if isinstance(payload, type(current)) else current
    if isinstance(payload, Mapping):
        fields = type(current).model_fields
        merged = current.model_dump(by_alias=True)
        for key, value in payload.items():
            info = fields.get(key)
            merged[info.alias if info is not None and info.alias else key] = value
        return type(current).model_validate(merged)
    return current


def portfolio_reducer(state: Document, action: Action) -> Document:
    """Return the document that results from applying ``action`` to ``state``.

    Pure: no I/O and no rejection. Unknown action types, and payloads of the
    wrong kind, hand back ``state`` itself.
    """
    action_type = getattr(action, "type", None)

    if action_type in (LOAD_DOCUMENT, RESET_DOCUMENT):
        payload = action.payload
        return payload if isinstance(payload, Document) else state

    if action_type == SET_SECTIONS:
        if action.payload is None:
            return state
        try:
            return Document.model_validate({**state.model_dump(), "sections": list(action.payload)})
        except (TypeError, ValueError):
            return state

    if action_type in _FIELD_ACTIONS:
        field_name = _FIELD_ACTIONS[action_type]
        current = getattr(state, field_name)
        try:
            updated = _merge(current, action.payload)
        except ValueError:
            # Invalid partial payloads are surfaced by the editor, not here.
            return state
        if updated is current:
            return state
        return state.model_copy(update={field_name: updated})

    return state
