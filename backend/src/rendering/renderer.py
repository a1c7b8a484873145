"""Turn a portfolio document into a presentational tree for a visual theme.

Rendering is a pure projection: the same document, design and template key
always produce an equal tree. Hidden sections are dropped, everything else is
rendered in document order through a per-type dispatch that every theme shares.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from html import escape
from typing import Callable, Dict, List, Optional

from builder.models import (
    DEFAULT_TEMPLATE_VALUE,
    DesignSettings,
    Document,
    EducationEntry,
    ExperienceEntry,
    ProjectCard,
    Section,
)

from .nodes import Node, el, to_html

NAME_PLACEHOLDER = "Your Name"
TITLE_PLACEHOLDER = "Your Professional Title"
CARD_LINK_TEXT = "View Project"


class PortfolioTemplate(ABC):
    """Base theme. Subclasses style the page; section dispatch lives here."""

    key = ""
    label = ""
    main_class = "sections"
    card_class = "card"

    def render(self, document: Document, design: DesignSettings) -> Node:
        sections = [section for section in document.sections if section.visible]
        return el(
            "div",
            self.header(document, design),
            el("main", *(self.section(section, design) for section in sections), class_=self.main_class),
            class_=f"portfolio template-{self.key}",
            style=f"font-family: {design.font_family}; --primary-color: {design.primary_color}",
            data_template=self.key,
            data_template_label=document.template.label,
        )

    @abstractmethod
    def header(self, document: Document, design: DesignSettings) -> Node:
        """The profile block shown above the sections."""

    def section(self, section: Section, design: DesignSettings) -> Node:
        renderers: Dict[str, Callable[[Section, DesignSettings], Optional[Node]]] = {
            "text": self.text_section,
            "list": self.list_section,
            "skills": self.skills_section,
            "cards": self.cards_section,
            "experience": self.experience_section,
            "education": self.education_section,
        }
        body = renderers[section.type](section, design)
        return el(
            "section",
            el("h2", section.title),
            body,
            class_=f"section section-{section.type}",
            data_section_id=section.id,
        )

    def text_section(self, section: Section, design: DesignSettings) -> Node:
        return el("p", section.content, class_="section-text")

    def list_section(self, section: Section, design: DesignSettings) -> Node:
        return el(
            "ul",
            *(el("li", item, style=f"--marker-color: {design.primary_color}") for item in section.content),
            class_="section-list",
        )

    def skills_section(self, section: Section, design: DesignSettings) -> Node:
        return el(
            "div",
            *(self.skill_tag(skill, design) for skill in section.content),
            class_="skill-tags",
        )

    def skill_tag(self, skill: str, design: DesignSettings) -> Node:
        return el("span", skill, class_="skill-tag", style=f"border-color: {design.primary_color}; color: {design.primary_color}")

    def cards_section(self, section: Section, design: DesignSettings) -> Node:
        return el("div", *(self.card(card, design) for card in section.content), class_="card-grid")

    def card(self, card: ProjectCard, design: DesignSettings) -> Node:
        link = None
        if card.url:
            link = el(
                "a",
                CARD_LINK_TEXT,
                href=card.url,
                target="_blank",
                rel="noopener noreferrer",
                style=f"color: {design.primary_color}",
            )
        return el("article", el("h3", card.name), el("p", card.description), link, class_=self.card_class)

    def experience_section(self, section: Section, design: DesignSettings) -> Node:
        return el("div", *(self.experience_entry(entry) for entry in section.content), class_="record-list")

    def experience_entry(self, entry: ExperienceEntry) -> Node:
        heading = " at ".join(part for part in (entry.position, entry.company) if part)
        return el(
            "article",
            el("h3", heading),
            el("p", entry.duration, class_="record-duration") if entry.duration else None,
            el("p", entry.description) if entry.description else None,
            class_="record",
        )

    def education_section(self, section: Section, design: DesignSettings) -> Node:
        return el("div", *(self.education_entry(entry) for entry in section.content), class_="record-list")

    def education_entry(self, entry: EducationEntry) -> Node:
        return el(
            "article",
            el("h3", entry.degree),
            el("p", entry.institution),
            el("p", entry.duration, class_="record-duration") if entry.duration else None,
            el("p", f"GPA: {entry.gpa}") if entry.gpa else None,
            class_="record",
        )


class ModernCleanTemplate(PortfolioTemplate):
    """Full-width header with contact details and social links."""

    key = "modern-clean"
    label = "Modern Clean"

    def header(self, document: Document, design: DesignSettings) -> Node:
        profile = document.profile
        contacts = [
            el("span", value, class_=f"contact-{kind}")
            for kind, value in (("email", profile.email), ("phone", profile.phone), ("location", profile.location))
            if value
        ]
        links = [
            el("a", label, href=url, target="_blank", rel="noopener noreferrer", class_="social-link")
            for label, url in (("Website", profile.website), ("LinkedIn", profile.linkedin), ("GitHub", profile.github))
            if url
        ]
        return el(
            "header",
            el("h1", profile.name or NAME_PLACEHOLDER),
            el("p", profile.title or TITLE_PLACEHOLDER, class_="headline"),
            el("p", profile.bio, class_="bio") if profile.bio else None,
            el("div", *contacts, class_="contact") if contacts else None,
            el("div", *links, class_="social-links") if links else None,
            class_="header-full",
        )


class MinimalistTemplate(PortfolioTemplate):
    """Centered, typography-led layout without contact chrome."""

    key = "minimalist"
    label = "Minimalist"
    main_class = "sections sections-centered"
    card_class = "card card-centered"

    def header(self, document: Document, design: DesignSettings) -> Node:
        profile = document.profile
        return el(
            "header",
            el("h1", profile.name or NAME_PLACEHOLDER),
            el("p", profile.title or TITLE_PLACEHOLDER, class_="headline"),
            el("p", profile.bio, class_="bio") if profile.bio else None,
            class_="header-centered",
        )


TEMPLATES: Dict[str, PortfolioTemplate] = {
    template.key: template for template in (ModernCleanTemplate(), MinimalistTemplate())
}


def available_templates() -> List[str]:
    return list(TEMPLATES)


def resolve_template(value: Optional[str], default: str = DEFAULT_TEMPLATE_VALUE) -> PortfolioTemplate:
    """Look up a theme by key, falling back to the default for unknown keys."""
    if value in TEMPLATES:
        return TEMPLATES[value]
    return TEMPLATES.get(default, TEMPLATES[DEFAULT_TEMPLATE_VALUE])


def render_portfolio(
    document: Document,
    design: Optional[DesignSettings] = None,
    template: Optional[str] = None,
    *,
    default: str = DEFAULT_TEMPLATE_VALUE,
) -> Node:
    theme = resolve_template(template if template is not None else document.template.value, default)
    return theme.render(document, design or document.design)


def render_html(
    document: Document,
    design: Optional[DesignSettings] = None,
    template: Optional[str] = None,
    *,
    default: str = DEFAULT_TEMPLATE_VALUE,
) -> str:
    return to_html(render_portfolio(document, design, template, default=default))


def render_page(document: Document, *, default: str = DEFAULT_TEMPLATE_VALUE) -> str:
    """A standalone HTML page for a published portfolio."""
    title = escape(document.profile.name or document.title or "Portfolio", quote=False)
    body = render_html(document, default=default)
    return (
        "<!DOCTYPE html>"
        f'<html lang="en"><head><meta charset="utf-8"><title>{title}</title></head>'
        f"<body>{body}</body></html>"
    )
