"""Operations over the ordered section list of a portfolio.

Every function here is total: unknown ids and out-of-range indices leave the
input untouched instead of raising. Sections are immutable models; each
mutation returns a new list and leaves the caller's list alone.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, List, Optional, Sequence

from .models import (
    SECTION_CLASSES,
    SECTION_TYPES,
    EducationEntry,
    ExperienceEntry,
    ProjectCard,
    Section,
)

SECTION_TYPE_LABELS = {
    "text": ("Text Section", "FileText"),
    "list": ("List Section", "List"),
    "cards": ("Project Cards", "Grid"),
    "skills": ("Skills", "Award"),
    "experience": ("Experience", "Briefcase"),
    "education": ("Education", "GraduationCap"),
}

DEFAULT_TITLES = {
    "text": "About Me",
    "list": "Key Achievements",
    "cards": "Projects",
    "skills": "Skills & Technologies",
    "experience": "Work Experience",
    "education": "Education",
}


class SectionIdAllocator:
    """Hands out millisecond-based ids that only ever increase.

    Two sections created within the same millisecond, or after the clock
    steps backwards, still get distinct ids. Ids are never recycled.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = self._clock() // 1_000_000
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)


_default_allocator = SectionIdAllocator()


def default_title(section_type: str) -> str:
    return DEFAULT_TITLES.get(section_type, "New Section")


def default_content(section_type: str) -> Any:
    if section_type == "text":
        return "Add your content here..."
    if section_type == "list":
        return ["Achievement 1", "Achievement 2", "Achievement 3"]
    if section_type == "skills":
        return ["JavaScript", "React", "Node.js", "Python", "SQL"]
    if section_type == "cards":
        return [
            ProjectCard(
                id="1",
                name="Project Name",
                description="Brief description of your project and technologies used.",
                url="https://github.com/username/project",
            )
        ]
    if section_type == "experience":
        return [
            ExperienceEntry(
                id="1",
                company="Company Name",
                position="Job Title",
                duration="Jan 2023 - Present",
                description="Key responsibilities and achievements in this role.",
            )
        ]
    if section_type == "education":
        return [
            EducationEntry(
                id="1",
                institution="University Name",
                degree="Bachelor of Science in Computer Science",
                duration="2019 - 2023",
                gpa="3.8/4.0",
            )
        ]
    raise ValueError(f"Unknown section type: {section_type!r}")


def create_section(section_type: str, *, allocator: Optional[SectionIdAllocator] = None) -> Section:
    if section_type not in SECTION_TYPES:
        raise ValueError(f"Unknown section type: {section_type!r}")
    allocator = allocator or _default_allocator
    section_cls = SECTION_CLASSES[section_type]
    return section_cls(
        id=allocator.next_id(),
        title=default_title(section_type),
        content=default_content(section_type),
        visible=True,
    )


def add_section(
    sections: Sequence[Section],
    section_type: str,
    *,
    allocator: Optional[SectionIdAllocator] = None,
) -> List[Section]:
    return [*sections, create_section(section_type, allocator=allocator)]


def _index_of(sections: Sequence[Section], section_id: str) -> int:
    for index, section in enumerate(sections):
        if section.id == section_id:
            return index
    return -1


def _replace_at(sections: Sequence[Section], index: int, section: Section) -> List[Section]:
    updated = list(sections)
    updated[index] = section
    return updated


def remove_section(sections: Sequence[Section], section_id: str) -> Sequence[Section]:
    if _index_of(sections, section_id) < 0:
        return sections
    return [section for section in sections if section.id != section_id]


def toggle_visibility(sections: Sequence[Section], section_id: str) -> Sequence[Section]:
    index = _index_of(sections, section_id)
    if index < 0:
        return sections
    section = sections[index]
    return _replace_at(sections, index, section.model_copy(update={"visible": not section.visible}))


def reorder(sections: Sequence[Section], from_index: int, to_index: int) -> Sequence[Section]:
    """Move one section to a new position (splice semantics, not a swap)."""
    size = len(sections)
    if not (0 <= from_index < size and 0 <= to_index < size):
        return sections
    if from_index == to_index:
        return sections
    updated = list(sections)
    moved = updated.pop(from_index)
    updated.insert(to_index, moved)
    return updated


def move_up(sections: Sequence[Section], section_id: str) -> Sequence[Section]:
    index = _index_of(sections, section_id)
    return reorder(sections, index, index - 1) if index > 0 else sections


def move_down(sections: Sequence[Section], section_id: str) -> Sequence[Section]:
    index = _index_of(sections, section_id)
    return reorder(sections, index, index + 1) if index >= 0 else sections


def update_content(sections: Sequence[Section], section_id: str, new_content: Any) -> Sequence[Section]:
    # Shape checking belongs to the per-type editor calling this.
    index = _index_of(sections, section_id)
    if index < 0:
        return sections
    return _replace_at(sections, index, sections[index].model_copy(update={"content": new_content}))


def update_title(sections: Sequence[Section], section_id: str, title: str) -> Sequence[Section]:
    index = _index_of(sections, section_id)
    if index < 0:
        return sections
    return _replace_at(sections, index, sections[index].model_copy(update={"title": title}))


def change_type(sections: Sequence[Section], section_id: str, section_type: str) -> Sequence[Section]:
    """Switch a section to another type, resetting content to that type's default."""
    index = _index_of(sections, section_id)
    if index < 0 or section_type not in SECTION_TYPES:
        return sections
    current = sections[index]
    if current.type == section_type:
        return sections
    replacement = SECTION_CLASSES[section_type](
        id=current.id,
        title=current.title,
        visible=current.visible,
        content=default_content(section_type),
    )
    return _replace_at(sections, index, replacement)


# ---------------------------------------------------------------------------
# Item editing for list-shaped content
# ---------------------------------------------------------------------------


def _blank_item(section: Section, allocator: SectionIdAllocator) -> Any:
    if section.type == "list":
        return "New item"
    if section.type == "skills":
        return "New Skill"
    if section.type == "cards":
        return ProjectCard(id=allocator.next_id(), name="New Project", description="Project description")
    if section.type == "experience":
        return ExperienceEntry(id=allocator.next_id())
    if section.type == "education":
        return EducationEntry(id=allocator.next_id())
    return None


def add_item(section: Section, *, allocator: Optional[SectionIdAllocator] = None) -> Section:
    item = _blank_item(section, allocator or _default_allocator)
    if item is None:
        return section
    return section.model_copy(update={"content": [*section.content, item]})


def update_item(section: Section, index: int, value: Any) -> Section:
    """Replace one entry; record entries accept a mapping of changed fields."""
    if section.type == "text" or not 0 <= index < len(section.content):
        return section
    items = list(section.content)
    current = items[index]
    if isinstance(value, dict) and not isinstance(current, str):
        value = current.model_copy(update={k: v for k, v in value.items() if k != "id"})
    items[index] = value
    return section.model_copy(update={"content": items})


def remove_item(section: Section, index: int) -> Section:
    if section.type == "text" or not 0 <= index < len(section.content):
        return section
    items = [item for position, item in enumerate(section.content) if position != index]
    return section.model_copy(update={"content": items})
