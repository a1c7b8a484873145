"""Work out which remote section writes bring storage in line with local edits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Document, Section


@dataclass
class SectionSyncPlan:
    deletes: List[str] = field(default_factory=list)
    creates: List[Tuple[Section, int]] = field(default_factory=list)
    updates: List[Section] = field(default_factory=list)
    order: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.deletes or self.creates or self.updates or self.order)


class SectionSnapshot:
    """What the remote store is known to hold for one document's sections.

    Keyed by local section id. ``remote_ids`` maps local ids to the ids the
    store assigned, which differ for sections created during the session.
    """

    def __init__(self) -> None:
        self.sections: Dict[str, Section] = {}
        self.positions: Dict[str, int] = {}
        self.remote_ids: Dict[str, str] = {}

    @classmethod
    def from_document(cls, document: Document) -> "SectionSnapshot":
        snapshot = cls()
        for position, section in enumerate(document.sections):
            snapshot.sections[section.id] = section
            snapshot.positions[section.id] = position
            snapshot.remote_ids[section.id] = section.id
        return snapshot

    def remote_id(self, local_id: str) -> Optional[str]:
        return self.remote_ids.get(local_id)

    def record_created(self, section: Section, remote_id: str, position: int) -> None:
        self.sections[section.id] = section
        self.positions[section.id] = position
        self.remote_ids[section.id] = remote_id

    def record_updated(self, section: Section) -> None:
        self.sections[section.id] = section

    def record_deleted(self, local_id: str) -> None:
        self.sections.pop(local_id, None)
        self.positions.pop(local_id, None)
        self.remote_ids.pop(local_id, None)

    def record_order(self, order: Sequence[Tuple[str, int]]) -> None:
        for local_id, position in order:
            if local_id in self.sections:
                self.positions[local_id] = position

    def plan(self, local_sections: Sequence[Section]) -> SectionSyncPlan:
        plan = SectionSyncPlan()
        local_ids = {section.id for section in local_sections}

        plan.deletes = [local_id for local_id in self.sections if local_id not in local_ids]

        reorder_needed = False
        kept: List[Tuple[str, int]] = []
        for position, section in enumerate(local_sections):
            stored = self.sections.get(section.id)
            if stored is None:
                plan.creates.append((section, position))
                continue
            if stored != section:
                plan.updates.append(section)
            kept.append((section.id, position))
            if self.positions.get(section.id) != position:
                reorder_needed = True

        if reorder_needed:
            plan.order = kept
        return plan
