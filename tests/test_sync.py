"""
Tests for planning section writes on save.
"""

from builder.models import Document, TextSection
from builder.sections import reorder, toggle_visibility
from builder.sync import SectionSnapshot


def _document():
    return Document(
        id="p1",
        sections=[TextSection(id=section_id, content=section_id) for section_id in ("a", "b", "c")],
    )


def test_unchanged_sections_need_no_writes():
    document = _document()

    assert SectionSnapshot.from_document(document).plan(document.sections).is_empty


def test_edit_produces_single_update():
    document = _document()
    snapshot = SectionSnapshot.from_document(document)

    plan = snapshot.plan(toggle_visibility(document.sections, "b"))

    assert [section.id for section in plan.updates] == ["b"]
    assert plan.deletes == [] and plan.creates == [] and plan.order == []


def test_reorder_sends_every_kept_position():
    document = _document()
    snapshot = SectionSnapshot.from_document(document)

    plan = snapshot.plan(reorder(document.sections, 0, 2))

    assert plan.order == [("b", 0), ("c", 1), ("a", 2)]
    assert plan.updates == []


def test_new_and_removed_sections():
    document = _document()
    snapshot = SectionSnapshot.from_document(document)
    new = TextSection(id="local-9", content="fresh")

    plan = snapshot.plan([document.sections[0], document.sections[2], new])

    assert plan.deletes == ["b"]
    assert plan.creates == [(new, 2)]
    assert plan.order == [("a", 0), ("c", 1)]


def test_created_sections_map_to_remote_ids():
    snapshot = SectionSnapshot.from_document(_document())
    new = TextSection(id="local-9", content="fresh")

    snapshot.record_created(new, "remote-42", 3)

    assert snapshot.remote_id("local-9") == "remote-42"
    assert snapshot.plan([*_document().sections, new]).is_empty
