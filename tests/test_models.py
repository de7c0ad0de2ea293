"""Tests for plan models and the plan state machine."""

import pytest

from cpw.errors import InvalidPlanState
from cpw.models import (
    ContentPlan,
    ContextItem,
    DocumentMetadata,
    Heading,
    PlanSection,
    PlanStatus,
    RefinementEntry,
    approve,
    mark_completed,
    mark_failed,
    start_creating,
)


def _plan(**kwargs) -> ContentPlan:
    child = PlanSection("s2", "Child", "child words here", "text", 1)
    sections = (
        PlanSection("s1", "Intro", "one two three", "heading", 1, children=(child,)),
        PlanSection("s3", "Outro", "x" * 500, "text", 2),
    )
    return ContentPlan(title="Plan", summary="Sum", sections=sections, **kwargs)


def test_section_validation():
    with pytest.raises(ValueError):
        PlanSection("s", "T", "c", "", 1)
    a = PlanSection("a", "A", "", "text", 1)
    b = PlanSection("b", "B", "", "text", 1)
    with pytest.raises(ValueError):
        PlanSection("p", "P", "", "text", 1, children=(a, b))


def test_section_tree_helpers():
    plan = _plan()
    assert [s.id for s in plan.all_sections()] == ["s1", "s2", "s3"]
    assert plan.section_count() == 3
    assert plan.find_section("s2").title == "Child"
    assert plan.find_section("nope") is None
    assert plan.sections[0].word_count() == 6


def test_section_updates_return_new_values():
    section = PlanSection("s", "T", "old", "text", 1)
    updated = section.with_content("new")
    assert section.content == "old"
    assert updated.content == "new"
    child = PlanSection("c", "C", "", "text", 1)
    assert section.with_child(child).children == (child,)
    assert section.children == ()


def test_status_flags():
    assert PlanStatus.DRAFT.can_refine and not PlanStatus.DRAFT.can_create
    assert PlanStatus.APPROVED.can_refine and PlanStatus.APPROVED.can_create
    assert not PlanStatus.CREATING.can_refine
    assert PlanStatus.COMPLETED.is_terminal and PlanStatus.FAILED.is_terminal


def test_state_machine():
    plan = _plan()
    approved = approve(plan)
    assert plan.status is PlanStatus.DRAFT
    assert approved.status is PlanStatus.APPROVED
    creating = start_creating(approved)
    assert mark_completed(creating).status is PlanStatus.COMPLETED
    assert mark_failed(creating).status is PlanStatus.FAILED


def test_illegal_transitions():
    plan = _plan()
    with pytest.raises(InvalidPlanState):
        start_creating(plan)
    with pytest.raises(InvalidPlanState):
        approve(approve(plan))
    with pytest.raises(InvalidPlanState):
        approve(mark_completed(start_creating(approve(plan))))


def test_prompt_dict_is_minimal():
    plan = _plan().with_refinement(RefinementEntry("shorter", "done"))
    data = plan.to_prompt_dict(preview_chars=100)
    assert "refinement_history" not in data
    assert "status" not in data
    outro = data["sections"][1]
    assert len(outro["content"]) == 100
    assert outro["content"].endswith("...")
    assert data["sections"][0]["children"][0]["id"] == "s2"


def test_plan_dict_roundtrip_keeps_tree_and_history():
    plan = approve(_plan(template_id="landing", source_content_ids=frozenset({"a", "b"})))
    plan = plan.with_refinement(RefinementEntry("tweak", "Tweaked", frozenset({"s1"})))
    restored = ContentPlan.from_dict(plan.to_dict())
    assert restored.id == plan.id
    assert restored.status is PlanStatus.APPROVED
    assert restored.sections == plan.sections
    assert restored.source_content_ids == {"a", "b"}
    assert restored.refinement_history[0].affected_sections == {"s1"}


def test_metadata_from_dict_accepts_loose_input():
    meta = DocumentMetadata.from_dict({
        "title": "T",
        "createdDate": "2024-02-03T10:00:00",
        "headings": [{"level": 2, "text": "H"}, "Bare"],
        "customProperties": {"pages": 3, "skip": None},
    })
    assert meta.created_date.day == 3
    assert meta.headings == [Heading(2, "H"), Heading(1, "Bare")]
    assert meta.custom_properties == {"pages": "3"}
    assert DocumentMetadata.from_dict(None) == DocumentMetadata()


def test_context_item_prompt_format():
    item = ContextItem(label="Brand", content="Be concise.", type="style")
    assert item.format_for_prompt() == "### Brand (style)\nBe concise.\n"
