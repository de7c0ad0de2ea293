"""Tests for mapping plans onto page-builder components."""

from cpw.models import ContentPlan, PlanSection
from cpw.planning.catalog import ComponentCatalog
from cpw.planning.mapper import ComponentMapper, build_inputs, parse_list_items


def _section(id, component_type, order, title="T", content="C", config=None, children=()):
    return PlanSection(id, title, content, component_type, order, config or {}, tuple(children))


def test_parse_list_items():
    assert parse_list_items("- a\n- b\n\n1. c") == ["a", "b", "c"]
    assert parse_list_items("* one\n2) two") == ["one", "two"]
    assert parse_list_items("") == [""]


def test_build_inputs_per_type():
    assert build_inputs(_section("h", "hero", 1, "Welcome", "Intro")) == {"title": "Welcome", "text": "Intro"}
    assert build_inputs(_section("h", "heading", 1, "Heading", config={"level": 2})) == {"text": "Heading", "level": 2}
    assert build_inputs(_section("l", "list", 1, "Steps", "- x\n- y")) == {"title": "Steps", "items": ["x", "y"]}
    assert build_inputs(_section("q", "quote", 1, content="Be kind", config={"attribution": "Me"})) == {
        "quote": "Be kind",
        "attribution": "Me",
    }
    image = build_inputs(_section("i", "canvas:image", 1, content="A cat", config={"media_id": 7}))
    assert image["image"] == 7
    assert image["alt"] == "A cat"
    cta = build_inputs(_section("c", "cta", 1, "Join", "Now", config={"button_text": "Go", "button_url": "/x"}))
    assert cta == {"title": "Join", "text": "Now", "button_text": "Go", "button_url": "/x"}


def test_build_inputs_passes_through_config():
    inputs = build_inputs(_section("t", "text", 1, "About", "Body", config={"variant": "wide", "title": "ignored"}))
    assert inputs == {"title": "About", "text": "Body", "variant": "wide"}


def test_resolve_component_ids():
    catalog = ComponentCatalog({"components": [{"id": "theme:banner", "name": "Banner"}]})
    mapper = ComponentMapper(catalog, config={"mapper": {"mappings": {"callout": "theme:banner"}}})
    assert mapper.resolve("theme:banner") == "theme:banner"
    assert mapper.resolve("hero") == "canvas:hero"
    assert mapper.resolve("callout") == "theme:banner"
    assert mapper.resolve("other:widget") == "other:widget"
    assert mapper.resolve("mystery") == "canvas:text"


def test_map_plan_is_depth_first():
    plan = ContentPlan(
        title="Page",
        summary="",
        sections=(
            _section("b", "text", 2, "Second"),
            _section("a", "section", 1, "First", children=(
                _section("a2", "text", 2, "Child two"),
                _section("a1", "list", 1, "Child one", "- x"),
            )),
        ),
    )
    descriptors = ComponentMapper().map_plan(plan)

    assert [d.label for d in descriptors] == ["First", "Child one", "Child two", "Second"]
    assert [d.position for d in descriptors] == [0, 1, 2, 3]
    parent = descriptors[0]
    assert parent.parent_uuid is None
    assert parent.slot is None
    for child in descriptors[1:3]:
        assert child.parent_uuid == parent.uuid
        assert child.slot == "content"
    assert descriptors[3].parent_uuid is None
    assert len({d.uuid for d in descriptors}) == 4
    assert descriptors[1].component_id == "canvas:list"


def test_to_component_tree():
    plan = ContentPlan(title="Page", summary="", sections=(_section("h", "hero", 1, "Hi", "There"),))
    tree = ComponentMapper().to_component_tree(plan)
    assert len(tree) == 1
    node = tree[0]
    assert node["component_id"] == "canvas:hero"
    assert node["inputs"] == {"title": {"static": "Hi"}, "text": {"static": "There"}}
    assert node["label"] == "Hi"
    assert "parent_uuid" not in node
