"""Turn a plan's section tree into page-builder component descriptors."""

import logging
import re
import uuid
from typing import Any

from ..config import get_section
from ..models import ComponentDescriptor, ContentPlan, PlanSection
from .catalog import ComponentCatalog

logger = logging.getLogger(__name__)

DEFAULT_SECTION_TYPES = ("hero", "text", "list", "cta", "heading", "image", "quote", "section", "callout")


def parse_list_items(content: str) -> list[str]:
    """One item per non-blank line, with bullet and number prefixes removed."""
    items = []
    for line in content.splitlines():
        line = line.strip()
        line = re.sub(r"^[-*+]\s*", "", line)
        line = re.sub(r"^\d+[.)]\s*", "", line)
        if line:
            items.append(line)
    return items or [content]


def build_inputs(section: PlanSection) -> dict[str, Any]:
    config = section.component_config
    kind = section.component_type.rsplit(":", 1)[-1]
    inputs: dict[str, Any] = {}

    if kind == "hero":
        inputs["title"] = section.title
        inputs["text"] = section.content
    elif kind == "heading":
        inputs["text"] = section.title
        if "level" in config:
            inputs["level"] = config["level"]
    elif kind == "list":
        inputs["title"] = section.title
        inputs["items"] = parse_list_items(section.content)
    elif kind == "cta":
        inputs["title"] = section.title
        inputs["text"] = section.content
        for key in ("button_text", "button_url"):
            if key in config:
                inputs[key] = config[key]
    elif kind == "quote":
        inputs["quote"] = section.content
        if "attribution" in config:
            inputs["attribution"] = config["attribution"]
    elif kind == "image":
        if "media_id" in config:
            inputs["image"] = config["media_id"]
        if section.content:
            inputs["alt"] = section.content
    else:
        if section.title:
            inputs["title"] = section.title
        inputs["text"] = section.content

    for key, value in config.items():
        inputs.setdefault(key, value)
    return inputs


class ComponentMapper:
    def __init__(self, catalog: ComponentCatalog | None = None, config: dict[str, Any] | None = None):
        cfg = get_section(config or {}, "mapper")
        self.catalog = catalog
        self.child_slot = cfg["child_slot"]
        prefix = cfg["component_prefix"]
        self.mappings = {t: f"{prefix}:{t}" for t in DEFAULT_SECTION_TYPES}
        self.mappings.update(cfg.get("mappings") or {})

    def resolve(self, component_type: str) -> str:
        if self.catalog is not None and component_type in self.catalog:
            return component_type
        if component_type in self.mappings:
            return self.mappings[component_type]
        if ":" in component_type:
            return component_type
        logger.info(f"Unknown section type '{component_type}', defaulting to text component")
        return self.mappings["text"]

    def map_plan(self, plan: ContentPlan) -> list[ComponentDescriptor]:
        """Depth-first list of descriptors, children right after their parent."""
        out: list[ComponentDescriptor] = []

        def visit(section: PlanSection, parent_uuid: str | None) -> None:
            descriptor = ComponentDescriptor(
                uuid=str(uuid.uuid4()),
                component_id=self.resolve(section.component_type),
                position=len(out),
                inputs=build_inputs(section),
                parent_uuid=parent_uuid,
                slot=self.child_slot if parent_uuid else None,
                label=section.title or None,
            )
            out.append(descriptor)
            for child in sorted(section.children, key=lambda c: c.order):
                visit(child, descriptor.uuid)

        for section in sorted(plan.sections, key=lambda s: s.order):
            visit(section, None)

        logger.info(f"Mapped plan '{plan.title}' to {len(out)} components")
        return out

    def to_component_tree(self, plan: ContentPlan) -> list[dict[str, Any]]:
        return [d.to_dict() for d in self.map_plan(plan)]
