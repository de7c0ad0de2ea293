"""Component catalog and template slot structures loaded from YAML."""

import logging
from pathlib import Path
from typing import Any

import yaml

from ..models import ComponentCatalogEntry, TemplateAnalysis, TemplateSlot

logger = logging.getLogger(__name__)

# Props that take free text a plan section can fill
TEXT_PROP_NAMES = {
    "title", "text", "heading", "subheading", "subtitle", "body", "content",
    "quote", "label", "description", "caption", "summary", "items",
}


class ComponentCatalog:
    """Read-only list of presentation components plus known page templates.

    Expected YAML shape::

        components:
          - id: canvas:hero
            name: Hero
            description: Large banner
            props: [title, text, image]
        templates:
          landing:
            - component: canvas:hero
              name: Hero banner
            - component: canvas:text
              slot: content
              parent: section-1
              text_fields: [text]
    """

    def __init__(self, data: dict[str, Any] | None = None):
        data = data or {}
        self._entries = [self._entry(c) for c in data.get("components") or [] if c.get("id")]
        self._templates: dict[str, list[dict[str, Any]]] = data.get("templates") or {}

    @staticmethod
    def _entry(raw: dict[str, Any]) -> ComponentCatalogEntry:
        return ComponentCatalogEntry(
            component_id=str(raw["id"]),
            name=str(raw.get("name") or raw["id"]),
            description=str(raw.get("description") or ""),
            prop_names=tuple(str(p) for p in raw.get("props") or ()),
        )

    def entries(self) -> list[ComponentCatalogEntry]:
        return list(self._entries)

    def component_ids(self) -> list[str]:
        return [e.component_id for e in self._entries]

    def get(self, component_id: str) -> ComponentCatalogEntry | None:
        return next((e for e in self._entries if e.component_id == component_id), None)

    def __contains__(self, component_id: str) -> bool:
        return self.get(component_id) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def template_ids(self) -> list[str]:
        return list(self._templates)

    def analyze_template(self, template_id: str) -> TemplateAnalysis | None:
        """Slot structure of a template, or None when the template is unknown."""
        raw_slots = self._templates.get(template_id)
        if raw_slots is None:
            return None

        structure = []
        for position, raw in enumerate(raw_slots):
            component_id = str(raw.get("component") or raw.get("component_id") or "")
            entry = self.get(component_id)
            if "text_fields" in raw:
                fields = tuple(raw.get("text_fields") or ())
            elif entry:
                fields = tuple(p for p in entry.prop_names if p in TEXT_PROP_NAMES)
            else:
                fields = ()
            structure.append(TemplateSlot(
                position=position,
                component_id=component_id,
                name=str(raw.get("name") or (entry.name if entry else component_id)),
                slot=raw.get("slot"),
                parent=raw.get("parent"),
                has_text_inputs=bool(fields),
                text_fields=fields,
            ))

        return TemplateAnalysis(
            template_id=template_id,
            total_components=len(structure),
            fillable_component_count=sum(1 for s in structure if s.has_text_inputs),
            structure=tuple(structure),
        )


def load_catalog(path: str | Path | None) -> ComponentCatalog | None:
    """Load a catalog file. Returns None when no path is configured."""
    if not path:
        return None
    path = Path(path)
    if not path.exists():
        logger.warning(f"Component catalog not found: {path}")
        return None
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    catalog = ComponentCatalog(data)
    logger.info(f"Loaded {len(catalog)} components from {path}")
    return catalog
