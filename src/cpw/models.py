"""Data models used throughout CPW."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import InvalidPlanState


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def word_count(text: str) -> int:
    return len(text.split())


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass
class DocumentMetadata:
    """Descriptive metadata for one source. Empty rather than None when unknown."""
    title: str | None = None
    author: str | None = None
    created_date: datetime | None = None
    language: str | None = None
    headings: list[Heading] = field(default_factory=list)
    custom_properties: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "created_date": self.created_date.isoformat() if self.created_date else None,
            "language": self.language,
            "headings": [{"level": h.level, "text": h.text} for h in self.headings],
            "custom_properties": dict(self.custom_properties),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DocumentMetadata":
        data = data or {}
        headings = []
        for h in data.get("headings") or []:
            if isinstance(h, dict):
                headings.append(Heading(int(h.get("level", 1)), str(h.get("text", ""))))
            elif isinstance(h, str):
                headings.append(Heading(1, h))
        props = data.get("custom_properties") or data.get("customProperties") or {}
        return cls(
            title=data.get("title") or None,
            author=data.get("author") or None,
            created_date=_parse_datetime(data.get("created_date") or data.get("createdDate")),
            language=data.get("language") or None,
            headings=headings,
            custom_properties={str(k): str(v) for k, v in props.items() if v is not None},
        )


@dataclass(frozen=True)
class ProcessedContent:
    """Normalized Markdown for one document or webpage."""
    source_identifier: str
    markdown_content: str
    processor_id: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    source_kind: str = "document"  # "document" or "webpage"
    title: str = ""
    id: str = field(default_factory=new_id)
    processed_at: datetime = field(default_factory=utcnow)

    @property
    def is_webpage(self) -> bool:
        return self.source_kind == "webpage"

    @property
    def display_name(self) -> str:
        return self.title or self.metadata.title or self.source_identifier

    def word_count(self) -> int:
        return word_count(self.markdown_content)


@dataclass(frozen=True)
class ContextItem:
    """Extra guidance handed to the model alongside the sources."""
    label: str
    content: str
    type: str = "note"
    priority: int = 0
    enabled: bool = True
    id: str = field(default_factory=new_id)

    def format_for_prompt(self) -> str:
        return f"### {self.label} ({self.type})\n{self.content}\n"


@dataclass(frozen=True)
class PlanSection:
    """One node of the plan tree, bound to a presentation component type."""
    id: str
    title: str
    content: str
    component_type: str
    order: int
    component_config: dict[str, Any] = field(default_factory=dict)
    children: tuple["PlanSection", ...] = ()

    def __post_init__(self):
        if not self.component_type:
            raise ValueError(f"Section {self.id!r} has an empty component_type")
        orders = [c.order for c in self.children]
        if len(orders) != len(set(orders)):
            raise ValueError(f"Section {self.id!r} has children with duplicate order values")

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def flatten(self) -> list["PlanSection"]:
        """Depth-first list of this section and all descendants."""
        out = [self]
        for child in self.children:
            out.extend(child.flatten())
        return out

    def word_count(self) -> int:
        return word_count(self.content) + sum(c.word_count() for c in self.children)

    def with_content(self, content: str) -> "PlanSection":
        return replace(self, content=content)

    def with_child(self, child: "PlanSection") -> "PlanSection":
        return replace(self, children=self.children + (child,))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "component_type": self.component_type,
            "order": self.order,
            "component_config": dict(self.component_config),
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanSection":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            component_type=data.get("component_type") or "text",
            order=int(data.get("order", 0)),
            component_config=dict(data.get("component_config") or {}),
            children=tuple(cls.from_dict(c) for c in data.get("children") or []),
        )


@dataclass(frozen=True)
class RefinementEntry:
    instructions: str
    response_summary: str
    affected_sections: frozenset[str] = frozenset()
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "instructions": self.instructions,
            "response_summary": self.response_summary,
            "affected_sections": sorted(self.affected_sections),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefinementEntry":
        return cls(
            instructions=data.get("instructions", ""),
            response_summary=data.get("response_summary", ""),
            affected_sections=frozenset(data.get("affected_sections") or []),
            timestamp=_parse_datetime(data.get("timestamp")) or utcnow(),
        )


class PlanStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    CREATING = "creating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def can_refine(self) -> bool:
        return self in (PlanStatus.DRAFT, PlanStatus.APPROVED)

    @property
    def can_create(self) -> bool:
        return self is PlanStatus.APPROVED

    @property
    def is_terminal(self) -> bool:
        return self in (PlanStatus.COMPLETED, PlanStatus.FAILED)


_TRANSITIONS = {
    PlanStatus.DRAFT: {PlanStatus.APPROVED},
    PlanStatus.APPROVED: {PlanStatus.CREATING},
    PlanStatus.CREATING: {PlanStatus.COMPLETED, PlanStatus.FAILED},
}


@dataclass(frozen=True)
class ContentPlan:
    """A generated content plan. Never mutated; every change yields a new value."""
    title: str
    summary: str
    sections: tuple[PlanSection, ...]
    target_audience: str = "General audience"
    estimated_read_time: int = 5
    status: PlanStatus = PlanStatus.DRAFT
    refinement_history: tuple[RefinementEntry, ...] = ()
    source_content_ids: frozenset[str] = frozenset()
    template_id: str | None = None
    id: str = field(default_factory=new_id)
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def refinement_count(self) -> int:
        return len(self.refinement_history)

    def all_sections(self) -> list[PlanSection]:
        out: list[PlanSection] = []
        for section in self.sections:
            out.extend(section.flatten())
        return out

    def section_count(self) -> int:
        return len(self.all_sections())

    def total_word_count(self) -> int:
        return sum(s.word_count() for s in self.sections)

    def find_section(self, section_id: str) -> PlanSection | None:
        for section in self.all_sections():
            if section.id == section_id:
                return section
        return None

    def with_refinement(self, entry: RefinementEntry) -> "ContentPlan":
        return replace(self, refinement_history=self.refinement_history + (entry,))

    def with_status(self, status: PlanStatus) -> "ContentPlan":
        if status not in _TRANSITIONS.get(self.status, set()):
            raise InvalidPlanState(self.status.value, f"move to '{status.value}'")
        return replace(self, status=status)

    def to_prompt_dict(self, preview_chars: int = 300) -> dict[str, Any]:
        """Minimal JSON-able view for refinement prompts.

        Section content is cut to short previews; history and computed totals
        are left out so the prompt stays bounded.
        """
        def _section(s: PlanSection) -> dict[str, Any]:
            content = s.content
            if len(content) > preview_chars:
                content = content[: max(preview_chars - 3, 0)] + "..."
            data: dict[str, Any] = {
                "id": s.id,
                "title": s.title,
                "content": content,
                "component_type": s.component_type,
                "order": s.order,
            }
            if s.component_config:
                data["component_config"] = s.component_config
            if s.children:
                data["children"] = [_section(c) for c in s.children]
            return data

        return {
            "title": self.title,
            "summary": self.summary,
            "target_audience": self.target_audience,
            "estimated_read_time": self.estimated_read_time,
            "sections": [_section(s) for s in self.sections],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "target_audience": self.target_audience,
            "estimated_read_time": self.estimated_read_time,
            "status": self.status.value,
            "template_id": self.template_id,
            "generated_at": self.generated_at.isoformat(),
            "source_content_ids": sorted(self.source_content_ids),
            "sections": [s.to_dict() for s in self.sections],
            "refinement_history": [e.to_dict() for e in self.refinement_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentPlan":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            summary=data.get("summary", ""),
            target_audience=data.get("target_audience") or "General audience",
            estimated_read_time=int(data.get("estimated_read_time") or 5),
            status=PlanStatus(data.get("status", "draft")),
            template_id=data.get("template_id"),
            generated_at=_parse_datetime(data.get("generated_at")) or utcnow(),
            source_content_ids=frozenset(data.get("source_content_ids") or []),
            sections=tuple(PlanSection.from_dict(s) for s in data.get("sections") or []),
            refinement_history=tuple(
                RefinementEntry.from_dict(e) for e in data.get("refinement_history") or []
            ),
        )


def approve(plan: ContentPlan) -> ContentPlan:
    return plan.with_status(PlanStatus.APPROVED)


def start_creating(plan: ContentPlan) -> ContentPlan:
    return plan.with_status(PlanStatus.CREATING)


def mark_completed(plan: ContentPlan) -> ContentPlan:
    return plan.with_status(PlanStatus.COMPLETED)


def mark_failed(plan: ContentPlan) -> ContentPlan:
    return plan.with_status(PlanStatus.FAILED)


@dataclass(frozen=True)
class ComponentCatalogEntry:
    component_id: str
    name: str
    description: str = ""
    prop_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateSlot:
    position: int
    component_id: str
    name: str
    slot: str | None = None
    parent: str | None = None
    has_text_inputs: bool = False
    text_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateAnalysis:
    """Slot structure of an existing page template."""
    template_id: str
    total_components: int
    fillable_component_count: int
    structure: tuple[TemplateSlot, ...] = ()

    def fillable_slots(self) -> list[TemplateSlot]:
        return [s for s in self.structure if s.has_text_inputs]


@dataclass
class ComponentDescriptor:
    """One positioned component for a page-builder component tree."""
    uuid: str
    component_id: str
    position: int
    inputs: dict[str, Any] = field(default_factory=dict)
    parent_uuid: str | None = None
    slot: str | None = None
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "uuid": self.uuid,
            "component_id": self.component_id,
            "position": self.position,
            "inputs": {k: {"static": v} for k, v in self.inputs.items()},
        }
        if self.parent_uuid is not None:
            data["parent_uuid"] = self.parent_uuid
        if self.slot is not None:
            data["slot"] = self.slot
        if self.label:
            data["label"] = self.label
        return data


@dataclass
class ConversionResult:
    markdown: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)


@dataclass
class FetchResponse:
    status_code: int
    headers: dict[str, str]
    body: bytes

    def header(self, name: str, default: str = "") -> str:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return default


@dataclass
class ProcessResult:
    stdout: str
    exit_code: int
    stderr: str = ""
