"""Generate content plans from processed sources."""

import logging
from typing import Any, Iterable

from ..config import get_section
from ..errors import NoProviderConfigured, NoSourceContent
from ..models import ContentPlan, ContextItem, PlanStatus, ProcessedContent, TemplateAnalysis
from .assembler import assemble, format_contexts
from .catalog import ComponentCatalog
from .chat import ChatProvider
from .prompts import (
    FALLBACK_COMPONENT_TYPES,
    GENERATION_SYSTEM_PROMPT,
    GENERATION_USER_MESSAGE,
    MAX_SECTIONS_INSTRUCTION,
    SECTION_SCHEMA,
    TEMPLATE_INSTRUCTIONS,
    TONE_INSTRUCTION,
)
from .responses import parse_read_time, parse_sections, request_json, require_fields

logger = logging.getLogger(__name__)

DEFAULT_AUDIENCE = "General audience"
DEFAULT_READ_TIME = 5


class PlanSynthesizer:
    """Builds the generation prompt, calls the chat provider and parses the plan."""

    def __init__(
        self,
        provider: ChatProvider | None,
        catalog: ComponentCatalog | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.provider = provider
        self.catalog = catalog
        self.config = config or {}

    def allowed_component_types(self) -> list[str]:
        if self.catalog is not None and len(self.catalog):
            return self.catalog.component_ids()
        return list(FALLBACK_COMPONENT_TYPES)

    def _component_list(self) -> str:
        if self.catalog is not None and len(self.catalog):
            lines = []
            for entry in self.catalog.entries():
                line = f"- {entry.component_id}: {entry.name}"
                if entry.description:
                    line += f" - {entry.description}"
                if entry.prop_names:
                    line += f" (props: {', '.join(entry.prop_names)})"
                lines.append(line)
            return "\n".join(lines)
        return "\n".join(f"- {t}" for t in FALLBACK_COMPONENT_TYPES)

    def analyze_template(self, template_id: str | None) -> TemplateAnalysis | None:
        if not template_id:
            return None
        analysis = self.catalog.analyze_template(template_id) if self.catalog is not None else None
        if analysis is None:
            logger.warning(f"Template '{template_id}' not found, generating without template constraints")
        return analysis

    def build_system_prompt(
        self,
        template: TemplateAnalysis | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        options = options or {}
        schema = SECTION_SCHEMA.format(component_types=", ".join(self.allowed_component_types()))
        prompt = GENERATION_SYSTEM_PROMPT.format(
            section_schema=schema,
            component_list=self._component_list(),
        )

        if template is not None and template.fillable_component_count:
            slots = "\n".join(
                f"{i}. {slot.name} ({slot.component_id}; fields: {', '.join(slot.text_fields)})"
                for i, slot in enumerate(template.fillable_slots(), 1)
            )
            prompt += TEMPLATE_INSTRUCTIONS.format(count=template.fillable_component_count, slots=slots)

        if options.get("tone"):
            prompt += TONE_INSTRUCTION.format(tone=options["tone"])
        if options.get("max_sections") and template is None:
            prompt += MAX_SECTIONS_INSTRUCTION.format(max_sections=int(options["max_sections"]))
        return prompt

    def build_user_message(
        self,
        sources: list[ProcessedContent],
        contexts: Iterable[ContextItem] = (),
        options: dict[str, Any] | None = None,
    ) -> str:
        options = options or {}
        content = assemble(sources, self.config).to_prompt()

        extra = ""
        context_text = format_contexts(contexts)
        if context_text:
            extra += f"\n\n## Additional Context\n\n{context_text}"
        if options.get("target_audience"):
            extra += f"\n\nTarget audience: {options['target_audience']}"
        return GENERATION_USER_MESSAGE.format(content=content, extra=extra)

    def generate(
        self,
        sources: list[ProcessedContent],
        contexts: Iterable[ContextItem] = (),
        template_id: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> ContentPlan:
        """Generate a draft plan.

        Raises:
            NoSourceContent: no sources were given.
            NoProviderConfigured: no chat provider is available.
            ProviderError: the provider failed; not retried.
            PlanGenerationFailed: every attempt returned unusable JSON.
        """
        sources = list(sources)
        if not sources:
            raise NoSourceContent()
        if self.provider is None:
            raise NoProviderConfigured()

        template = self.analyze_template(template_id)
        system_prompt = self.build_system_prompt(template, options)
        user_message = self.build_user_message(sources, contexts, options)
        allowed = set(self.allowed_component_types())
        source_ids = frozenset(s.id for s in sources)

        def parse(data: dict[str, Any]) -> ContentPlan:
            require_fields(data)
            return ContentPlan(
                title=str(data["title"]).strip(),
                summary=str(data["summary"]).strip(),
                sections=tuple(parse_sections(data["sections"], allowed)),
                target_audience=str(data.get("target_audience") or DEFAULT_AUDIENCE),
                estimated_read_time=parse_read_time(data.get("estimated_read_time"), DEFAULT_READ_TIME),
                status=PlanStatus.DRAFT,
                source_content_ids=source_ids,
                template_id=template_id,
            )

        logger.info(f"Generating content plan from {len(sources)} sources with {self.provider.provider_id}")
        plan = request_json(
            self.provider,
            system_prompt,
            user_message,
            parse,
            max_attempts=get_section(self.config, "chat")["max_attempts"],
        )

        if template is not None and len(plan.sections) != template.fillable_component_count:
            logger.warning(
                f"Plan has {len(plan.sections)} top-level sections, "
                f"template '{template_id}' has {template.fillable_component_count} fillable slots"
            )
        logger.info(f"Generated plan '{plan.title}' with {plan.section_count()} sections")
        return plan
