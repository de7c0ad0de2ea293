"""Refine an existing plan with free-text instructions."""

import json
import logging
from dataclasses import replace
from typing import Any

from ..config import get_section
from ..errors import InvalidPlanState, NoProviderConfigured, RefinementLimitExceeded
from ..models import ContentPlan, RefinementEntry
from .chat import ChatProvider
from .prompts import REFINEMENT_SYSTEM_PROMPT, REFINEMENT_USER_MESSAGE, SECTION_SCHEMA
from .responses import parse_read_time, parse_sections, request_json
from .synthesizer import PlanSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_REFINEMENT_SUMMARY = "Plan refined based on instructions."


class PlanRefiner:
    def __init__(
        self,
        provider: ChatProvider | None,
        synthesizer: PlanSynthesizer | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.provider = provider
        self.config = config or {}
        self.synthesizer = synthesizer or PlanSynthesizer(provider, config=self.config)
        refinement = get_section(self.config, "refinement")
        self.max_iterations = int(refinement["max_iterations"]) if refinement["enabled"] else 0
        self.preview_chars = int(refinement["preview_chars"])

    def can_refine(self, plan: ContentPlan) -> bool:
        return plan.status.can_refine and plan.refinement_count < self.max_iterations

    def build_system_prompt(self) -> str:
        types = ", ".join(self.synthesizer.allowed_component_types())
        return REFINEMENT_SYSTEM_PROMPT.format(section_schema=SECTION_SCHEMA.format(component_types=types))

    def build_user_message(self, plan: ContentPlan, instructions: str) -> str:
        plan_json = json.dumps(plan.to_prompt_dict(self.preview_chars), ensure_ascii=False, indent=2)
        return REFINEMENT_USER_MESSAGE.format(plan_json=plan_json, instructions=instructions.strip())

    def refine(self, plan: ContentPlan, instructions: str) -> ContentPlan:
        """Return a new plan revised according to ``instructions``.

        The limit and status are checked before the provider is touched.
        """
        if plan.refinement_count >= self.max_iterations:
            raise RefinementLimitExceeded(self.max_iterations)
        if not plan.status.can_refine:
            raise InvalidPlanState(plan.status.value, "refine")
        if not instructions or not instructions.strip():
            raise ValueError("Refinement instructions must not be empty")
        if self.provider is None:
            raise NoProviderConfigured()

        allowed = set(self.synthesizer.allowed_component_types())

        def parse(data: dict[str, Any]) -> tuple[ContentPlan, RefinementEntry]:
            sections = parse_sections(data["sections"], allowed) if data.get("sections") else []
            affected = data.get("affected_sections") or []
            if not isinstance(affected, list):
                affected = [affected]
            entry = RefinementEntry(
                instructions=instructions.strip(),
                response_summary=str(data.get("refinement_summary") or DEFAULT_REFINEMENT_SUMMARY),
                affected_sections=frozenset(str(a) for a in affected),
            )
            refined = replace(
                plan,
                title=str(data.get("title") or plan.title),
                summary=str(data.get("summary") or plan.summary),
                sections=tuple(sections) if sections else plan.sections,
                target_audience=str(data.get("target_audience") or plan.target_audience),
                estimated_read_time=parse_read_time(data.get("estimated_read_time"), plan.estimated_read_time),
            )
            return refined, entry

        logger.info(f"Refining plan '{plan.title}' (iteration {plan.refinement_count + 1}/{self.max_iterations})")
        refined, entry = request_json(
            self.provider,
            self.build_system_prompt(),
            self.build_user_message(plan, instructions),
            parse,
            max_attempts=get_section(self.config, "chat")["max_attempts"],
        )
        return refined.with_refinement(entry)
