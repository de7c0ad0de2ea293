"""Parsing and validation of model responses, plus the shared retry loop."""

import json
import logging
import re
from dataclasses import replace
from typing import Any, Callable, Collection, TypeVar

from ..errors import CPWError, PlanGenerationFailed, ProviderError, ResponseParseError
from ..models import PlanSection
from .chat import ChatProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_PLAN_FIELDS = ("title", "summary", "sections")


def parse_json_object(text: str) -> dict[str, Any]:
    """Extract the JSON object from a reply, tolerating code fences and chatter.

    Raises ResponseParseError when no object can be decoded.
    """
    text = (text or "").strip()
    if not text:
        raise ResponseParseError("Empty response")

    candidates = [text]
    fence = re.search(r"```(?:json)?\s*\n?(.*?)\n?\s*```", text, re.DOTALL)
    if fence:
        candidates.append(fence.group(1).strip())
    brace = re.search(r"\{.*\}", text, re.DOTALL)
    if brace:
        candidates.append(brace.group(0))

    error = None
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            error = e
            continue
        if isinstance(data, dict):
            return data
        error = "response did not contain a JSON object"

    raise ResponseParseError(f"Invalid JSON in AI response: {error}")


def require_fields(data: dict[str, Any], fields: Collection[str] = REQUIRED_PLAN_FIELDS) -> None:
    for name in fields:
        if not data.get(name):
            raise ResponseParseError(f"AI response missing required field: {name}")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(_as_text(v) for v in value)
    if isinstance(value, str):
        return value
    return str(value)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_section(data: Any, index: int, allowed_types: Collection[str]) -> PlanSection:
    if not isinstance(data, dict):
        raise ResponseParseError(f"Section {index + 1} is not an object")

    component_type = _as_text(data.get("component_type")).strip() or "text"
    if component_type not in allowed_types:
        logger.warning(f"Unknown component type '{component_type}' in section {index + 1}, using 'text'")
        component_type = "text"

    config = data.get("component_config")
    children = data.get("children") or []
    if not isinstance(children, list):
        raise ResponseParseError(f"Section {index + 1} has non-list children")

    return PlanSection(
        id=_as_text(data.get("id")).strip() or f"section_{index + 1:03d}",
        title=_as_text(data.get("title")).strip() or "Untitled Section",
        content=_as_text(data.get("content")),
        component_type=component_type,
        order=_as_int(data.get("order"), index + 1),
        component_config=dict(config) if isinstance(config, dict) else {},
        children=tuple(parse_sections(children, allowed_types)),
    )


def parse_sections(items: Any, allowed_types: Collection[str]) -> list[PlanSection]:
    """Parse sibling sections; duplicate orders are renumbered by position."""
    if not isinstance(items, list):
        raise ResponseParseError("'sections' must be a list")

    parsed = [parse_section(item, i, allowed_types) for i, item in enumerate(items)]

    orders = [s.order for s in parsed]
    if len(orders) != len(set(orders)):
        logger.debug("Duplicate section orders in response, renumbering by position")
        parsed = [replace(s, order=i + 1) for i, s in enumerate(parsed)]
    return parsed


def request_json(
    provider: ChatProvider,
    system_prompt: str,
    user_message: str,
    parse: Callable[[dict[str, Any]], T],
    max_attempts: int = 3,
    model: str | None = None,
) -> T:
    """Ask for JSON, retrying the identical request when the reply can't be parsed.

    ``parse`` turns the decoded object into the result and raises
    ResponseParseError for schema problems, which are retried too. Provider
    failures are not retried.
    """
    model = model or provider.model
    last_error = ""
    for attempt in range(1, max_attempts + 1):
        try:
            text = provider.complete(system_prompt, user_message, model)
        except CPWError:
            raise
        except Exception as e:
            raise ProviderError(provider.provider_id, model, str(e)) from e

        try:
            return parse(parse_json_object(text))
        except ResponseParseError as e:
            last_error = str(e)
            logger.warning(f"Attempt {attempt}/{max_attempts}: could not parse AI response: {e}")

    raise PlanGenerationFailed(max_attempts, provider.provider_id, model, last_error)


def parse_read_time(value: Any, default: int) -> int:
    minutes = _as_int(value, default)
    return minutes if minutes > 0 else default
