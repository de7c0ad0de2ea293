"""Chat-completion providers."""

import logging
from abc import ABC, abstractmethod
from typing import Any

import anthropic

from ..config import get_section
from ..errors import ProviderError

logger = logging.getLogger(__name__)


class ChatProvider(ABC):
    """Sends one system prompt + user message and returns the raw reply text."""

    provider_id: str = ""
    model: str | None = None

    @abstractmethod
    def complete(self, system_prompt: str, user_message: str, model: str | None = None) -> str:
        """Raises ProviderError when the request does not produce a reply."""


class AnthropicChatProvider(ChatProvider):
    provider_id = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int = 8000, timeout: float = 120.0):
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens

    def complete(self, system_prompt: str, user_message: str, model: str | None = None) -> str:
        model = model or self.model
        logger.debug(f"Sending chat request to {model} ({len(user_message)} characters)")
        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APIError as e:
            raise ProviderError(self.provider_id, model, str(e)) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if response.stop_reason == "max_tokens":
            logger.warning(f"Response from {model} hit max_tokens ({self.max_tokens}); JSON may be cut off")
        return text


def get_chat_provider(config: dict[str, Any]) -> ChatProvider | None:
    """The configured provider, or None when no API key is available."""
    api_key = config.get("claude_api_key")
    if not api_key:
        return None
    chat = get_section(config, "chat")
    return AnthropicChatProvider(
        api_key=api_key,
        model=config.get("claude_model", "claude-sonnet-4-20250514"),
        max_tokens=chat["max_tokens"],
        timeout=chat["timeout"],
    )
