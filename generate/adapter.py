import json
import logging
import os
from typing import Protocol

from generate.config import (
    DEFAULT_OPENAI_MODEL,
    DEFAULT_STRUCTURED_OUTPUT,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
)
from generate.models import ConversationBatch, PersonaConfig
from shared.chatgpt import ChatGPTWrapper
from shared.prompts import build_user_prompt, render_system_prompt

logger = logging.getLogger(__name__)


class MissingCredentialError(RuntimeError):
    pass


class ConversationClient(Protocol):
    def generate(self, theme: str, count: int, persona: PersonaConfig) -> str:
        """Return the raw model text for ``count`` conversations on ``theme``."""
        ...


def unwrap_structured_batch(content: str) -> str:
    """Turn ``{"conversations": [...]}`` back into the bare array text.

    Anything else is returned untouched so the validator reports it.
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        return content
    if isinstance(payload, dict) and isinstance(payload.get("conversations"), list):
        return json.dumps(payload["conversations"], ensure_ascii=False)
    return content


class ChatGPTConversationClient:
    def __init__(
        self,
        api_key: str | None = None,
        model_name: str = DEFAULT_OPENAI_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        top_p: float | None = DEFAULT_TOP_P,
        top_k: int | None = DEFAULT_TOP_K,
        structured_output: bool = DEFAULT_STRUCTURED_OUTPUT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.top_p = top_p
        self.top_k = top_k
        self.structured_output = structured_output
        self.timeout = timeout
        self._llm: ChatGPTWrapper | None = None

    def _resolve_api_key(self) -> str:
        key = self.api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise MissingCredentialError(
                "LLM client is not initialized: OPENAI_API_KEY is missing."
            )
        return key

    @property
    def llm(self) -> ChatGPTWrapper:
        if self._llm is None:
            self._llm = ChatGPTWrapper(
                model_name=self.model_name,
                api_key=self._resolve_api_key(),
                timeout=self.timeout,
            )
        return self._llm

    def generate(self, theme: str, count: int, persona: PersonaConfig) -> str:
        self._resolve_api_key()
        logger.info(
            "Generating %d conversations for theme %r with AI %s", count, theme, persona.ai_name
        )
        prompts = dict(
            system_prompt=render_system_prompt(
                user_name=persona.user_name,
                ai_name=persona.ai_name,
                ai_personality=persona.ai_personality,
                conversation_style=persona.conversation_style,
            ),
            user_prompt=build_user_prompt(theme, count, persona.user_name, persona.ai_name),
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
        )
        if not self.structured_output:
            return self.llm.ask_text(**prompts)
        # Raw text, not the parsed batch: items are validated one by one downstream.
        content = self.llm.ask_structured_text(response_model=ConversationBatch, **prompts)
        return unwrap_structured_batch(content)
