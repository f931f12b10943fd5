"""
External text generation used by the response selector when no learned
pattern matches. The OpenAI chat-completions client is the only concrete
implementation; tests override ``get_text_generator`` to return None.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from ..config import get_settings
from ..logging_config import chat_logger
from ..responses import UpstreamError


class TextGenerator(ABC):
    """Anything that turns a chat transcript into a reply"""

    @abstractmethod
    def generate(self, messages: List[Dict[str, str]]) -> str:
        """Return the reply text, or raise UpstreamError"""


class OpenAIChatGenerator(TextGenerator):
    """Chat-completions backed generator. One attempt per call, no retries."""

    def __init__(self, api_key: str, model: str, timeout: float = 30.0, max_tokens: int = 500):
        self.model = model
        self.max_tokens = max_tokens
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate(self, messages: List[Dict[str, str]]) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=0.7,
            )
        except openai.OpenAIError as e:
            chat_logger.warning("External model call failed", model=self.model, error=str(e))
            raise UpstreamError("External model request failed") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamError("External model returned an empty reply")
        return content.strip()


def get_text_generator() -> Optional[TextGenerator]:
    """Dependency: a generator when an API key is configured, else None"""
    settings = get_settings()
    if not settings.openai_api_key:
        return None
    return OpenAIChatGenerator(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.openai_timeout_seconds,
    )
