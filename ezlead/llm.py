"""
AI chat service abstraction and response parsing utilities.

The pipeline only needs single-turn completions: a system prompt plus a user
prompt in, the first text content out. Parsing helpers tolerate the usual
model noise around a JSON answer (markdown fences, smart quotes, prose).
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import openai

from .logger import StructuredLogger, get_logger
from .retry import RetryError, exponential_backoff

DEFAULT_MAX_TOKENS = 1024


class ChatServiceError(Exception):
    """Raised when the chat service could not produce a completion."""


class ChatService(ABC):
    """Single-turn chat completion provider."""

    name: str = "chat"

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the first text content of the reply ("" when there is none)."""


class OpenAIChatService(ChatService):
    """OpenAI chat completions with bounded timeout and backoff retry."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        client: Optional[Any] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if not api_key and client is None:
            raise ValueError("Missing OPENAI_API_KEY. Set env var or pass api_key.")
        if not model:
            raise ValueError("An OpenAI model name is required")
        # Retries are handled here so the SDK's own retry loop is disabled
        self.client = client or openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.name = f"openai/{model}"
        self.max_retries = max_retries
        self.logger = logger or get_logger()

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=DEFAULT_MAX_TOKENS,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        def on_retry(attempt, exc, delay):
            self.logger.warning(
                "Chat completion failed, retrying",
                model=self.model, attempt=attempt, delay=delay, error=str(exc),
            )

        call = exponential_backoff(
            max_retries=self.max_retries,
            base_delay=1.0,
            exceptions=(openai.RateLimitError, openai.APITimeoutError, openai.APIConnectionError),
            on_retry=on_retry,
        )(self._call_api)

        self.logger.record_api_call(self.name)
        try:
            return call(system_prompt, user_prompt)
        except RetryError as e:
            raise ChatServiceError(f"{self.name} unavailable: {e}") from e
        except openai.OpenAIError as e:
            raise ChatServiceError(f"{self.name} request failed: {e}") from e


def get_chat_service(api_key: str, model: str, timeout: float = 30.0) -> ChatService:
    """Chat service for the configured provider (currently OpenAI)."""
    return OpenAIChatService(api_key=api_key, model=model, timeout=timeout)


# --- Response Parsing Utilities ---

_FENCE = re.compile(r"```(?:json|JSON)?")
_SMART_QUOTES = {
    "“": '"', "”": '"', "‘": "'", "’": "'",
}
_TRAILING_COMMA = re.compile(r",\s*([\]}])")


def sanitize_response_text(text: str) -> str:
    """Strip markdown fences, smart quotes and trailing commas from a model reply."""
    if not text:
        return ""
    cleaned = _FENCE.sub("", text)
    for smart, plain in _SMART_QUOTES.items():
        cleaned = cleaned.replace(smart, plain)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    return cleaned.strip()


def extract_json_object(text: str) -> str:
    """
    Return the outermost {...} span of text.

    Raises:
        ValueError: if the text holds no JSON object
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ValueError("No JSON object found in response")
    return text[start:end + 1]


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Parse the JSON object embedded in a model reply.

    Raises:
        ValueError: if no object can be extracted or decoded
    """
    payload = extract_json_object(sanitize_response_text(text))
    result = json.loads(payload)  # json.JSONDecodeError is a ValueError
    if not isinstance(result, dict):
        raise ValueError("Response JSON is not an object")
    return result
