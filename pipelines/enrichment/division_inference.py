"""
Division Inference.

Responsibilities:
- Ask the AI chat service which business unit a posting most likely
  belongs to, with a short justification and a 0-100 confidence.

Non-Responsibilities:
- No persistence, no caching.

Invariant:
Transport or parse failures yield None; infer() never raises for them.
"""
import re
from typing import Any, Optional

from ezlead.llm import ChatService, ChatServiceError, parse_json_response
from ezlead.logger import StructuredLogger, get_logger
from ezlead.models import DivisionInference

from .prompts import DIVISION_MESSAGE, DIVISION_SYSTEM

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _clamp_confidence(value: Any) -> int:
    try:
        confidence = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, confidence))


def parse_division(text: str) -> DivisionInference:
    """
    Parse a {"Division", "Reasoning", "Confidence"} reply.

    Raises:
        ValueError: if the reply holds no JSON object
    """
    data = parse_json_response(text)
    fields = {_NON_ALNUM.sub("", str(k).lower()): v for k, v in data.items()}
    division = fields.get("division")
    reasoning = fields.get("reasoning")
    return DivisionInference(
        division=division.strip() if isinstance(division, str) else "",
        reasoning=reasoning.strip() if isinstance(reasoning, str) else "",
        confidence=_clamp_confidence(fields.get("confidence")),
    )


class DivisionInferrer:
    def __init__(
        self,
        chat: ChatService,
        prompt_char_budget: int = 1500,
        logger: Optional[StructuredLogger] = None,
    ):
        if chat is None:
            raise ValueError("A chat service is required")
        self.chat = chat
        self.prompt_char_budget = prompt_char_budget
        self.logger = logger or get_logger()

    def infer(self, company_name: str, description: str) -> Optional[DivisionInference]:
        if not company_name or not company_name.strip():
            raise ValueError("company_name is required")

        prompt = DIVISION_MESSAGE.format(
            company_name=company_name.strip(),
            description=(description or "")[:self.prompt_char_budget],
        )
        try:
            text = self.chat.complete(DIVISION_SYSTEM, prompt)
        except ChatServiceError as e:
            self.logger.error("Division inference request failed", company=company_name, error=str(e))
            self.logger.record_error("ChatServiceError")
            return None

        if not text or not text.strip():
            self.logger.warning("Empty division response", company=company_name)
            return None

        try:
            inference = parse_division(text)
        except ValueError as e:
            self.logger.error(
                "Failed to parse division response",
                company=company_name, error=str(e), payload=text,
            )
            self.logger.record_error("MalformedDivision")
            return None

        self.logger.debug(
            "Division inferred",
            company=company_name, division=inference.division, confidence=inference.confidence,
        )
        return inference
