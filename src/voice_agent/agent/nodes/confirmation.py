from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from voice_agent.graphs.state import PendingTool
from voice_agent.patterns import localized
from voice_agent.patterns.confirmation import (
    CONFIRMATION_MESSAGES,
    CONFIRMATION_PATTERNS,
    CONFIRMATION_PROMPTS,
    DENIAL_MESSAGES,
    FUZZY_TERMS,
    SHORT_CONFIRMATION_PROMPTS,
)
from voice_agent.tools.registry import spoken_date
from voice_agent.utils.hashing import utterance_fingerprint
from voice_agent.utils.text import is_question, normalize_text, render_template

from .utils import locale_of, node_error, step_begin, step_end

NODE = "confirmation"

_COMPILED: Dict[str, List[re.Pattern]] = {
    category: [re.compile(p) for p in patterns] for category, patterns in CONFIRMATION_PATTERNS.items()
}
_UNRESOLVED = re.compile(r"\{[a-zA-Z_]+\}")


@dataclass(frozen=True)
class ConfirmationConfig:
    max_attempts: int = 3


@dataclass(frozen=True)
class ConfirmationParse:
    status: str  # confirmed | denied | pending
    confidence: float
    category: str  # empty | positive | negative | hesitation | question | fuzzy | unknown

    @property
    def is_decision(self) -> bool:
        return self.status in ("confirmed", "denied")


def _matches(category: str, normalized: str) -> bool:
    return any(p.search(normalized) for p in _COMPILED.get(category, ()))


def _contains_term(category: str, normalized: str) -> bool:
    padded = f" {normalized} "
    return any(f" {term} " in padded for term in FUZZY_TERMS.get(category, ()))


def parse_confirmation_response(raw: str | None) -> ConfirmationParse:
    normalized = normalize_text(raw)
    if not normalized:
        return ConfirmationParse("pending", 0.0, "empty")
    if _matches("positive", normalized):
        return ConfirmationParse("confirmed", 0.95, "positive")
    if _matches("negative", normalized):
        return ConfirmationParse("denied", 0.95, "negative")
    if _matches("hesitation", normalized):
        return ConfirmationParse("pending", 0.3, "hesitation")
    if _matches("question", normalized) or is_question(raw):
        return ConfirmationParse("pending", 0.3, "question")
    if _contains_term("positive", normalized):
        return ConfirmationParse("confirmed", 0.8, "fuzzy")
    if _contains_term("negative", normalized):
        return ConfirmationParse("denied", 0.8, "fuzzy")
    return ConfirmationParse("pending", 0.2, "unknown")


def is_positive_response(raw: str | None) -> bool:
    return _matches("positive", normalize_text(raw))


def is_negative_response(raw: str | None) -> bool:
    return _matches("negative", normalize_text(raw))


def confirmation_confidence(raw: str | None) -> float:
    return parse_confirmation_response(raw).confidence


def generate_confirmation_prompt(tool_name: str, params: Dict[str, Any], locale: str) -> str:
    template = localized(CONFIRMATION_PROMPTS, tool_name, locale, default_key="_default")
    values = dict(params or {})
    if values.get("date"):
        values["when"] = spoken_date(values["date"], locale)
    message = render_template(template, values)
    if _UNRESOLVED.search(message):
        return localized(SHORT_CONFIRMATION_PROMPTS, tool_name, locale, default_key="_default")
    return message


def denial_message(tool_name: str | None, locale: str) -> str:
    return localized(DENIAL_MESSAGES, tool_name or "_default", locale, default_key="_default")


def clarification_message(parsed: ConfirmationParse, original: str | None, locale: str) -> str:
    if parsed.category == "empty":
        return localized(CONFIRMATION_MESSAGES, "empty", locale)
    if original:
        return localized(CONFIRMATION_MESSAGES, "clarify_prefix", locale) + original
    if parsed.category in ("hesitation", "question"):
        return localized(CONFIRMATION_MESSAGES, "unclear", locale)
    return localized(CONFIRMATION_MESSAGES, "clarify_default", locale)


@dataclass
class ConfirmationNode:
    config: ConfirmationConfig = field(default_factory=ConfirmationConfig)

    async def __call__(self, state: dict) -> dict:
        started = step_begin(state, NODE)
        locale = locale_of(state)
        pending: PendingTool | None = state.get("pending_tool")
        tool_name = pending.name if pending else None
        try:
            parsed = parse_confirmation_response(state.get("current_input"))
            patch = self._apply(state, parsed, pending, locale)
        except Exception as e:
            patch = {
                "confirmation_status": "denied",
                "pending_tool": None,
                "confirmation_attempts": 0,
                "response": localized(CONFIRMATION_MESSAGES, "parse_error", locale),
                "response_type": "confirmation_denied",
                "errors": [node_error(NODE, e)],
            }
            return {**patch, **step_end(state, NODE, started=started, status="error", reason="parse_error")}

        logging.info(
            json.dumps(
                {
                    "event": "confirmation_parsed",
                    "call_id": state.get("call_id"),
                    "tool": tool_name,
                    "status": patch["confirmation_status"],
                    "category": parsed.category,
                    "confidence": parsed.confidence,
                    "attempts": patch.get("confirmation_attempts"),
                    "input": utterance_fingerprint(state.get("current_input")),
                },
                ensure_ascii=False,
            )
        )
        return {**patch, **step_end(state, NODE, started=started)}

    def _apply(
        self,
        state: dict,
        parsed: ConfirmationParse,
        pending: PendingTool | None,
        locale: str,
    ) -> Dict[str, Any]:
        tool_name = pending.name if pending else None
        if parsed.status == "confirmed":
            return {
                "confirmation_status": "confirmed",
                "confirmation_attempts": 0,
                "response": None,
            }
        if parsed.status == "denied":
            return self._deny(denial_message(tool_name, locale))

        attempts = int(state.get("confirmation_attempts") or 0) + 1
        if attempts >= self.config.max_attempts:
            # out of clarification rounds
            return self._deny(localized(CONFIRMATION_MESSAGES, "too_many_attempts", locale))
        original = pending.confirmation_message if pending else None
        return {
            "confirmation_status": "pending",
            "confirmation_attempts": attempts,
            "response": clarification_message(parsed, original, locale),
            "response_type": "confirmation_clarify",
        }

    @staticmethod
    def _deny(message: str) -> Dict[str, Any]:
        return {
            "confirmation_status": "denied",
            "pending_tool": None,
            "confirmation_attempts": 0,
            "response": message,
            "response_type": "confirmation_denied",
        }
