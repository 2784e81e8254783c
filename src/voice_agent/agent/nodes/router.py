from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from voice_agent.graphs.state import PendingTool, has_outstanding_confirmation
from voice_agent.llm.client import LLMConfig
from voice_agent.patterns.intents import (
    GUEST_NOUNS,
    INTENT_PATTERNS,
    INTENT_PRIORITY,
    MONTHS,
    NAME_STOPWORDS,
    NAME_TRIGGERS,
    NUMBER_WORDS,
    RELATIVE_DAYS,
    SUB_INTENT_RULES,
    SUB_INTENT_TOOLS,
    TRANSFER_TOOL,
    WEEKDAYS,
)
from voice_agent.tools.registry import ToolRegistry
from voice_agent.utils.hashing import utterance_fingerprint
from voice_agent.utils.text import normalize_text, strip_accents

from .confirmation import parse_confirmation_response
from .utils import llm_context, node_error, step_begin, step_end

NODE = "router"

# Every locale's table is consulted: callers switch language mid-call.
_INTENT_RES: Dict[str, List[re.Pattern]] = {}
for _table in INTENT_PATTERNS.values():
    for _intent, _patterns in _table.items():
        _INTENT_RES.setdefault(_intent, []).extend(re.compile(p) for p in _patterns)

_SUB_INTENT_RES: List[Tuple[str, Tuple[re.Pattern, ...]]] = [
    (name, tuple(re.compile(p) for p in patterns)) for name, patterns in SUB_INTENT_RULES
]

_NUMBER = r"(\d{1,2}|" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True)) + r")"
_MONTH = "(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + ")"

_TIME_HHMM = re.compile(r"\b(\d{1,2})[:.h](\d{2})\b\s*(am|pm|a\.m\.|p\.m\.)?")
_TIME_AMPM = re.compile(r"\b(\d{1,2})\s*(am|pm|a\.m\.|p\.m\.)")
_TIME_SPOKEN = re.compile(
    r"\ba las (\d{1,2})(?:\s+y\s+(media|cuarto))?(?:\s+(?:de|en) la\s+(manana|tarde|noche))?"
)
_TIME_AT = re.compile(r"\bat (\d{1,2})(?:\s+in the\s+(morning|afternoon|evening))?\b(?!\s*(?:people|guests|persons))")
_DATE_NUMERIC = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b")
_DATE_DAY_MONTH = re.compile(r"\b(\d{1,2})\s+(?:de\s+)?" + _MONTH + r"\b")
_DATE_MONTH_DAY = re.compile(r"\b" + _MONTH + r"\s+(\d{1,2})(?:st|nd|rd|th)?\b")
_DATE_RELATIVE = re.compile(r"\b(pasado manana|(?<!la )manana|hoy|tomorrow|today)\b")
_DATE_WEEKDAY = re.compile(r"\b(" + "|".join(WEEKDAYS) + r")\b")
_GUESTS_NOUN = re.compile(r"\b" + _NUMBER + r"\s+" + GUEST_NOUNS + r"\b")
_GUESTS_FOR = re.compile(
    r"\b(?:mesa para|para|table for|party of|for)\s+" + _NUMBER + r"\b(?!\s*(?::|/|am\b|pm\b|de\b|h\b))"
)
_PHONE = re.compile(r"(?<![\d/:])\+?\d[\d\s\-().]{5,}\d(?![\d/:])")
_NAME = re.compile(NAME_TRIGGERS + r"\s+([^\W\d_]+(?:\s+[^\W\d_]+){0,3})", re.IGNORECASE)

_PM_WORDS = {"pm", "p.m.", "tarde", "noche", "afternoon", "evening"}


class IntentClassification(BaseModel):
    intent: Literal["tool", "rag", "direct", "transfer", "unknown"]
    confidence: float = Field(ge=0.0, le=1.0)
    sub_intent: Optional[str] = None
    entities: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class RouterConfig:
    intent_threshold: float = 0.6
    llm_fallback: bool = False
    llm_model: Optional[str] = None


CLASSIFICATION_PROMPT = """You classify one utterance from a phone call to a business.
Intents:
- tool: the caller wants an action or a business fact (reservation, appointment, cancel, change, availability, hours, menu, location)
- rag: the caller asks about prices, services, policies or other business information
- transfer: the caller wants to speak with a human
- direct: greetings, thanks, farewells, small talk
- unknown: none of the above
Sub-intents: reservation.create, reservation.cancel, reservation.modify, reservation.check,
appointment.create, appointment.cancel, info.hours, info.location, info.menu, info.prices,
transfer.human, greeting, farewell, acknowledgment.
Entities you may extract: date, time (HH:MM), guests (integer), phone, name."""


def score_intents(normalized: str) -> Dict[str, int]:
    return {intent: sum(1 for p in _INTENT_RES.get(intent, ()) if p.search(normalized)) for intent in INTENT_PRIORITY}


def classify_keywords(normalized: str) -> Tuple[str, float]:
    scores = score_intents(normalized)
    total = sum(scores.values())
    if not total:
        return "unknown", 0.3
    # max() keeps the first of equal scores, so ties follow INTENT_PRIORITY
    best_intent = max(INTENT_PRIORITY, key=lambda intent: scores[intent])
    best = scores[best_intent]
    return best_intent, min(0.95, best / total + best * 0.1)


def detect_sub_intent(normalized: str) -> Optional[str]:
    for name, patterns in _SUB_INTENT_RES:
        if all(p.search(normalized) for p in patterns):
            return name
    return None


def _number(token: str) -> Optional[int]:
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS.get(token)


def _to_24h(hour: int, minute: int, marker: Optional[str]) -> Optional[str]:
    if marker in _PM_WORDS and hour < 12:
        hour += 12
    if marker in ("am", "a.m.") and hour == 12:
        hour = 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def _default_marker(hour: int) -> Optional[str]:
    # nobody books at 1-6 in the morning
    return "tarde" if 1 <= hour <= 6 else None


def _extract_time(text: str) -> Optional[str]:
    m = _TIME_HHMM.search(text)
    if m:
        return _to_24h(int(m.group(1)), int(m.group(2)), m.group(3))
    m = _TIME_AMPM.search(text)
    if m:
        return _to_24h(int(m.group(1)), 0, m.group(2))
    m = _TIME_SPOKEN.search(text)
    if m:
        minute = {"media": 30, "cuarto": 15}.get(m.group(2) or "", 0)
        hour = int(m.group(1))
        marker = m.group(3)
        return _to_24h(hour, minute, marker or _default_marker(hour))
    m = _TIME_AT.search(text)
    if m:
        return _to_24h(int(m.group(1)), 0, m.group(2) or _default_marker(int(m.group(1))))
    return None


def _extract_date(text: str) -> Optional[str]:
    m = _DATE_NUMERIC.search(text)
    if m:
        day, month = int(m.group(1)), int(m.group(2))
        if 1 <= day <= 31 and 1 <= month <= 12:
            year = m.group(3)
            return f"{day:02d}/{month:02d}" + (f"/{year}" if year else "")
    m = _DATE_DAY_MONTH.search(text)
    if m and 1 <= int(m.group(1)) <= 31:
        return f"{int(m.group(1)):02d}/{MONTHS[m.group(2)]:02d}"
    m = _DATE_MONTH_DAY.search(text)
    if m and 1 <= int(m.group(2)) <= 31:
        return f"{int(m.group(2)):02d}/{MONTHS[m.group(1)]:02d}"
    m = _DATE_RELATIVE.search(text)
    if m:
        return RELATIVE_DAYS[m.group(1)]
    m = _DATE_WEEKDAY.search(text)
    if m:
        return m.group(1)
    return None


def _extract_guests(text: str) -> Optional[int]:
    for pattern in (_GUESTS_NOUN, _GUESTS_FOR):
        m = pattern.search(text)
        if m:
            value = _number(m.group(1))
            if value and 0 < value <= 50:
                return value
    return None


def _extract_phone(text: str) -> Optional[str]:
    for m in _PHONE.finditer(text):
        digits = re.sub(r"\D", "", m.group(0))
        if 7 <= len(digits) <= 15:
            return ("+" if m.group(0).startswith("+") else "") + digits
    return None


def _extract_name(raw: str) -> Optional[str]:
    m = _NAME.search(raw)
    if not m:
        return None
    words: List[str] = []
    for word in m.group(1).split():
        if strip_accents(word.lower()) in NAME_STOPWORDS:
            break
        words.append(word)
    if not words:
        return None
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def extract_entities(raw: str | None) -> Dict[str, Any]:
    """Pull booking details out of the utterance; keys are only set when found."""
    if not raw:
        return {}
    text = strip_accents(raw.lower())
    found = {
        "date": _extract_date(text),
        "time": _extract_time(text),
        "guests": _extract_guests(text),
        "phone": _extract_phone(text),
        "name": _extract_name(raw),
    }
    return {k: v for k, v in found.items() if v is not None}


@dataclass
class IntentRouterNode:
    llm: Any | None = None
    registry: ToolRegistry | None = None
    config: RouterConfig = field(default_factory=RouterConfig)

    async def __call__(self, state: dict) -> dict:
        started = step_begin(state, NODE)
        try:
            patch = await self._route(state)
        except Exception as e:
            patch = {
                "normalized_input": normalize_text(state.get("current_input")),
                "intent": "direct",
                "confidence": 0.5,
                "errors": [node_error(NODE, e)],
            }
            return {**patch, **step_end(state, NODE, started=started, status="error", reason="classification_error")}

        logging.info(
            json.dumps(
                {
                    "event": "intent_classified",
                    "call_id": state.get("call_id"),
                    "intent": patch.get("intent"),
                    "confidence": round(float(patch.get("confidence") or 0.0), 3),
                    "sub_intent": patch.get("sub_intent"),
                    "entities": sorted((patch.get("entities") or {}).keys()),
                    "input": utterance_fingerprint(state.get("current_input")),
                },
                ensure_ascii=False,
            )
        )
        return {**patch, **step_end(state, NODE, started=started)}

    async def _route(self, state: dict) -> Dict[str, Any]:
        raw = state.get("current_input") or ""
        normalized = normalize_text(raw)

        if state.get("skip_classification"):
            # direct tool call: the caller already chose the intent
            entities = {**extract_entities(raw), **(state.get("entities") or {})}
            return {"normalized_input": normalized, "entities": entities}

        if not normalized:
            return {
                "normalized_input": "",
                "intent": "direct",
                "confidence": 0.5,
                "sub_intent": None,
                "entities": {},
            }

        entities = extract_entities(raw)
        sub_intent = detect_sub_intent(normalized)

        if has_outstanding_confirmation(state):
            parsed = parse_confirmation_response(raw)
            if parsed.is_decision or parsed.category == "hesitation":
                return {
                    "normalized_input": normalized,
                    "intent": "confirm",
                    "confidence": parsed.confidence,
                    "sub_intent": sub_intent,
                    "entities": entities,
                }

        intent, confidence = classify_keywords(normalized)
        errors = []
        used_llm = False
        if confidence < self.config.intent_threshold and self.config.llm_fallback and self.llm is not None:
            try:
                llm_result = await self._classify_with_llm(state, raw)
            except Exception as e:
                errors.append(node_error(NODE, f"llm_classification_failed: {e}"))
                llm_result = None
            if llm_result is not None:
                used_llm = True
                intent = llm_result.intent
                confidence = llm_result.confidence
                sub_intent = llm_result.sub_intent or sub_intent
                entities = {**entities, **{k: v for k, v in llm_result.entities.items() if v not in (None, "")}}
        if intent == "unknown" and not used_llm:
            intent = "direct"

        patch: Dict[str, Any] = {
            "normalized_input": normalized,
            "intent": intent,
            "confidence": confidence,
            "sub_intent": sub_intent,
            "entities": entities,
        }
        if errors:
            patch["errors"] = errors
        patch.update(self._enqueue(state, intent, sub_intent, entities))
        return patch

    async def _classify_with_llm(self, state: dict, raw: str) -> IntentClassification:
        messages = [
            {"role": "system", "content": CLASSIFICATION_PROMPT},
            {"role": "user", "content": raw},
        ]
        return await self.llm.invoke_structured(
            IntentClassification,
            messages,
            LLMConfig(model=self.config.llm_model, temperature=0.0, max_tokens=150, retries=1),
            context=llm_context(state, NODE, "intent_classification"),
        )

    def _enqueue(
        self,
        state: dict,
        intent: str,
        sub_intent: Optional[str],
        entities: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Queue the tool a tool/transfer request asks for.

        A new request replaces whatever was queued and restarts the confirmation
        round; asking for the queued tool again updates its parameters.
        """
        if intent not in ("tool", "transfer"):
            return {}
        name = TRANSFER_TOOL if intent == "transfer" else SUB_INTENT_TOOLS.get(sub_intent or "")
        if not name:
            return {}
        tool = self.registry.get(name) if self.registry is not None else None
        params = dict(entities)
        if tool is not None:
            allowed = (tool.parameters or {}).get("properties")
            if allowed:
                params = {k: v for k, v in params.items() if k in allowed}

        queued: PendingTool | None = state.get("pending_tool")
        if queued is not None and queued.name == name:
            params = {**queued.parameters, **params}
        elif queued is not None:
            logging.info(
                json.dumps(
                    {
                        "event": "pending_tool_replaced",
                        "call_id": state.get("call_id"),
                        "previous": queued.name,
                        "tool": name,
                    },
                    ensure_ascii=False,
                )
            )
        return {
            "pending_tool": PendingTool(
                name=name,
                parameters=params,
                requires_confirmation=bool(tool and tool.requires_confirmation),
            ),
            "confirmation_status": "none",
            "confirmation_attempts": 0,
        }
