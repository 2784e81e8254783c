from __future__ import annotations

import json
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from voice_agent.errors import ConfigurationError
from voice_agent.graphs.state import RAGResult, ToolExecutionResult
from voice_agent.llm.client import LLMConfig
from voice_agent.patterns import localized
from voice_agent.patterns.responses import (
    DIRECT_INSTRUCTIONS,
    DIRECT_TEMPLATES,
    FAREWELL_PATTERNS,
    FIXED_PHRASES,
    LANGUAGE_NAMES,
    RAG_CONTEXT_INSTRUCTIONS,
    SPOKEN_DIGITS,
    TEMPLATE_SUB_INTENTS,
    UNKNOWN_INSTRUCTIONS,
    VOICE_RESPONSE_SYSTEM_PROMPT,
)
from voice_agent.utils.text import normalize_text

from .utils import llm_context, locale_of, node_error, step_begin, step_end

NODE = "response_generator"

_MD_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_URL = re.compile(r"(https?://|www\.)\S+")
_MD_EMPHASIS = re.compile(r"(\*\*|__)(.*?)\1")
_HEADER = re.compile(r"^\s*#+\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*[-*•]\s+", re.MULTILINE)
_NUMBERED = re.compile(r"^\s*\d+[.)]\s+", re.MULTILINE)
_SYMBOLS = re.compile(r"[#@*_~`]")
_SINGLE_DIGIT = re.compile(r"(?<![:./\-])\b(\d)\b(?![:/\-]|[.,]\d)")
_SPACES = re.compile(r"\s+")
_FAREWELL = [re.compile(p) for p in FAREWELL_PATTERNS]


@dataclass(frozen=True)
class ResponseGeneratorConfig:
    max_history_turns: int = 5
    spell_numbers: bool = True
    llm_model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 200


@dataclass(frozen=True)
class VoiceResponse:
    text: str
    end_call: bool = False
    end_call_reason: Optional[str] = None
    forward_to_client: Optional[Dict[str, Any]] = None


def get_response_template(kind: str, locale: str, rng: random.Random | None = None) -> str:
    options = DIRECT_TEMPLATES.get(kind) or DIRECT_TEMPLATES["fallback"]
    choices = options.get(locale) or options["es"]
    return (rng or random).choice(choices)


def optimize_for_voice(text: str, locale: str = "es", *, spell_numbers: bool = True) -> str:
    """Make text safe for text-to-speech: no markup, no URLs, short digits spelled out."""
    if not text:
        return ""
    out = _MD_LINK.sub(r"\1", text)
    out = _URL.sub("", out)
    out = _HEADER.sub("", out)
    out = _BULLET.sub("", out)
    out = _NUMBERED.sub("", out)
    out = _MD_EMPHASIS.sub(r"\2", out)
    out = _SYMBOLS.sub("", out)

    lines = [line.strip() for line in out.splitlines() if line.strip()]
    joined: List[str] = []
    for i, line in enumerate(lines):
        if i < len(lines) - 1 and line[-1] not in ".!?,;:":
            line += "."
        joined.append(line)
    out = " ".join(joined)

    if spell_numbers:
        digits = SPOKEN_DIGITS.get(locale) or SPOKEN_DIGITS["es"]
        out = _SINGLE_DIGIT.sub(lambda m: digits[int(m.group(1))], out)

    out = _SPACES.sub(" ", out).strip()
    if out and out[-1] not in ".!?":
        out += "."
    return out


def should_end_call(text: str | None) -> bool:
    normalized = normalize_text(text)
    return bool(normalized) and any(p.search(normalized) for p in _FAREWELL)


def format_voice_response(state: dict) -> VoiceResponse:
    tool_result: ToolExecutionResult | None = state.get("tool_result")
    forward = None
    if tool_result is not None and tool_result.forward_to_client:
        forward = {"action": tool_result.data}
    return VoiceResponse(
        text=state.get("response") or "",
        end_call=bool(state.get("end_call")),
        end_call_reason=state.get("end_call_reason"),
        forward_to_client=forward,
    )


@dataclass
class ResponseGeneratorNode:
    llm: Any | None = None
    config: ResponseGeneratorConfig = field(default_factory=ResponseGeneratorConfig)
    rng: random.Random = field(default_factory=random.Random)

    async def __call__(self, state: dict) -> dict:
        started = step_begin(state, NODE)
        locale = locale_of(state)
        try:
            patch = await self._respond(state, locale)
        except Exception as e:
            text = localized(FIXED_PHRASES, "apology", locale)
            patch = {
                "response": text,
                "response_type": "error",
                "end_call": bool(state.get("end_call")),
                "end_call_reason": state.get("end_call_reason"),
                "messages": [{"role": "assistant", "content": text}],
                "is_complete": True,
                "errors": [node_error(NODE, e)],
            }
            return {**patch, **step_end(state, NODE, started=started, status="error", reason=type(e).__name__)}

        logging.info(
            json.dumps(
                {
                    "event": "response_ready",
                    "call_id": state.get("call_id"),
                    "intent": state.get("intent"),
                    "response_type": patch.get("response_type"),
                    "response_chars": len(patch.get("response") or ""),
                    "end_call": patch.get("end_call"),
                },
                ensure_ascii=False,
            )
        )
        return {**patch, **step_end(state, NODE, started=started)}

    async def _respond(self, state: dict, locale: str) -> Dict[str, Any]:
        upstream = state.get("response")
        if upstream:
            # already phrased by the gate or the confirmation interpreter
            return {
                "response": upstream,
                "response_type": state.get("response_type") or "upstream",
                "end_call": bool(state.get("end_call")),
                "end_call_reason": state.get("end_call_reason"),
                "messages": [{"role": "assistant", "content": upstream}],
                "is_complete": True,
            }

        text, response_type = await self._generate(state, locale)
        text = optimize_for_voice(text, locale, spell_numbers=self.config.spell_numbers)
        if not text:
            text = get_response_template("fallback", locale, self.rng)

        end_call = bool(state.get("end_call"))
        reason = state.get("end_call_reason")
        if not end_call and should_end_call(text):
            end_call, reason = True, "farewell"
        return {
            "response": text,
            "response_type": response_type,
            "end_call": end_call,
            "end_call_reason": reason,
            "messages": [{"role": "assistant", "content": text}],
            "is_complete": True,
        }

    async def _generate(self, state: dict, locale: str) -> Tuple[str, str]:
        intent = state.get("intent") or "unknown"
        tool_result: ToolExecutionResult | None = state.get("tool_result")

        if intent == "direct":
            sub_intent = state.get("sub_intent")
            if sub_intent in TEMPLATE_SUB_INTENTS:
                return get_response_template(sub_intent, locale, self.rng), "template"
            if self.llm is None:
                return get_response_template("fallback", locale, self.rng), "template"
            return await self._llm_answer(state, locale, DIRECT_INSTRUCTIONS, task="direct_response"), "llm"

        if intent == "unknown":
            if self.llm is None:
                return get_response_template("not_understood", locale, self.rng), "template"
            return await self._llm_answer(state, locale, UNKNOWN_INSTRUCTIONS, task="clarify_response"), "llm"

        if intent == "rag":
            rag: RAGResult | None = state.get("rag_result")
            if rag is None or not rag.success or not rag.context:
                return localized(FIXED_PHRASES, "rag_unavailable", locale), "rag_unavailable"
            if self.llm is None:
                raise ConfigurationError("LLM client is required to answer from retrieved knowledge")
            instructions = RAG_CONTEXT_INSTRUCTIONS.format(context=rag.context)
            return await self._llm_answer(state, locale, instructions, task="rag_response"), "rag"

        if intent == "tool":
            if tool_result is not None and tool_result.voice_message:
                return tool_result.voice_message, "tool"
            if tool_result is not None and not tool_result.success:
                return localized(FIXED_PHRASES, "tool_failed", locale), "tool"
            return localized(FIXED_PHRASES, "anything_else", locale), "tool"

        if intent == "transfer":
            if tool_result is not None and not tool_result.success and tool_result.voice_message:
                return tool_result.voice_message, "transfer"
            return localized(FIXED_PHRASES, "transfer", locale), "transfer"

        if intent == "confirm":
            if state.get("confirmation_status") == "denied":
                return localized(FIXED_PHRASES, "denied_default", locale), "confirmation_denied"
            if tool_result is not None and tool_result.voice_message:
                return tool_result.voice_message, "tool"
            return localized(FIXED_PHRASES, "anything_else", locale), "confirm"

        return get_response_template("fallback", locale, self.rng), "template"

    async def _llm_answer(self, state: dict, locale: str, instructions: str, *, task: str) -> str:
        language = LANGUAGE_NAMES.get(locale, LANGUAGE_NAMES["es"])
        system = f"{VOICE_RESPONSE_SYSTEM_PROMPT}\n\n{instructions}\n\nRespond in {language}."
        messages = [{"role": "system", "content": system}, *self._history(state)]
        return await self.llm.invoke_text(
            messages,
            config=LLMConfig(
                model=self.config.llm_model,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            ),
            context=llm_context(state, NODE, task),
        )

    def _history(self, state: dict) -> List[Dict[str, str]]:
        window = max(1, self.config.max_history_turns) * 2
        history = [
            {"role": m["role"], "content": m.get("content") or ""}
            for m in state.get("messages") or []
            if isinstance(m, dict) and m.get("role") in ("user", "assistant")
        ][-window:]
        current = (state.get("current_input") or "").strip()
        if current and not (history and history[-1]["role"] == "user" and history[-1]["content"] == current):
            history.append({"role": "user", "content": current})
        return history
