from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

_TRUE = {"1", "true", "yes"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUE


@dataclass(frozen=True)
class AgentSettings:
    default_locale: str = "es"
    intent_threshold: float = 0.6
    llm_fallback: bool = False
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_fallback_model: str | None = None
    llm_temperature: float = 0.7
    llm_max_tokens: int = 200
    llm_timeout_s: float = 10.0
    llm_max_inflight: int = 5
    tool_timeout_s: float = 10.0
    confirm_max_attempts: int = 3
    max_history_turns: int = 5
    spell_numbers: bool = True
    rag_top_k: int = 5
    rag_max_context_chars: int = 4000
    latency_warning_ms: int = 800
    debug_logging: bool = False

    @classmethod
    def from_env(cls) -> "AgentSettings":
        load_dotenv()
        return cls(
            default_locale=os.getenv("VOICE_AGENT_DEFAULT_LOCALE", "es"),
            intent_threshold=float(os.getenv("VOICE_AGENT_INTENT_THRESHOLD", "0.6")),
            llm_fallback=_flag("VOICE_AGENT_LLM_FALLBACK"),
            llm_provider=os.getenv("VOICE_AGENT_LLM_PROVIDER", "openai"),
            llm_model=os.getenv("VOICE_AGENT_LLM_MODEL", "gpt-4o-mini"),
            llm_fallback_model=os.getenv("VOICE_AGENT_LLM_FALLBACK_MODEL") or None,
            llm_temperature=float(os.getenv("VOICE_AGENT_LLM_TEMPERATURE", "0.7")),
            llm_max_tokens=int(os.getenv("VOICE_AGENT_LLM_MAX_TOKENS", "200")),
            llm_timeout_s=float(os.getenv("VOICE_AGENT_LLM_TIMEOUT_S", "10")),
            llm_max_inflight=int(os.getenv("VOICE_AGENT_LLM_MAX_INFLIGHT", "5")),
            tool_timeout_s=float(os.getenv("VOICE_AGENT_TOOL_TIMEOUT_S", "10")),
            confirm_max_attempts=int(os.getenv("VOICE_AGENT_CONFIRM_MAX_ATTEMPTS", "3")),
            max_history_turns=int(os.getenv("VOICE_AGENT_MAX_HISTORY_TURNS", "5")),
            spell_numbers=_flag("VOICE_AGENT_SPELL_NUMBERS", "true"),
            rag_top_k=int(os.getenv("VOICE_AGENT_RAG_TOP_K", "5")),
            rag_max_context_chars=int(os.getenv("VOICE_AGENT_RAG_MAX_CONTEXT_CHARS", "4000")),
            latency_warning_ms=int(os.getenv("VOICE_AGENT_LATENCY_WARNING_MS", "800")),
            debug_logging=_flag("VOICE_AGENT_DEBUG_LOGGING"),
        )


@lru_cache
def get_settings() -> AgentSettings:
    return AgentSettings.from_env()
