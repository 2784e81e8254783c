from __future__ import annotations

import json
import logging
from functools import lru_cache

from voice_agent.agent.graph import build_turn_graph
from voice_agent.agent.nodes import AgentNodes
from voice_agent.api.config import get_settings
from voice_agent.config import AgentSettings, get_settings as get_agent_settings
from voice_agent.llm.circuit_breaker import CircuitBreaker
from voice_agent.llm.client import LLMClient
from voice_agent.llm.openai_provider import OpenAIProvider
from voice_agent.llm.rate_limit import ConcurrencyLimiter
from voice_agent.orchestrator.service import TurnOrchestrator
from voice_agent.rag.search import KeywordKnowledgeRetriever
from voice_agent.secrets import get_secret
from voice_agent.telemetry.audit import DataStoreAuditSink, LoggingAuditSink
from voice_agent.tools.builtin import default_registry
from voice_agent.tools.memory_store import InMemoryBusinessStore
from voice_agent.tools.registry import ToolRegistry


@lru_cache
def get_data_store() -> InMemoryBusinessStore:
    # TODO: replace with the tenant database adapter once the schema for businesses/knowledge is frozen
    path = get_settings().data_file
    if path:
        return InMemoryBusinessStore.from_file(path)
    return InMemoryBusinessStore()


@lru_cache
def get_llm_client() -> LLMClient | None:
    settings: AgentSettings = get_agent_settings()
    api_key = get_secret("OPENAI_API_KEY")
    if not api_key:
        logging.getLogger(__name__).warning(
            json.dumps({"event": "llm_disabled", "reason": "OPENAI_API_KEY not set"}, ensure_ascii=False)
        )
        return None
    provider = OpenAIProvider(api_key=api_key, timeout_s=settings.llm_timeout_s)
    return LLMClient(
        providers={settings.llm_provider: provider},
        default_provider=settings.llm_provider,
        default_model=settings.llm_model,
        fallback_provider=settings.llm_provider if settings.llm_fallback_model else None,
        fallback_model=settings.llm_fallback_model,
        limiter=ConcurrencyLimiter(max_inflight=settings.llm_max_inflight),
        breaker=CircuitBreaker(failure_threshold=5, reset_timeout_s=30.0),
        debug_logging=settings.debug_logging,
    )


@lru_cache
def get_tool_registry() -> ToolRegistry:
    return default_registry()


@lru_cache
def get_orchestrator() -> TurnOrchestrator:
    settings = get_agent_settings()
    store = get_data_store()
    audit = DataStoreAuditSink(store) if get_settings().audit_sink == "store" else LoggingAuditSink()
    nodes = AgentNodes.build(
        registry=get_tool_registry(),
        settings=settings,
        llm=get_llm_client(),
        retriever=KeywordKnowledgeRetriever(store),
        data=store,
        audit=audit,
    )
    return TurnOrchestrator(
        graph=build_turn_graph(nodes),
        default_locale=settings.default_locale,
        latency_warning_ms=settings.latency_warning_ms,
    )
