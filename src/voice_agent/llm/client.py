from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type
from uuid import uuid4

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from pydantic import BaseModel, ValidationError

from voice_agent.llm.base import LLMProvider
from voice_agent.llm.circuit_breaker import CircuitBreaker
from voice_agent.llm.errors import error_kind
from voice_agent.llm.rate_limit import ConcurrencyLimiter
from voice_agent.llm.retry import RetryPolicy
from voice_agent.llm.routing import LLMRouter, ModelRoute
from voice_agent.llm.types import LLMCallContext, LLMMessage, LLMRequest, StructuredResult
from voice_agent.utils.hashing import messages_fingerprint


@dataclass(frozen=True)
class LLMConfig:
    model: Optional[str] = None
    temperature: Optional[float] = 0.7
    max_tokens: int = 200
    retries: int = 2
    metadata: Dict[str, Any] = field(default_factory=dict)


def _normalize_messages(messages: Iterable[Dict[str, str]]) -> List[LLMMessage]:
    out: List[LLMMessage] = []
    for m in messages:
        role = m.get("role") or "user"
        if role not in ("system", "user", "assistant"):
            raise ValueError(f"Unknown role: {role}")
        out.append(LLMMessage(role=role, content=m.get("content") or ""))
    return out


def _inject_format_instructions(messages: List[Dict[str, str]], instructions: str) -> List[Dict[str, str]]:
    out = [dict(m) for m in messages]
    for m in out:
        if m.get("role") == "system":
            m["content"] = (m.get("content") or "") + "\n\n" + instructions
            return out
    return [{"role": "system", "content": instructions}, *out]


class LLMClient:
    """
    Single entry point for LLM calls made by graph nodes.

    - text: `invoke_text(messages, config=...) -> str`
    - structured: `invoke_structured(schema, messages, config) -> BaseModel | StructuredResult`
    """

    def __init__(
        self,
        *,
        providers: Dict[str, LLMProvider],
        default_provider: str = "openai",
        default_model: str = "gpt-4o-mini",
        fallback_provider: Optional[str] = None,
        fallback_model: Optional[str] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
        breaker: Optional[CircuitBreaker] = None,
        debug_logging: bool = False,
    ):
        self._providers = providers
        self._default_provider = default_provider
        self._default_model = default_model
        self._fallback_provider = fallback_provider
        self._fallback_model = fallback_model
        self._limiter = limiter or ConcurrencyLimiter(max_inflight=5)
        self._breaker = breaker or CircuitBreaker(failure_threshold=5, reset_timeout_s=5)
        self._debug_logging = debug_logging

    def _build_router(self, config: LLMConfig) -> LLMRouter:
        route = ModelRoute(
            primary_provider=self._default_provider,
            primary_model=config.model or self._default_model,
            fallback_provider=self._fallback_provider,
            fallback_model=self._fallback_model,
            retry_policy=RetryPolicy(max_attempts=max(1, int(config.retries))),
        )
        return LLMRouter(
            providers=self._providers,
            route=route,
            limiter=self._limiter,
            breaker=self._breaker,
        )

    def _payload(
        self,
        *,
        call_id: str,
        config: LLMConfig,
        context: LLMCallContext | None,
        messages: List[Dict[str, str]],
        schema_name: str | None,
    ) -> Dict[str, Any]:
        return {
            "llm_call_id": call_id,
            "call_id": context.call_id if context else None,
            "tenant_id": context.tenant_id if context else None,
            "node": context.node if context else None,
            "task": context.task if context else None,
            "provider": self._default_provider,
            "model": config.model or self._default_model,
            "structured": schema_name is not None,
            "schema": schema_name,
            "input": messages_fingerprint(messages),
        }

    async def _generate(
        self,
        messages: List[Dict[str, str]],
        *,
        config: LLMConfig,
        context: LLMCallContext | None,
        schema_name: str | None = None,
    ) -> str:
        logger = logging.getLogger(__name__)
        call_id = uuid4().hex[:12]
        payload = self._payload(
            call_id=call_id, config=config, context=context, messages=messages, schema_name=schema_name
        )
        logger.info(json.dumps({"event": "llm_call_start", **payload}, ensure_ascii=False))
        req = LLMRequest(
            messages=_normalize_messages(messages),
            model=config.model or self._default_model,
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            metadata={
                **(config.metadata or {}),
                "call_id": context.call_id if context else None,
                "node": context.node if context else None,
                "task": context.task if context else None,
            },
        )
        start = time.perf_counter()
        try:
            resp = await self._build_router(config).generate(req)
        except Exception as e:
            logger.error(
                json.dumps(
                    {
                        "event": "llm_call_error",
                        **payload,
                        "latency_ms": int((time.perf_counter() - start) * 1000),
                        "outcome": "error",
                        "error_kind": error_kind(e),
                    },
                    ensure_ascii=False,
                )
            )
            raise
        logger.info(
            json.dumps(
                {
                    "event": "llm_call_success",
                    **payload,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                    "outcome": "success",
                    "fallback_used": resp.fallback_used,
                    "finish_reason": resp.finish_reason,
                    "tokens_total": resp.usage.total_tokens,
                    "output_chars": len(resp.content or ""),
                },
                ensure_ascii=False,
            )
        )
        if self._debug_logging:
            logger.debug(
                json.dumps(
                    {"event": "llm_debug", "llm_call_id": call_id, "messages": messages, "response": resp.content},
                    ensure_ascii=False,
                )
            )
        return resp.content or ""

    async def invoke_text(
        self,
        messages: List[Dict[str, str]],
        *,
        config: LLMConfig,
        context: LLMCallContext | None = None,
    ) -> str:
        return await self._generate(messages, config=config, context=context)

    async def invoke_structured(
        self,
        schema: Type[BaseModel],
        messages: List[Dict[str, str]],
        config: LLMConfig,
        include_raw: bool = False,
        context: LLMCallContext | None = None,
    ):
        """Ask for JSON matching `schema`; format instructions go into the system message.

        With `include_raw=True` parse failures are returned in a `StructuredResult`
        instead of raising `ValueError`.
        """
        parser = JsonOutputParser(pydantic_object=schema)
        prompt = _inject_format_instructions(messages, parser.get_format_instructions())
        raw = await self._generate(prompt, config=config, context=context, schema_name=schema.__name__)

        parsed = None
        parsing_error = None
        try:
            parsed = schema(**parser.parse(raw))
        except (OutputParserException, ValidationError, TypeError) as e:
            parsing_error = str(e)
            logging.getLogger(__name__).warning(
                json.dumps(
                    {
                        "event": "llm_parse_error",
                        "schema": schema.__name__,
                        "node": context.node if context else None,
                        "error": parsing_error[:200],
                    },
                    ensure_ascii=False,
                )
            )

        if include_raw:
            return StructuredResult(parsed=parsed, raw=raw, parsing_error=parsing_error)
        if parsing_error:
            raise ValueError(parsing_error)
        return parsed
