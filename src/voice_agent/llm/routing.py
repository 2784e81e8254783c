from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from voice_agent.utils.hashing import hash_message_contents

from .base import LLMProvider
from .circuit_breaker import CircuitBreaker
from .errors import LLMUnavailable
from .rate_limit import ConcurrencyLimiter
from .retry import RetryPolicy, with_retries
from .types import LLMRequest, LLMResponse


@dataclass(frozen=True)
class ModelRoute:
    primary_provider: str
    primary_model: str
    fallback_provider: Optional[str] = None
    fallback_model: Optional[str] = None
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    fallback_retry_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_attempts=1))


class LLMRouter:
    """Primary provider with retries behind a breaker, then an optional fallback route."""

    def __init__(
        self,
        *,
        providers: Dict[str, LLMProvider],
        route: ModelRoute,
        limiter: ConcurrencyLimiter,
        breaker: CircuitBreaker,
    ):
        self._providers = providers
        self._route = route
        self._limiter = limiter
        self._breaker = breaker

    def _log_event(
        self,
        *,
        req: LLMRequest,
        provider_name: str,
        latency_ms: int,
        outcome: str,
        error: Exception | None = None,
    ) -> None:
        meta = req.metadata or {}
        logging.getLogger(__name__).info(
            json.dumps(
                {
                    "event": "llm_provider_call",
                    "call_id": meta.get("call_id"),
                    "node": meta.get("node"),
                    "task": meta.get("task"),
                    "provider": provider_name,
                    "model": req.model,
                    "latency_ms": latency_ms,
                    "outcome": outcome,
                    "inflight": self._limiter.inflight,
                    "error_type": type(error).__name__ if error else None,
                    "message_count": len(req.messages),
                    "messages_hash": hash_message_contents([m.content for m in req.messages])[:12],
                },
                ensure_ascii=False,
            )
        )

    async def _call(self, provider_name: str, req: LLMRequest) -> LLMResponse:
        provider = self._providers.get(provider_name)
        if provider is None:
            raise LLMUnavailable(f"Provider not configured: {provider_name}")
        async with self._limiter:
            start = time.perf_counter()
            try:
                resp = await provider.generate(req)
            except Exception as e:
                self._log_event(
                    req=req,
                    provider_name=provider_name,
                    latency_ms=int((time.perf_counter() - start) * 1000),
                    outcome="error",
                    error=e,
                )
                raise
            latency_ms = int((time.perf_counter() - start) * 1000)
            self._log_event(req=req, provider_name=provider_name, latency_ms=latency_ms, outcome="ok")
            if resp.latency_ms > 0:
                return resp
            return replace(resp, latency_ms=latency_ms)

    async def generate(self, req: LLMRequest) -> LLMResponse:
        route = self._route
        primary_req = replace(req, model=req.model or route.primary_model)

        async def _call_primary() -> LLMResponse:
            if not self._breaker.allow():
                raise LLMUnavailable("Circuit breaker open")
            return await self._call(route.primary_provider, primary_req)

        try:
            resp = await with_retries(_call_primary, policy=route.retry_policy)
        except Exception as e:
            self._breaker.record_failure(e)
            if not (route.fallback_provider and route.fallback_model):
                raise
            fallback_req = replace(req, model=route.fallback_model)
            resp = await with_retries(
                lambda: self._call(route.fallback_provider, fallback_req),
                policy=route.fallback_retry_policy,
            )
            return replace(resp, fallback_used=True)

        self._breaker.record_success()
        return resp
