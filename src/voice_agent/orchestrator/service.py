# src/voice_agent/orchestrator/service.py
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from voice_agent.agent.nodes.response_generator import VoiceResponse, format_voice_response
from voice_agent.graphs.state import GraphError, apply_patch
from voice_agent.orchestrator.context_builder import build_tool_call_state, build_turn_state
from voice_agent.patterns import localized
from voice_agent.patterns.responses import FIXED_PHRASES
from voice_agent.telemetry.noop import NoOpTelemetry
from voice_agent.utils.hashing import utterance_fingerprint


class OrchestratorError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "orchestrator_error",
        trace_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.trace_id = trace_id


@dataclass
class TurnResult:
    state: Dict[str, Any]
    response: VoiceResponse
    metrics: Dict[str, Any] = field(default_factory=dict)

    def persisted_fields(self) -> Dict[str, Any]:
        """What the caller stores between turns."""
        pending = self.state.get("pending_tool")
        return {
            "messages": list(self.state.get("messages") or []),
            "pending_tool": pending.to_dict() if pending is not None else None,
            "confirmation_status": self.state.get("confirmation_status") or "none",
            "confirmation_attempts": int(self.state.get("confirmation_attempts") or 0),
        }

    @property
    def degraded(self) -> bool:
        return bool(self.state.get("errors"))


class TurnOrchestrator:
    def __init__(
        self,
        *,
        graph,
        telemetry=None,
        default_locale: str = "es",
        latency_warning_ms: int = 800,
        graph_name: str | None = None,
    ):
        self.graph = graph
        self.telemetry = telemetry or NoOpTelemetry()
        self.default_locale = default_locale
        self.latency_warning_ms = latency_warning_ms
        self.graph_name = graph_name or "turn_graph"

    async def run(self, request: Dict[str, Any]) -> TurnResult:
        self._require(request, ("tenant_id", "call_id"))
        return await self._invoke(self._build(build_turn_state, request))

    async def run_tool_call(self, request: Dict[str, Any]) -> TurnResult:
        self._require(request, ("tenant_id", "call_id", "tool_name"))
        return await self._invoke(self._build(build_tool_call_state, request))

    def _build(self, builder, request: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return builder(request, default_locale=self.default_locale)
        except (ValueError, TypeError) as e:
            raise OrchestratorError(str(e), status_code=400, code="bad_request", trace_id=request.get("trace_id")) from e

    @staticmethod
    def _require(request: Dict[str, Any], keys) -> None:
        for key in keys:
            if not request.get(key):
                raise OrchestratorError(
                    f"Missing required field: {key}",
                    status_code=400,
                    code="bad_request",
                    trace_id=request.get("trace_id"),
                )

    async def _invoke(self, state: Dict[str, Any]) -> TurnResult:
        logger = logging.getLogger(__name__)
        trace_id = state.get("trace_id")
        start = time.perf_counter()
        logger.info(
            json.dumps(
                {
                    "event": "turn_start",
                    "trace_id": trace_id,
                    "call_id": state.get("call_id"),
                    "tenant_id": state.get("tenant_id"),
                    "graph": self.graph_name,
                    "locale": state.get("locale"),
                    "confirmation_status": state.get("confirmation_status"),
                    "input": utterance_fingerprint(state.get("current_input")),
                },
                ensure_ascii=False,
            )
        )
        try:
            result_state = await self.graph.ainvoke(state)
        except Exception as e:
            self.telemetry.error(trace_id, e)
            logger.exception(
                json.dumps({"event": "turn_crashed", "trace_id": trace_id, "call_id": state.get("call_id")})
            )
            apology = localized(FIXED_PHRASES, "apology", state.get("locale") or self.default_locale)
            result_state = apply_patch(
                state,
                {
                    "response": apology,
                    "response_type": "error",
                    "messages": [{"role": "assistant", "content": apology}],
                    "errors": [GraphError(node="orchestrator", message=str(e), recoverable=True)],
                    "is_complete": True,
                },
            )

        total_latency_ms = int((time.perf_counter() - start) * 1000)
        visited = list(result_state.get("visited_nodes") or [])
        metrics = {"total_latency_ms": total_latency_ms, "nodes_visited": visited}
        response = format_voice_response(result_state)

        payload = {
            "event": "turn_end",
            "trace_id": trace_id,
            "call_id": result_state.get("call_id"),
            "intent": result_state.get("intent"),
            "confidence": result_state.get("confidence"),
            "nodes_visited": visited,
            "latencies": result_state.get("latencies") or {},
            "total_latency_ms": total_latency_ms,
            "errors_count": len(result_state.get("errors") or []),
            "end_call": response.end_call,
        }
        logger.info(json.dumps(payload, ensure_ascii=False))
        if total_latency_ms > self.latency_warning_ms:
            logger.warning(
                json.dumps(
                    {
                        "event": "turn_latency_warning",
                        "trace_id": trace_id,
                        "total_latency_ms": total_latency_ms,
                        "threshold_ms": self.latency_warning_ms,
                    }
                )
            )
        self.telemetry.event("turn_completed", payload)
        return TurnResult(state=dict(result_state), response=response, metrics=metrics)
