import json
import logging
import time
from typing import Any, Dict

from voice_agent.graphs.state import GraphError
from voice_agent.llm.types import LLMCallContext


def step_begin(state: dict, node: str) -> float:
    logging.info(
        json.dumps(
            {
                "event": "node_start",
                "trace_id": state.get("trace_id"),
                "call_id": state.get("call_id"),
                "node": node,
            },
            ensure_ascii=False,
        )
    )
    return time.perf_counter()


def step_end(
    state: dict,
    node: str,
    *,
    started: float,
    status: str = "ok",
    reason: str | None = None,
) -> Dict[str, Any]:
    """Log the node end and return the bookkeeping part of its patch."""
    latency_ms = int((time.perf_counter() - started) * 1000)
    logging.info(
        json.dumps(
            {
                "event": "node_end",
                "trace_id": state.get("trace_id"),
                "call_id": state.get("call_id"),
                "node": node,
                "latency_ms": latency_ms,
                "status": status,
                "error_code": reason,
            },
            ensure_ascii=False,
        )
    )
    return {
        "latencies": {node: latency_ms},
        "visited_nodes": [node],
        "current_node": node,
    }


def node_error(node: str, exc: Exception | str, *, recoverable: bool | None = None) -> GraphError:
    if recoverable is None:
        recoverable = bool(getattr(exc, "recoverable", True))
    message = str(exc) if isinstance(exc, Exception) else exc
    logging.warning(
        json.dumps(
            {
                "event": "node_error",
                "node": node,
                "error_type": type(exc).__name__ if isinstance(exc, Exception) else None,
                "message": message,
                "recoverable": recoverable,
            },
            ensure_ascii=False,
        )
    )
    return GraphError(node=node, message=message, recoverable=recoverable)


def locale_of(state: dict) -> str:
    return state.get("locale") or "es"


def llm_context(state: dict, node: str, task: str) -> LLMCallContext:
    return LLMCallContext(
        call_id=state.get("call_id"),
        tenant_id=state.get("tenant_id"),
        node=node,
        task=task,
    )
