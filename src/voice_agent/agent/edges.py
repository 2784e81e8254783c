from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Mapping, Tuple

from voice_agent.graphs.state import NODE_NAMES, has_outstanding_confirmation

END_NODE = "__end__"
FALLBACK_NODE = "response_generator"

# Allowed next hops per node.
TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "router": ("confirmation", "tool_executor", "rag", "response_generator"),
    "rag": ("response_generator",),
    "tool_executor": ("response_generator",),
    "confirmation": ("tool_executor", "response_generator"),
    "response_generator": (END_NODE,),
}

Condition = Callable[[dict], str]


def validate_transitions(transitions: Mapping[str, Tuple[str, ...]] = TRANSITIONS) -> None:
    known = set(NODE_NAMES)
    for source, targets in transitions.items():
        if source not in known or source == END_NODE:
            raise ValueError(f"Unknown transition source: {source}")
        if not targets:
            raise ValueError(f"Node has no outgoing transitions: {source}")
        for target in targets:
            if target not in known:
                raise ValueError(f"Unknown transition target: {source} -> {target}")
    missing = known - set(transitions) - {END_NODE}
    if missing:
        raise ValueError(f"Nodes without transitions: {sorted(missing)}")


def route_after_router(state: dict) -> str:
    intent = state.get("intent")
    if intent == "confirm":
        return "confirmation" if has_outstanding_confirmation(state) else "response_generator"
    if intent in ("tool", "transfer"):
        return "tool_executor"
    if intent == "rag":
        return "rag"
    return "response_generator"


def route_after_rag(state: dict) -> str:  # noqa: ARG001
    return "response_generator"


def route_after_tool_executor(state: dict) -> str:  # noqa: ARG001
    return "response_generator"


def route_after_confirmation(state: dict) -> str:
    if state.get("confirmation_status") == "confirmed" and state.get("pending_tool") is not None:
        return "tool_executor"
    return "response_generator"


def route_after_response(state: dict) -> str:  # noqa: ARG001
    return END_NODE


EDGE_CONDITIONS: Dict[str, Condition] = {
    "router": route_after_router,
    "rag": route_after_rag,
    "tool_executor": route_after_tool_executor,
    "confirmation": route_after_confirmation,
    "response_generator": route_after_response,
}


def safe_edge(source: str, condition: Condition) -> Condition:
    """Wrap an edge so a failure or an illegal target falls back to the response node."""
    allowed = TRANSITIONS[source]
    fallback = FALLBACK_NODE if FALLBACK_NODE in allowed else allowed[0]

    def _edge(state: dict) -> str:
        try:
            target = condition(state)
        except Exception as e:
            logging.warning(
                json.dumps(
                    {"event": "edge_error", "call_id": state.get("call_id"), "source": source, "error": str(e)},
                    ensure_ascii=False,
                )
            )
            return fallback
        if target not in allowed:
            logging.warning(
                json.dumps(
                    {"event": "edge_illegal_target", "call_id": state.get("call_id"), "source": source, "target": target},
                    ensure_ascii=False,
                )
            )
            return fallback
        return target

    _edge.__name__ = f"edge_{source}"
    return _edge
