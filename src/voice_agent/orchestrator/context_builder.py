# src/voice_agent/orchestrator/context_builder.py
from typing import Any, Dict, List
from uuid import uuid4

from voice_agent.graphs.state import PendingTool, TurnState, create_initial_state

ROLES = ("system", "user", "assistant")


def normalize_messages(messages: List[Dict[str, str]] | None) -> List[Dict[str, str]]:
    normalized = []
    for m in messages or []:
        if "role" not in m or "content" not in m:
            raise ValueError("Each message must have role and content")
        if m["role"] not in ROLES:
            raise ValueError(f"Unknown role: {m['role']}")
        normalized.append(
            {
                "role": m["role"],
                "content": m["content"] or "",
            }
        )
    return normalized


def _pending_tool(value: Any) -> PendingTool | None:
    if value is None or isinstance(value, PendingTool):
        return value
    return PendingTool.from_dict(value)


def build_turn_state(request: Dict[str, Any], *, default_locale: str = "es") -> TurnState:
    """Fresh per-turn state from the caller's request and the cross-turn fields it carries."""
    current_input = (request.get("input") or "").strip()
    messages = normalize_messages(request.get("messages"))
    if current_input:
        messages.append({"role": "user", "content": current_input})
    return create_initial_state(
        call_id=str(request["call_id"]),
        tenant_id=str(request["tenant_id"]),
        current_input=current_input,
        locale=request.get("locale") or default_locale,
        messages=messages,
        pending_tool=_pending_tool(request.get("pending_tool")),
        confirmation_status=request.get("confirmation_status") or "none",
        confirmation_attempts=int(request.get("confirmation_attempts") or 0),
        trace_id=request.get("trace_id") or str(uuid4()),
    )


def build_tool_call_state(request: Dict[str, Any], *, default_locale: str = "es") -> TurnState:
    """State for a direct function call: the tool is queued and classification is skipped."""
    state = build_turn_state(request, default_locale=default_locale)
    state["pending_tool"] = PendingTool(
        name=str(request["tool_name"]),
        parameters=dict(request.get("parameters") or {}),
    )
    state["intent"] = "tool"
    state["confidence"] = 1.0
    state["entities"] = dict(request.get("parameters") or {})
    state["skip_classification"] = True
    return state
