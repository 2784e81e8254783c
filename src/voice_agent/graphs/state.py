# src/voice_agent/graphs/state.py
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, TypedDict

Intent = Literal["tool", "rag", "direct", "transfer", "confirm", "unknown"]
ConfirmationStatus = Literal["pending", "confirmed", "denied", "none"]
Locale = Literal["es", "en"]
NodeName = Literal["router", "rag", "tool_executor", "confirmation", "response_generator", "__end__"]

INTENTS: tuple[str, ...] = ("tool", "rag", "direct", "transfer", "confirm", "unknown")
CONFIRMATION_STATUSES: tuple[str, ...] = ("pending", "confirmed", "denied", "none")
LOCALES: tuple[str, ...] = ("es", "en")
NODE_NAMES: tuple[str, ...] = ("router", "rag", "tool_executor", "confirmation", "response_generator", "__end__")

DEFAULT_LOCALE: Locale = "es"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PendingTool:
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    requires_confirmation: bool = False
    confirmation_message: Optional[str] = None
    enqueued_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> Optional["PendingTool"]:
        if not data or not data.get("name"):
            return None
        return cls(
            name=str(data["name"]),
            parameters=dict(data.get("parameters") or {}),
            requires_confirmation=bool(data.get("requires_confirmation", False)),
            confirmation_message=data.get("confirmation_message"),
            enqueued_at=int(data.get("enqueued_at") or now_ms()),
        )


@dataclass(frozen=True)
class ToolExecutionResult:
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    voice_message: Optional[str] = None
    forward_to_client: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> Optional["ToolExecutionResult"]:
        if not data:
            return None
        return cls(
            success=bool(data.get("success")),
            data=data.get("data"),
            error=data.get("error"),
            voice_message=data.get("voice_message"),
            forward_to_client=bool(data.get("forward_to_client", False)),
        )


@dataclass(frozen=True)
class RAGResult:
    context: str = ""
    sources: List[Dict[str, Any]] = field(default_factory=list)
    success: bool = False
    latency_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GraphError:
    node: str
    message: str
    timestamp: int = field(default_factory=now_ms)
    recoverable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def append_items(left: Optional[list], right: Optional[list]) -> list:
    if not left:
        return list(right or [])
    if not right:
        return list(left)
    return list(left) + list(right)


def merge_latencies(left: Optional[Dict[str, int]], right: Optional[Dict[str, int]]) -> Dict[str, int]:
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class TurnState(TypedDict, total=False):
    # identity
    call_id: str
    tenant_id: str
    trace_id: str
    locale: Locale

    # conversation
    messages: Annotated[List[Dict[str, str]], append_items]
    current_input: str
    normalized_input: str

    # classification
    intent: Intent
    confidence: float
    sub_intent: Optional[str]
    entities: Dict[str, Any]
    skip_classification: bool

    # tools / confirmation
    pending_tool: Optional[PendingTool]
    tool_result: Optional[ToolExecutionResult]
    confirmation_status: ConfirmationStatus
    confirmation_attempts: int

    # retrieval
    rag_result: Optional[RAGResult]

    # output
    response: Optional[str]
    response_type: Optional[str]
    end_call: bool
    end_call_reason: Optional[str]

    # observability
    latencies: Annotated[Dict[str, int], merge_latencies]
    errors: Annotated[List[GraphError], append_items]
    visited_nodes: Annotated[List[str], append_items]
    current_node: NodeName
    is_complete: bool


# Field-level merge rules; anything not listed is last-write-wins.
FIELD_MERGE_RULES: Dict[str, str] = {
    "messages": "append",
    "errors": "append",
    "visited_nodes": "append",
    "latencies": "merge",
}

_REDUCERS = {
    "append": append_items,
    "merge": merge_latencies,
}


def apply_patch(state: Dict[str, Any], patch: Dict[str, Any] | None) -> Dict[str, Any]:
    """Return a new state with `patch` merged in; `state` is left untouched."""
    out = dict(state)
    for key, value in (patch or {}).items():
        rule = FIELD_MERGE_RULES.get(key)
        if rule is None:
            out[key] = value
        else:
            out[key] = _REDUCERS[rule](out.get(key), value)
    return out


def create_initial_state(
    *,
    call_id: str,
    tenant_id: str,
    current_input: str,
    locale: str = DEFAULT_LOCALE,
    messages: List[Dict[str, str]] | None = None,
    pending_tool: PendingTool | None = None,
    confirmation_status: str = "none",
    confirmation_attempts: int = 0,
    trace_id: str | None = None,
) -> TurnState:
    if locale not in LOCALES:
        locale = DEFAULT_LOCALE
    if confirmation_status not in CONFIRMATION_STATUSES:
        confirmation_status = "none"
    return TurnState(
        call_id=call_id,
        tenant_id=tenant_id,
        trace_id=trace_id or call_id,
        locale=locale,  # type: ignore[typeddict-item]
        messages=list(messages or []),
        current_input=current_input or "",
        normalized_input="",
        intent="unknown",
        confidence=0.0,
        sub_intent=None,
        entities={},
        skip_classification=False,
        pending_tool=pending_tool,
        tool_result=None,
        confirmation_status=confirmation_status,  # type: ignore[typeddict-item]
        confirmation_attempts=int(confirmation_attempts or 0),
        rag_result=None,
        response=None,
        response_type=None,
        end_call=False,
        end_call_reason=None,
        latencies={},
        errors=[],
        visited_nodes=[],
        current_node="router",
        is_complete=False,
    )


def has_outstanding_confirmation(state: Dict[str, Any]) -> bool:
    return state.get("confirmation_status") == "pending" and state.get("pending_tool") is not None
