from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from voice_agent.orchestrator.service import TurnResult

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    role: Role
    content: str


class PendingToolPayload(BaseModel):
    name: str = Field(..., description="Tool waiting to run")
    parameters: Dict[str, Any] = Field(default_factory=dict)
    requires_confirmation: bool = False
    confirmation_message: Optional[str] = Field(
        default=None,
        description="Question read back to the caller when the tool was queued.",
    )
    enqueued_at: Optional[int] = Field(default=None, description="Epoch milliseconds")


class TurnRequest(BaseModel):
    """
    One caller utterance plus the state carried over from the previous turn.
    The transport stores `persisted` from the response and sends it back here.
    """

    call_id: str = Field(..., description="Call / session identifier")
    tenant_id: Optional[str] = Field(
        default=None,
        description="Business identifier. Falls back to the X-Tenant-Id header.",
    )
    input: str = Field(default="", description="Transcribed caller utterance", examples=["quiero reservar mesa"])
    locale: Optional[Literal["es", "en"]] = Field(default=None, description="Response language")
    messages: List[ChatMessage] = Field(default_factory=list, description="History before this turn")
    pending_tool: Optional[PendingToolPayload] = None
    confirmation_status: Literal["pending", "confirmed", "denied", "none"] = "none"
    confirmation_attempts: int = Field(default=0, ge=0)


class ToolCallRequest(TurnRequest):
    """Direct function call from the voice platform; intent classification is skipped."""

    tool_name: str = Field(..., description="Registered tool name", examples=["check_availability"])
    parameters: Dict[str, Any] = Field(default_factory=dict)


class PersistedState(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    pending_tool: Optional[PendingToolPayload] = None
    confirmation_status: Literal["pending", "confirmed", "denied", "none"] = "none"
    confirmation_attempts: int = 0


class TurnError(BaseModel):
    node: str
    message: str
    recoverable: bool = True


class TurnResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    trace_id: Optional[str] = None
    response: str = Field(..., description="Text to speak")
    end_call: bool = False
    end_call_reason: Optional[str] = None
    forward_to_client: Optional[Dict[str, Any]] = None
    intent: Optional[str] = None
    confidence: Optional[float] = None
    persisted: PersistedState
    metrics: Dict[str, Any] = Field(default_factory=dict)
    errors: List[TurnError] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    llm_enabled: bool = False
    tools: List[str] = Field(default_factory=list)


def turn_request_to_orchestrator_request(
    payload: TurnRequest,
    *,
    tenant_id: str,
    trace_id: str | None,
) -> Dict[str, Any]:
    req: Dict[str, Any] = {
        "call_id": payload.call_id,
        "tenant_id": tenant_id,
        "input": payload.input,
        "locale": payload.locale,
        "messages": [m.model_dump() for m in payload.messages],
        "pending_tool": payload.pending_tool.model_dump(exclude_none=True) if payload.pending_tool else None,
        "confirmation_status": payload.confirmation_status,
        "confirmation_attempts": payload.confirmation_attempts,
        "trace_id": trace_id,
    }
    if isinstance(payload, ToolCallRequest):
        req["tool_name"] = payload.tool_name
        req["parameters"] = dict(payload.parameters)
    return req


def turn_result_to_response(result: TurnResult) -> TurnResponse:
    state = result.state
    return TurnResponse(
        status="degraded" if result.degraded else "ok",
        trace_id=state.get("trace_id"),
        response=result.response.text,
        end_call=result.response.end_call,
        end_call_reason=result.response.end_call_reason,
        forward_to_client=result.response.forward_to_client,
        intent=state.get("intent"),
        confidence=state.get("confidence"),
        persisted=PersistedState(**result.persisted_fields()),
        metrics=result.metrics,
        errors=[
            TurnError(node=e.node, message=e.message, recoverable=e.recoverable)
            for e in state.get("errors") or []
        ],
    )
