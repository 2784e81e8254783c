import json
import logging
import time

from fastapi import APIRouter, Depends, Request

from voice_agent.api.deps import get_orchestrator
from voice_agent.api.errors import MissingTenantError
from voice_agent.api.schemas import (
    ToolCallRequest,
    TurnRequest,
    TurnResponse,
    turn_request_to_orchestrator_request,
    turn_result_to_response,
)
from voice_agent.config import get_settings as get_agent_settings
from voice_agent.orchestrator.service import TurnOrchestrator, TurnResult
from voice_agent.utils.hashing import messages_fingerprint, utterance_fingerprint

router = APIRouter()


def _tenant_id(payload: TurnRequest, request: Request) -> str:
    tenant_id = payload.tenant_id or getattr(request.state, "tenant_id", None) or request.headers.get("x-tenant-id")
    if not tenant_id:
        raise MissingTenantError()
    return tenant_id


async def _handle(payload: TurnRequest, request: Request, orchestrator: TurnOrchestrator, *, tool_call: bool):
    logger = logging.getLogger(__name__)
    start = time.perf_counter()
    trace_id = getattr(request.state, "trace_id", None)
    tenant_id = _tenant_id(payload, request)
    req = turn_request_to_orchestrator_request(payload, tenant_id=tenant_id, trace_id=trace_id)
    fp = messages_fingerprint([m.model_dump() for m in payload.messages])
    logger.info(
        json.dumps(
            {
                "event": "api_turn_request",
                "trace_id": trace_id,
                "tenant_id": tenant_id,
                "call_id": payload.call_id,
                "path": request.url.path,
                "graph": getattr(orchestrator, "graph_name", None),
                "tool_call": tool_call,
                "tool_name": getattr(payload, "tool_name", None),
                "locale": payload.locale,
                "messages_count": fp.get("count"),
                "input": utterance_fingerprint(payload.input),
                "confirmation_status": payload.confirmation_status,
                "has_pending_tool": payload.pending_tool is not None,
            },
            ensure_ascii=False,
        )
    )
    status_code = 500
    result: TurnResult | None = None
    try:
        result = await (orchestrator.run_tool_call(req) if tool_call else orchestrator.run(req))
        status_code = 200
        return turn_result_to_response(result)
    finally:
        latency_ms_total = int((time.perf_counter() - start) * 1000)
        if get_agent_settings().debug_logging and result is not None:
            logger.info(
                json.dumps(
                    {
                        "event": "api_debug",
                        "trace_id": trace_id,
                        "input": payload.input,
                        "response": result.response.text,
                        "pending_tool": result.persisted_fields().get("pending_tool"),
                    },
                    ensure_ascii=False,
                    default=str,
                )
            )
        logger.info(
            json.dumps(
                {
                    "event": "api_turn_response",
                    "trace_id": trace_id,
                    "status_code": status_code,
                    "status": ("degraded" if result.degraded else "ok") if result else "error",
                    "latency_ms_total": latency_ms_total,
                    "intent": result.state.get("intent") if result else None,
                    "response_chars": len(result.response.text) if result else 0,
                    "end_call": result.response.end_call if result else None,
                    "errors_count": len(result.state.get("errors") or []) if result else None,
                },
                ensure_ascii=False,
            )
        )


@router.post(
    "/turn",
    response_model=TurnResponse,
    summary="Process one caller utterance",
    description=(
        "Example request:\n\n"
        "```\n"
        "curl -X POST http://localhost:8000/v1/turn \\\n"
        "  -H 'Content-Type: application/json' \\\n"
        "  -d '{\"call_id\":\"c1\",\"tenant_id\":\"t1\",\"input\":\"quiero reservar una mesa\"}'\n"
        "```\n"
    ),
)
async def turn(
    payload: TurnRequest,
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> TurnResponse:
    return await _handle(payload, request, orchestrator, tool_call=False)


@router.post(
    "/tool-call",
    response_model=TurnResponse,
    summary="Run a tool requested directly by the voice platform",
)
async def tool_call(
    payload: ToolCallRequest,
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> TurnResponse:
    return await _handle(payload, request, orchestrator, tool_call=True)
