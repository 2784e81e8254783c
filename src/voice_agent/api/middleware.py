from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    trace_id: str
    tenant_id: Optional[str]
    call_id: Optional[str]


def _call_context(request: Request) -> CallContext:
    # telephony gateways send the call identifiers as headers on every turn
    return CallContext(
        trace_id=request.headers.get("x-trace-id") or uuid4().hex,
        tenant_id=request.headers.get("x-tenant-id"),
        call_id=request.headers.get("x-call-id"),
    )


class TraceLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with trace/tenant/call ids and logs one `api_request` line.

    Bodies are never logged: they carry caller speech.
    """

    async def dispatch(self, request: Request, call_next):
        ctx = _call_context(request)
        request.state.trace_id = ctx.trace_id
        request.state.tenant_id = ctx.tenant_id
        request.state.call_id = ctx.call_id

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, ctx, status_code=500, start=start, failed=True)
            raise
        self._log(request, ctx, status_code=response.status_code, start=start, failed=False)
        response.headers["X-Trace-Id"] = ctx.trace_id
        if ctx.call_id:
            response.headers["X-Call-Id"] = ctx.call_id
        return response

    @staticmethod
    def _log(request: Request, ctx: CallContext, *, status_code: int, start: float, failed: bool) -> None:
        extra = {
            "event": "api_request",
            "trace_id": ctx.trace_id,
            "tenant_id": ctx.tenant_id,
            "call_id": ctx.call_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "latency_ms": int((time.perf_counter() - start) * 1000),
            "outcome": "error" if failed or status_code >= 500 else "success",
        }
        if failed:
            logger.error("api_request", extra=extra)
        else:
            logger.info("api_request", extra=extra)


def setup_middlewares(app) -> None:
    app.add_middleware(TraceLoggingMiddleware)
