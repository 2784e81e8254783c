from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, TypeVar

from voice_agent.errors import ToolTimeoutError
from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.patterns import localized
from voice_agent.patterns.responses import FIXED_PHRASES
from voice_agent.telemetry.audit import ToolAuditSink
from voice_agent.tools.registry import ToolDefinition, ToolExecutionContext, validate_params
from voice_agent.utils.hashing import hash_text_short

T = TypeVar("T")


async def run_with_timeout(aw: Awaitable[T], *, timeout_s: float, tool_name: str) -> T:
    """Await `aw`, cancelling it after `timeout_s`.

    The timer is cancelled on every exit path, so nothing outlives the call.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(aw)
    expired = False

    def _expire() -> None:
        nonlocal expired
        if not task.done():
            expired = True
            task.cancel()

    timer = loop.call_later(timeout_s, _expire)
    try:
        return await task
    except asyncio.CancelledError:
        if expired:
            raise ToolTimeoutError(tool_name, timeout_s) from None
        raise
    finally:
        timer.cancel()


def _redact(params: Dict[str, Any]) -> Dict[str, Any]:
    redacted = {}
    for key, value in params.items():
        if any(token in str(key).lower() for token in ("phone", "email", "name", "address")):
            redacted[key] = "***"
        else:
            redacted[key] = value
    return redacted


@dataclass
class ToolExecutor:
    """Runs one tool: parameter check, timeout, structured logs, audit record."""

    timeout_s: float = 10.0
    audit: Optional[ToolAuditSink] = None

    async def execute(
        self,
        tool: ToolDefinition,
        params: Dict[str, Any],
        ctx: ToolExecutionContext,
    ) -> ToolExecutionResult:
        logger = logging.getLogger(__name__)
        base = {"tool": tool.name, "call_id": ctx.call_id, "tenant_id": ctx.tenant_id}

        validation_error = validate_params(tool.parameters, params)
        if validation_error:
            logger.warning(json.dumps({"event": "tool_invalid_params", **base, "error": validation_error}))
            return ToolExecutionResult(
                success=False,
                error=validation_error,
                voice_message=localized(FIXED_PHRASES, "invalid_params", ctx.locale),
            )

        logger.info(
            json.dumps(
                {
                    "event": "tool_call_start",
                    **base,
                    "args_fingerprint": hash_text_short(json.dumps(_redact(params), sort_keys=True, default=str)),
                },
                ensure_ascii=False,
            )
        )
        start = time.perf_counter()
        try:
            result = await run_with_timeout(tool.execute(params, ctx), timeout_s=self.timeout_s, tool_name=tool.name)
        except ToolTimeoutError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.error(json.dumps({"event": "tool_call_timeout", **base, "latency_ms": latency_ms}))
            result = ToolExecutionResult(
                success=False,
                error=str(e),
                voice_message=localized(FIXED_PHRASES, "tool_timeout", ctx.locale),
            )
        except Exception as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.error(
                json.dumps(
                    {"event": "tool_call_error", **base, "latency_ms": latency_ms, "error": str(e)},
                    ensure_ascii=False,
                )
            )
            result = ToolExecutionResult(
                success=False,
                error=str(e),
                voice_message=localized(FIXED_PHRASES, "tool_error", ctx.locale),
            )
        else:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                json.dumps(
                    {"event": "tool_call_success", **base, "latency_ms": latency_ms, "success": result.success}
                )
            )

        await self._record(tool, params, ctx, result, latency_ms)
        return result

    async def _record(
        self,
        tool: ToolDefinition,
        params: Dict[str, Any],
        ctx: ToolExecutionContext,
        result: ToolExecutionResult,
        latency_ms: int,
    ) -> None:
        if self.audit is None:
            return
        entry = {
            "tool": tool.name,
            "tenant_id": ctx.tenant_id,
            "call_id": ctx.call_id,
            "parameters": _redact(params),
            "success": result.success,
            "error": result.error,
            "latency_ms": latency_ms,
        }
        try:
            await self.audit.record(entry)
        except Exception as e:
            logging.getLogger(__name__).warning(
                json.dumps({"event": "tool_audit_failed", "tool": tool.name, "call_id": ctx.call_id, "error": str(e)})
            )
