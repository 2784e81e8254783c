from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict

from voice_agent.graphs.state import PendingTool, ToolExecutionResult
from voice_agent.patterns import localized
from voice_agent.patterns.responses import FIXED_PHRASES
from voice_agent.tools.executor import ToolExecutor
from voice_agent.tools.registry import ToolExecutionContext, ToolRegistry, render_confirmation

from .utils import locale_of, node_error, step_begin, step_end

NODE = "tool_executor"


@dataclass
class ToolExecutorNode:
    registry: ToolRegistry
    executor: ToolExecutor = field(default_factory=ToolExecutor)
    data: Any | None = None

    async def __call__(self, state: dict) -> dict:
        started = step_begin(state, NODE)
        locale = locale_of(state)
        pending: PendingTool | None = state.get("pending_tool")

        if pending is None:
            result = ToolExecutionResult(
                success=False,
                error="no_pending_tool",
                voice_message=localized(FIXED_PHRASES, "no_action", locale),
            )
            return {"tool_result": result, **step_end(state, NODE, started=started, status="skip", reason="no_pending_tool")}

        tool, found = self.registry.lookup(pending.name)
        if not found:
            result = ToolExecutionResult(
                success=False,
                error=f"tool_not_found:{pending.name}",
                voice_message=localized(FIXED_PHRASES, "tool_not_available", locale),
            )
            return {
                "tool_result": result,
                "pending_tool": None,
                "confirmation_status": "none",
                "confirmation_attempts": 0,
                "errors": [node_error(NODE, f"Tool not registered: {pending.name}")],
                **step_end(state, NODE, started=started, status="error", reason="tool_not_found"),
            }

        entities: Dict[str, Any] = state.get("entities") or {}
        if tool.requires_confirmation and state.get("confirmation_status") != "confirmed":
            message = render_confirmation(tool, pending.parameters, entities, locale)
            logging.info(
                json.dumps(
                    {
                        "event": "tool_confirmation_requested",
                        "call_id": state.get("call_id"),
                        "tool": tool.name,
                    },
                    ensure_ascii=False,
                )
            )
            return {
                "pending_tool": replace(pending, requires_confirmation=True, confirmation_message=message),
                "confirmation_status": "pending",
                "response": message,
                "response_type": "confirmation_request",
                **step_end(state, NODE, started=started, status="skip", reason="awaiting_confirmation"),
            }

        ctx = ToolExecutionContext(
            tenant_id=state.get("tenant_id") or "",
            call_id=state.get("call_id") or "",
            locale=locale,
            data=self.data,
            entities=entities,
        )
        result = await self.executor.execute(tool, dict(pending.parameters), ctx)
        patch: Dict[str, Any] = {
            "tool_result": result,
            "pending_tool": None,
            "confirmation_status": "none",
            "confirmation_attempts": 0,
        }
        if not result.success:
            patch["errors"] = [node_error(NODE, f"{tool.name}: {result.error}")]
        status = "ok" if result.success else "error"
        return {**patch, **step_end(state, NODE, started=started, status=status, reason=None if result.success else "tool_failed")}
