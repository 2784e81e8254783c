from __future__ import annotations

import json
import logging
from typing import Any, Dict, Protocol


class ToolAuditSink(Protocol):
    async def record(self, entry: Dict[str, Any]) -> None: ...


class LoggingAuditSink:
    def __init__(self, logger_name: str = "voice_agent.audit"):
        self._logger = logging.getLogger(logger_name)

    async def record(self, entry: Dict[str, Any]) -> None:
        self._logger.info(json.dumps({"event": "tool_executed", **entry}, ensure_ascii=False, default=str))


class DataStoreAuditSink:
    """Writes a `tool_executed` call event through the business data store."""

    def __init__(self, store: Any):
        self._store = store

    async def record(self, entry: Dict[str, Any]) -> None:
        await self._store.record_event(entry.get("call_id") or "", "tool_executed", dict(entry))
