# voice_agent/fakes/fake_audit.py
from __future__ import annotations

from typing import Any, Dict, List


class FakeAuditSink:
    def __init__(self, *, raise_exc: Exception | None = None):
        self.entries: List[Dict[str, Any]] = []
        self._raise = raise_exc

    async def record(self, entry: Dict[str, Any]) -> None:
        if self._raise:
            raise self._raise
        self.entries.append(dict(entry))
