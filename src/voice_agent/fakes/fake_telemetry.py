# voice_agent/fakes/fake_telemetry.py
from __future__ import annotations

from typing import Any, Dict, List


class FakeTelemetry:
    def __init__(self):
        self.events: List[Dict[str, Any]] = []
        self.errors: List[Exception] = []

    def event(self, name: str, payload: dict):
        self.events.append({"name": name, "payload": payload})

    def error(self, trace_id: str | None, exc: Exception):  # noqa: ARG002
        self.errors.append(exc)
