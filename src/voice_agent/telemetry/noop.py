from __future__ import annotations

from typing import Any, Dict, Protocol


class Telemetry(Protocol):
    """Turn-level hooks the orchestrator reports to (one event per finished turn)."""

    def event(self, name: str, payload: Dict[str, Any]) -> None: ...

    def error(self, trace_id: str | None, exc: Exception) -> None: ...


class NoOpTelemetry:
    """Default when no metrics backend is wired; the JSON logs still carry every turn."""

    def event(self, name: str, payload: Dict[str, Any]) -> None:  # noqa: ARG002
        return None

    def error(self, trace_id: str | None, exc: Exception) -> None:  # noqa: ARG002
        return None
