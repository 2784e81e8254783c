# voice_agent/fakes/fake_llm.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class FakeLLM:
    """Scripted stand-in for LLMClient: same two entry points, canned outputs."""

    def __init__(
        self,
        *,
        texts: Optional[List[str]] = None,
        structured: Optional[List[Dict[str, Any]]] = None,
        raise_exc: Exception | None = None,
    ):
        self._texts = list(texts or [])
        self._structured = list(structured or [])
        self._raise = raise_exc
        self.calls: List[Dict[str, Any]] = []

    async def invoke_text(self, messages, *, config, context=None) -> str:
        self.calls.append({"kind": "text", "messages": messages, "config": config, "context": context})
        if self._raise:
            raise self._raise
        return self._texts.pop(0) if self._texts else "ok"

    async def invoke_structured(self, schema, messages, config, include_raw: bool = False, context=None):  # noqa: ARG002
        self.calls.append({"kind": "structured", "schema": schema.__name__, "messages": messages, "context": context})
        if self._raise:
            raise self._raise
        if not self._structured:
            raise ValueError("no structured output scripted")
        return schema(**self._structured.pop(0))
