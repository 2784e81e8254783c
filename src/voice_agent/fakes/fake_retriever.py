# voice_agent/fakes/fake_retriever.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class FakeRetriever:
    def __init__(self, *, docs: Optional[List[Dict[str, Any]]] = None, raise_exc: Exception | None = None):
        self.docs = docs or []
        self._raise = raise_exc
        self.calls: List[Dict[str, Any]] = []

    async def search(self, query: str, *, tenant_id: str, locale: str, top_k: int = 5):
        self.calls.append({"query": query, "tenant_id": tenant_id, "locale": locale, "top_k": top_k})
        if self._raise:
            raise self._raise
        return self.docs[:top_k]

