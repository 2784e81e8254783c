from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from voice_agent.graphs.state import RAGResult
from voice_agent.rag.context_compiler import ContextCompiler
from voice_agent.utils.hashing import hash_text_short

from .utils import locale_of, node_error, step_begin, step_end

NODE = "rag"


@dataclass
class RagRetrieveNode:
    retriever: Any | None = None
    compiler: ContextCompiler = field(default_factory=ContextCompiler)
    top_k: int = 5

    async def __call__(self, state: dict) -> dict:
        started = step_begin(state, NODE)
        query = self._pick_query(state)
        if self.retriever is None or not query:
            reason = "no_retriever" if self.retriever is None else "no_query"
            return {
                "rag_result": RAGResult(success=False),
                **step_end(state, NODE, started=started, status="skip", reason=reason),
            }

        search_start = time.perf_counter()
        try:
            docs = await self.retriever.search(
                query,
                tenant_id=state.get("tenant_id") or "",
                locale=locale_of(state),
                top_k=self.top_k,
            )
        except Exception as e:
            latency_ms = int((time.perf_counter() - search_start) * 1000)
            return {
                "rag_result": RAGResult(success=False, latency_ms=latency_ms),
                "errors": [node_error(NODE, f"retrieval_failed: {e}")],
                **step_end(state, NODE, started=started, status="error", reason="rag_error"),
            }
        latency_ms = int((time.perf_counter() - search_start) * 1000)

        sources: List[Dict[str, Any]] = []
        for d in docs or []:
            sources.append(
                {
                    "id": str(d.get("id") or d.get("doc_id") or ""),
                    "score": float(d.get("score") or 0.0),
                    "metadata": d.get("metadata") or {},
                }
            )
        context = self.compiler.compile(docs or [])
        result = RAGResult(context=context, sources=sources, success=bool(context), latency_ms=latency_ms)

        logging.info(
            json.dumps(
                {
                    "event": "rag_retrieved",
                    "call_id": state.get("call_id"),
                    "query_fingerprint": hash_text_short(query),
                    "doc_ids": [s["id"] for s in sources],
                    "scores": [s["score"] for s in sources],
                    "context_chars": len(context),
                    "latency_ms": latency_ms,
                },
                ensure_ascii=False,
            )
        )
        return {"rag_result": result, **step_end(state, NODE, started=started)}

    def _pick_query(self, state: dict) -> Optional[str]:
        current = (state.get("current_input") or "").strip()
        if current:
            return current
        for m in reversed(state.get("messages") or []):
            if isinstance(m, dict) and m.get("role") == "user":
                c = (m.get("content") or "").strip()
                if c:
                    return c
        return None
