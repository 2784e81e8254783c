from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from voice_agent.utils.text import normalize_text

# Short words that would match almost every entry.
_STOPWORDS = frozenset({
    "el", "la", "los", "las", "un", "una", "de", "del", "que", "en", "y", "o", "a", "es", "se",
    "por", "para", "con", "me", "mi", "su", "sus", "lo", "le",
    "the", "an", "of", "to", "and", "or", "is", "are", "do", "you", "your", "i", "my", "for", "in",
})


class KnowledgeRetriever(Protocol):
    async def search(
        self,
        query: str,
        *,
        tenant_id: str,
        locale: str,
        top_k: int = 5,
    ) -> List[Dict[str, Any]]:
        """Return ranked documents: {id, score, content, metadata}."""
        ...


def _terms(text: str) -> List[str]:
    return [t for t in normalize_text(text).split() if len(t) > 2 and t not in _STOPWORDS]


@dataclass
class KeywordKnowledgeRetriever:
    """Term-overlap ranking over the tenant's knowledge entries in the data store."""

    store: Any
    min_score: float = 0.1

    async def search(
        self,
        query: str,
        *,
        tenant_id: str,
        locale: str,  # noqa: ARG002
        top_k: int = 5,
    ) -> List[Dict[str, Any]]:
        query_terms = set(_terms(query))
        if not query_terms:
            return []
        entries = await self.store.list_knowledge(tenant_id)
        scored: List[Dict[str, Any]] = []
        for entry in entries or []:
            content = entry.get("content") or ""
            haystack = set(_terms(f"{entry.get('title') or ''} {content}"))
            overlap = len(query_terms & haystack)
            if not overlap:
                continue
            score = round(overlap / len(query_terms), 4)
            if score < self.min_score:
                continue
            scored.append(
                {
                    "id": str(entry.get("id") or ""),
                    "score": score,
                    "content": content,
                    "metadata": {"title": entry.get("title"), "category": entry.get("category")},
                }
            )
        scored.sort(key=lambda d: d["score"], reverse=True)
        return scored[:top_k]
