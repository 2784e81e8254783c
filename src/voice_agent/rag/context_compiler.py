from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from voice_agent.utils.text import normalize_text


def _entry_line(doc: Dict[str, Any]) -> str:
    content = (doc.get("content") or doc.get("text") or "").strip()
    if not content:
        return ""
    title = ((doc.get("metadata") or {}).get("title") or "").strip()
    return f"{title}: {content}" if title else content


@dataclass
class ContextCompiler:
    """Turns retrieved knowledge entries into the prompt block the voice answer is grounded on.

    Entries keep retrieval order. The same fact stored under two categories is
    spoken once.
    """

    max_chars: int = 4000
    separator: str = "\n\n"

    def compile(self, docs: Iterable[Dict[str, Any]]) -> str:
        seen: set[str] = set()
        lines: List[str] = []
        for doc in docs:
            line = _entry_line(doc)
            key = normalize_text(doc.get("content") or doc.get("text"))
            if not line or key in seen:
                continue
            seen.add(key)
            lines.append(line)
        return self._clip(self.separator.join(lines))

    def _clip(self, context: str) -> str:
        if len(context) <= self.max_chars:
            return context
        return context[: self.max_chars].rstrip()
