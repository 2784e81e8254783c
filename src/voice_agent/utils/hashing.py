from __future__ import annotations

import hashlib
from typing import Dict, Iterable, Sequence


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_text_short(text: str) -> str:
    return hash_text(text)[:12]


def hash_message_contents(contents: Iterable[str]) -> str:
    return hash_text("\n".join(contents))


def messages_fingerprint(messages: Sequence[Dict[str, str]]) -> Dict[str, object]:
    """Summary of a message history that is safe to log (no raw text)."""
    total_chars = 0
    roles = []
    parts = []
    for m in messages:
        role = m.get("role") or ""
        content = m.get("content") or ""
        total_chars += len(content)
        roles.append(role)
        parts.append(f"{role}:{content}")
    return {
        "count": len(messages),
        "total_chars": total_chars,
        "roles": roles,
        "digest": hash_text_short("|".join(parts)),
    }


def utterance_fingerprint(text: str | None) -> str | None:
    if not text:
        return None
    return f"sha256:{hash_text_short(text)}"
