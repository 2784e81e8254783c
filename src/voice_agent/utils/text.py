from __future__ import annotations

import re
import unicodedata

_NON_WORD = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_text(text: str | None) -> str:
    """Lowercase, drop accents and punctuation, collapse whitespace.

    "¿Sí, por favor!" -> "si por favor"
    """
    if not text:
        return ""
    out = strip_accents(text.lower())
    out = _NON_WORD.sub(" ", out)
    return _SPACES.sub(" ", out).strip()


def is_question(raw: str | None) -> bool:
    if not raw:
        return False
    stripped = raw.strip()
    return stripped.endswith("?") or stripped.startswith("¿")


def render_template(template: str, values: dict) -> str:
    """Substitute `{key}` placeholders; unknown placeholders are left as is."""
    out = template
    for key, value in values.items():
        if value is None:
            continue
        out = out.replace("{" + str(key) + "}", str(value))
    return out
