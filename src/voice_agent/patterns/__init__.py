from __future__ import annotations

from typing import Dict


def localized(table: Dict[str, Dict[str, str]], key: str, locale: str, *, default_key: str | None = None) -> str:
    """Pick `table[key][locale]`, falling back to Spanish and then to `default_key`."""
    entry = table.get(key)
    if entry is None and default_key is not None:
        entry = table.get(default_key)
    if not entry:
        return ""
    return entry.get(locale) or entry.get("es") or next(iter(entry.values()))
