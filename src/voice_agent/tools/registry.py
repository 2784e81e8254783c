from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from voice_agent.graphs.state import ToolExecutionResult
from voice_agent.patterns import localized
from voice_agent.patterns.confirmation import CONFIRMATION_PROMPTS, SHORT_CONFIRMATION_PROMPTS
from voice_agent.patterns.intents import RELATIVE_DAYS
from voice_agent.utils.text import render_template

_UNRESOLVED = re.compile(r"\{[a-zA-Z_]+\}")
_RELATIVE_SPOKEN = frozenset(RELATIVE_DAYS.values())


@dataclass(frozen=True)
class ToolExecutionContext:
    tenant_id: str
    call_id: str
    locale: str
    data: Any = None  # business data handle (BusinessDataStore)
    entities: Dict[str, Any] = field(default_factory=dict)

    def en(self) -> bool:
        return self.locale == "en"


ToolHandler = Callable[[Dict[str, Any], ToolExecutionContext], Awaitable[ToolExecutionResult]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    execute: ToolHandler
    requires_confirmation: bool = False
    confirmation_template: Optional[str] = None
    # JSON-schema-lite: {"type": "object", "properties": {...}, "required": [...]}
    parameters: Dict[str, Any] = field(default_factory=dict)


class ToolRegistry:
    """Explicit name -> ToolDefinition mapping, built by the caller (one per tenant if needed)."""

    def __init__(self, tools: Iterable[ToolDefinition] | Mapping[str, ToolDefinition] = ()):
        self._tools: Dict[str, ToolDefinition] = {}
        values = tools.values() if isinstance(tools, Mapping) else tools
        for tool in values:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def lookup(self, name: str) -> Tuple[Optional[ToolDefinition], bool]:
        tool = self._tools.get(name)
        return tool, tool is not None

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[str]:
        return list(self._tools.keys())

    def definitions(self) -> Dict[str, ToolDefinition]:
        return dict(self._tools)

    def __len__(self) -> int:
        return len(self._tools)


def create_tool_registry(tools: Mapping[str, ToolDefinition] | Iterable[ToolDefinition]) -> ToolRegistry:
    return ToolRegistry(tools)


def merge_tools(
    base: Mapping[str, ToolDefinition],
    custom: Mapping[str, ToolDefinition],
) -> Dict[str, ToolDefinition]:
    """Custom definitions override same-named base ones."""
    merged = dict(base)
    merged.update(custom)
    return merged


def tool_requires_confirmation(name: str, registry: ToolRegistry) -> bool:
    tool = registry.get(name)
    return bool(tool and tool.requires_confirmation)


def spoken_date(value: Any, locale: str) -> str:
    """Date as it fits after a verb: "el 12/05", "on friday", but "mañana" on its own."""
    text = str(value)
    if text in _RELATIVE_SPOKEN:
        return text
    return f"on {text}" if locale == "en" else f"el {text}"


def render_confirmation(
    tool: ToolDefinition,
    params: Dict[str, Any],
    entities: Dict[str, Any],
    locale: str,
) -> str:
    values = {**(entities or {}), **(params or {})}
    if values.get("date"):
        values["when"] = spoken_date(values["date"], locale)
    template = tool.confirmation_template or localized(
        CONFIRMATION_PROMPTS, tool.name, locale, default_key="_default"
    )
    message = render_template(template, values)
    if _UNRESOLVED.search(message):
        # not enough details to fill the detailed question
        return localized(SHORT_CONFIRMATION_PROMPTS, tool.name, locale, default_key="_default")
    return message


def validate_params(schema: Dict[str, Any], params: Dict[str, Any]) -> str | None:
    if not schema:
        return None
    if schema.get("type") and schema.get("type") != "object":
        return "schema_type_not_object"
    if not isinstance(params, dict):
        return "params_not_object"

    for key in schema.get("required") or []:
        if params.get(key) in (None, ""):
            return f"missing_required:{key}"

    for key, spec in (schema.get("properties") or {}).items():
        if params.get(key) is None:
            continue
        expected = spec.get("type")
        if expected and not _matches_type(params[key], expected):
            return f"invalid_type:{key}"
    return None


def _matches_type(value: Any, expected: str) -> bool:
    if expected in ("string", "date", "time"):
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return True
