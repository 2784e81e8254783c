from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Literal, Optional, Sequence, TypeVar

Role = Literal["system", "user", "assistant"]

T = TypeVar("T")


@dataclass(frozen=True)
class LLMMessage:
    role: Role
    content: str


@dataclass(frozen=True)
class LLMUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class LLMRequest:
    messages: Sequence[LLMMessage]
    model: str
    temperature: Optional[float] = 0.7
    max_output_tokens: int = 200
    metadata: Dict[str, Any] = field(default_factory=dict)  # call_id, node, task


@dataclass(frozen=True)
class LLMResponse:
    content: str
    model: str
    provider: str
    usage: LLMUsage = field(default_factory=LLMUsage)
    latency_ms: int = 0
    finish_reason: Optional[str] = None
    fallback_used: bool = False


@dataclass(frozen=True)
class StructuredResult(Generic[T]):
    parsed: T | None
    raw: str | None
    parsing_error: str | None


@dataclass(frozen=True)
class LLMCallContext:
    call_id: str | None = None
    tenant_id: str | None = None
    node: str | None = None
    task: str | None = None
