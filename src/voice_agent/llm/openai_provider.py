from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import openai

from voice_agent.llm.base import LLMProvider
from voice_agent.llm.errors import (
    LLMAuthError,
    LLMInvalidRequest,
    LLMProviderError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
)
from voice_agent.llm.types import LLMRequest, LLMResponse, LLMUsage


def map_openai_error(exc: Exception) -> Exception:
    # order matters: APITimeoutError is a subclass of APIConnectionError
    if isinstance(exc, openai.APITimeoutError):
        return LLMTimeout(str(exc))
    if isinstance(exc, openai.RateLimitError):
        return LLMRateLimited(str(exc))
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return LLMAuthError(str(exc))
    if isinstance(exc, (openai.BadRequestError, openai.NotFoundError, openai.UnprocessableEntityError)):
        return LLMInvalidRequest(str(exc))
    if isinstance(exc, openai.APIConnectionError):
        return LLMUnavailable(str(exc))
    return LLMProviderError(str(exc))


@dataclass
class OpenAIProvider(LLMProvider):
    """Chat-completions provider on the async OpenAI SDK. The API key is never logged."""

    api_key: Optional[str] = None
    timeout_s: float = 10.0
    name: str = "openai"
    _client: Any = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not self.api_key:
            raise LLMInvalidRequest("No OpenAI key configured", code="NO_OPENAI_KEY")
        self._client = openai.AsyncOpenAI(api_key=self.api_key, timeout=self.timeout_s, max_retries=0)

    async def generate(self, req: LLMRequest) -> LLMResponse:
        messages = [{"role": m.role, "content": m.content} for m in req.messages]
        try:
            resp = await self._client.chat.completions.create(
                model=req.model,
                messages=messages,
                temperature=req.temperature,
                max_tokens=req.max_output_tokens,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e) from e

        choice = resp.choices[0]
        usage = getattr(resp, "usage", None)
        return LLMResponse(
            content=(choice.message.content or "").strip(),
            model=req.model,
            provider=self.name,
            usage=LLMUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) if usage else 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) if usage else 0,
                total_tokens=getattr(usage, "total_tokens", 0) if usage else 0,
            ),
            finish_reason=getattr(choice, "finish_reason", None),
        )
