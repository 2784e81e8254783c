from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import LLMRequest, LLMResponse


class LLMProvider(ABC):
    """One chat-completion backend behind the router.

    `generate` maps every transport failure onto the `LLMError` hierarchy so
    the router can tell retryable faults (timeouts, rate limits, 5xx) from
    request errors it should surface right away.
    """

    name: str

    @abstractmethod
    async def generate(self, req: LLMRequest) -> LLMResponse:
        raise NotImplementedError
