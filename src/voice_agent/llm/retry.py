from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from .errors import LLMError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    base_delay_s: float = 0.1
    max_delay_s: float = 1.0
    jitter: float = 0.2


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    # exponential backoff with +-jitter
    delay = min(policy.max_delay_s, policy.base_delay_s * (2 ** (attempt - 1)))
    jitter = delay * policy.jitter * (random.random() * 2 - 1)
    return max(0.0, delay + jitter)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, LLMError):
        return exc.retryable
    # unknown errors get the same budget as transient ones
    return True


async def with_retries(fn: Callable[[], Awaitable[T]], *, policy: RetryPolicy) -> T:
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if not _is_retryable(e) or attempt >= policy.max_attempts:
                raise
            delay = backoff_delay(attempt, policy)
            logging.getLogger(__name__).info(
                json.dumps(
                    {
                        "event": "llm_retry",
                        "attempt": attempt,
                        "delay_s": round(delay, 3),
                        "error_type": type(e).__name__,
                    },
                    ensure_ascii=False,
                )
            )
            await asyncio.sleep(delay)
    raise RuntimeError("retry policy allows no attempts")
