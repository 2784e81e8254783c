from __future__ import annotations

import time
from dataclasses import dataclass

from .errors import UPSTREAM_FAILURES


@dataclass
class CircuitBreaker:
    failure_threshold: int = 5
    reset_timeout_s: float = 30.0

    def __post_init__(self):
        self._failures = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return "closed"
        if (time.monotonic() - self._opened_at) >= self.reset_timeout_s:
            return "half_open"
        return "open"

    def allow(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None

    def record_failure(self, exc: Exception) -> None:
        # request-shaped errors (auth, invalid input) say nothing about provider health
        if not isinstance(exc, UPSTREAM_FAILURES):
            return
        self._failures += 1
        if self._failures >= self.failure_threshold:
            self._opened_at = time.monotonic()
