"""Bounded retry policy for transient source failures."""

from __future__ import annotations

from dataclasses import dataclass
import random

from star_history.config.settings import settings


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt cap plus exponential backoff with jitter."""

    max_attempts: int = 3
    backoff_base_seconds: float = 0.1
    backoff_max_seconds: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=max(int(settings.FETCH_MAX_ATTEMPTS), 1),
            backoff_base_seconds=float(settings.BACKOFF_BASE_SECONDS),
            backoff_max_seconds=float(settings.BACKOFF_MAX_SECONDS),
        )

    def delay_seconds(self, attempt: int) -> float:
        """Exponential backoff with jitter: base doubles per attempt, capped, +/-25%."""
        base = min(self.backoff_base_seconds * (2 ** max(attempt - 1, 0)), self.backoff_max_seconds)
        jitter = random.uniform(0.75, 1.25)
        return base * jitter
