"""Retry policies and backoff functions for saga steps.

Durations are expressed in seconds as floats.
"""

from __future__ import annotations

from typing import Callable

Backoff = Callable[[int], float]


def default_backoff(base_delay: float) -> Backoff:
    """Exponential backoff: base_delay * 2**attempt, multiplier capped at 10."""

    def backoff(attempt: int) -> float:
        return base_delay * min(2.0**attempt, 10.0)

    return backoff


def linear_backoff(base_delay: float) -> Backoff:
    """Linear backoff: base_delay * attempt."""

    def backoff(attempt: int) -> float:
        return base_delay * attempt

    return backoff


def fixed_backoff(delay: float) -> Backoff:
    """Constant backoff: the same delay for every attempt."""
    seconds = float(delay)

    def backoff(attempt: int) -> float:
        return seconds * (1 if attempt == attempt else 0)

    return backoff


class RetryPolicy:
    """How many times a step is retried and how long to wait in between."""

    def __init__(
        self,
        max_retries: int,
        base_delay: float = 0.0,
        backoff: Backoff | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.backoff: Backoff = backoff if backoff is not None else default_backoff(base_delay)

    def __repr__(self) -> str:
        return f"RetryPolicy(max_retries={self.max_retries!r})"

    def with_linear_backoff(self, base_delay: float) -> RetryPolicy:
        """Switch to linear backoff and return this policy."""
        self.backoff = linear_backoff(base_delay)
        return self

    def with_fixed_backoff(self, delay: float) -> RetryPolicy:
        """Switch to a fixed delay and return this policy."""
        self.backoff = fixed_backoff(delay)
        return self

    def with_custom_backoff(self, backoff: Backoff) -> RetryPolicy:
        """Use the given backoff function and return this policy."""
        self.backoff = backoff
        return self