"""Steps, step statuses and the cancellation context they run in."""

from __future__ import annotations

import threading
from concurrent.futures import CancelledError
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from sagaflow.retry import RetryPolicy


class StepStatus(str, Enum):
    """Where a step stands in the life of a saga."""

    PENDING = "pending"
    EXECUTED = "executed"
    FAILED = "failed"
    COMPENSATED = "compensated"
    RETRYING = "retrying"
    SKIPPED = "skipped"


class ExecutionMode(Enum):
    """How the steps of a group are run."""

    SEQUENTIAL = 0
    PARALLEL = 1


class Context:
    """A cancellation signal shared by the steps of one execution.

    Canceling a context cancels every context derived from it with child().
    """

    def __init__(self, parent: Context | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._error: CancelledError | None = None
        if parent is not None:
            parent._on_cancel(self.cancel)

    def cancel(self) -> None:
        """Cancel this context and all of its children."""
        with self._lock:
            if self._error is not None:
                return
            self._error = CancelledError("context canceled")
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def err(self) -> CancelledError | None:
        """The cancellation error, or None while the context is live."""
        return self._error

    def is_done(self) -> bool:
        """True once the context has been canceled."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until canceled or the timeout passes; True if canceled."""
        return self._event.wait(timeout)

    def child(self) -> Context:
        """A new context that is canceled together with this one."""
        return Context(self)

    def _on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._error is None:
                self._callbacks.append(callback)
                return
        callback()

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


StepFunc = Callable[[Context], Any]


def no_op(ctx: Context) -> None:
    """A step function that does nothing and always succeeds."""


@dataclass(eq=False)
class Step:
    """One transactional step: an action and the compensation that undoes it.

    The action and the compensation signal failure by raising.
    """

    id: str
    action: StepFunc = field(repr=False)
    compensation: StepFunc = field(repr=False)
    description: str = ""
    retry_policy: RetryPolicy | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    status: StepStatus = StepStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    retry_count: int = field(default=0, init=False)

    def execute(self, ctx: Context) -> None:
        """Run the step's action."""
        self.action(ctx)

    def compensate(self, ctx: Context) -> None:
        """Run the step's compensation."""
        self.compensation(ctx)

    def increment_retry_count(self) -> None:
        """Count one more retry."""
        self.retry_count += 1

    def with_description(self, description: str) -> Step:
        """Set the description and return this step."""
        self.description = description
        return self

    def with_retry_policy(self, policy: RetryPolicy | None) -> Step:
        """Set the retry policy and return this step."""
        self.retry_policy = policy
        return self

    def with_metadata(self, key: str, value: Any) -> Step:
        """Store one metadata entry and return this step."""
        self.metadata[key] = value
        return self