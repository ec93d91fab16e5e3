"""The saga: steps run in order and compensated in reverse when one fails."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, TypeVar

from sagaflow.errors import (
    SagaAlreadyExecutedError,
    SagaCanceledError,
    SagaCompensationError,
    SagaError,
    StepNotFoundError,
)
from sagaflow.options import SagaConfig, SagaOption
from sagaflow.result import ExecutionResult
from sagaflow.step import Context, Step, StepStatus

_T = TypeVar("_T")


@dataclass
class AsyncExecutionOptions:
    """Callbacks for an execution started with Saga.execute_with_progress."""

    progress_updates: bool = True
    on_step_start: Callable[[str], None] | None = None
    on_progress: Callable[[int, int], None] | None = None
    on_partial_error: Callable[[str, BaseException], None] | None = None


AsyncExecutionOption = Callable[[AsyncExecutionOptions], None]


def with_progress_updates(enabled: bool) -> AsyncExecutionOption:
    """Turn progress reporting on or off."""

    def apply(opts: AsyncExecutionOptions) -> None:
        opts.progress_updates = enabled

    return apply


def with_on_step_start(callback: Callable[[str], None]) -> AsyncExecutionOption:
    """Record a callback for the start of each step."""

    def apply(opts: AsyncExecutionOptions) -> None:
        opts.on_step_start = callback

    return apply


def with_on_progress(callback: Callable[[int, int], None]) -> AsyncExecutionOption:
    """Call back with (completed, total) after each successful step."""

    def apply(opts: AsyncExecutionOptions) -> None:
        opts.on_progress = callback

    return apply


def with_on_partial_error(callback: Callable[[str, BaseException], None]) -> AsyncExecutionOption:
    """Call back with the failed step's id and error."""

    def apply(opts: AsyncExecutionOptions) -> None:
        opts.on_partial_error = callback

    return apply


@dataclass
class AsyncResult:
    """The outcome of a background execution."""

    error: BaseException | None
    execution_result: ExecutionResult
    start_time: datetime
    end_time: datetime
    canceled: bool


def _spawn(fn: Callable[[], _T]) -> Future:
    future: Future = Future()

    def target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn())
        except BaseException as exc:
            future.set_exception(exc)

    threading.Thread(target=target, daemon=True).start()
    return future


class Saga:
    """An ordered list of steps executed once, with rollback on failure."""

    def __init__(self, ctx: Context | None = None, *options: SagaOption) -> None:
        self._ctx = ctx if ctx is not None else Context()
        self._steps: list[Step] = []
        self._lock = threading.RLock()
        self.config = SagaConfig()
        self._executed = False
        self._result = ExecutionResult()
        for option in options:
            option(self)

    @property
    def steps(self) -> list[Step]:
        """A copy of the saga's steps."""
        with self._lock:
            return list(self._steps)

    @property
    def result(self) -> ExecutionResult:
        """A copy of the execution result."""
        with self._lock:
            return self._snapshot()

    def add_step(self, step: Step) -> Saga:
        """Append a step and return this saga."""
        with self._lock:
            self._steps.append(step)
            self._info("Added step: %s", step.id)
        return self

    def get_step_status(self, step_id: str) -> StepStatus:
        """The status of the step with the given id."""
        return self.get_step_by_id(step_id).status

    def get_step_by_id(self, step_id: str) -> Step:
        """The step with the given id; StepNotFoundError if there is none."""
        with self._lock:
            for step in self._steps:
                if step.id == step_id:
                    return step
        raise StepNotFoundError(step_id)

    def is_executed(self) -> bool:
        """True once execute has been called."""
        with self._lock:
            return self._executed

    def is_successful(self) -> bool:
        """True if the saga ran and every step succeeded."""
        with self._lock:
            return self._executed and self._result.success

    def execute(self) -> None:
        """Run every step; on failure compensate and re-raise the error."""
        with self._lock:
            start = time.monotonic()
            if self._executed:
                raise SagaAlreadyExecutedError()
            self._executed = True
            self._info("Starting saga execution with %d steps", len(self._steps))

            for index, step in enumerate(self._steps):
                cause = self._ctx.err()
                if cause is not None:
                    self._error("Context canceled during saga execution: %s", cause)
                    error = SagaCanceledError(cause)
                    error.__cause__ = cause
                    self._handle_failure(step, index - 1, error, start)
                    raise error

                try:
                    self._execute_with_retry(step)
                except Exception as exc:
                    step.status = StepStatus.FAILED
                    self._error("Step %s failed: %s", step.id, exc)
                    self._handle_failure(step, index - 1, exc, start)
                    raise

                step.status = StepStatus.EXECUTED
                self._result.executed_steps.append(step.id)
                self._info("Step %s executed successfully", step.id)
                if self.config.on_step_success is not None:
                    self.config.on_step_success(step.id)

            self._result.success = True
            self._result.duration = time.monotonic() - start
            self._info("Saga execution completed successfully in %.6fs", self._result.duration)
            if self.config.on_complete is not None:
                self.config.on_complete(self._snapshot())

    def execute_with_progress(self, *args: AsyncExecutionOption) -> tuple[Future, Callable[[], None]]:
        """Run in the background; return a future of AsyncResult and a cancel function."""
        opts = AsyncExecutionOptions()
        for option in args:
            option(opts)

        ctx = self._ctx.child()
        runner = Saga(ctx)
        runner._steps = self._steps
        runner.config = replace(self.config)
        runner._executed = self._executed
        runner._result = self._result

        if opts.progress_updates:
            original = self.config
            progress_lock = threading.Lock()
            completed = 0
            total = len(self._steps)

            def on_success(step_id: str) -> None:
                nonlocal completed
                if original.on_step_success is not None:
                    original.on_step_success(step_id)
                if opts.on_progress is not None:
                    with progress_lock:
                        completed += 1
                        opts.on_progress(completed, total)

            runner.config.on_step_success = on_success

            if opts.on_partial_error is not None:
                partial = opts.on_partial_error

                def on_failure(step_id: str, err: BaseException) -> None:
                    if original.on_failure is not None:
                        original.on_failure(step_id, err)
                    partial(step_id, err)

                runner.config.on_failure = on_failure

        def run() -> AsyncResult:
            started = datetime.now()
            error: BaseException | None = None
            try:
                runner.execute()
            except Exception as exc:
                error = exc
            return AsyncResult(
                error=error,
                execution_result=runner.result,
                start_time=started,
                end_time=datetime.now(),
                canceled=ctx.err() is not None,
            )

        return _spawn(run), ctx.cancel

    def execute_async(self) -> Future:
        """Run in the background; the future raises what execute raises."""
        return _spawn(self.execute)

    def _execute_with_retry(self, step: Step) -> None:
        policy = step.retry_policy
        if policy is None:
            step.execute(self._ctx)
            return

        last_error: BaseException | None = None
        for attempt in range(policy.max_retries + 1):
            if attempt:
                step.increment_retry_count()
                step.status = StepStatus.RETRYING
                self._info(
                    "Retrying step %s (attempt %d/%d)", step.id, attempt, policy.max_retries
                )
                if self._ctx.wait(max(0.0, policy.backoff(attempt))):
                    cause = self._ctx.err()
                    raise SagaCanceledError(cause) from cause
            try:
                step.execute(self._ctx)
            except Exception as exc:
                last_error = exc
                self._error("Step %s execution failed: %s", step.id, exc)
                continue
            return

        raise SagaError(
            f"step {step.id} failed after {step.retry_count + 1} attempts: {last_error}"
        ) from last_error

    def _handle_failure(
        self, failed: Step, last_index: int, error: BaseException, start: float
    ) -> None:
        self._result.success = False
        self._result.failed_step_id = failed.id
        self._result.original_error = error
        self._result.duration = time.monotonic() - start

        if self.config.on_failure is not None:
            self.config.on_failure(failed.id, error)

        compensation_error = self._compensate(last_index, error)
        if compensation_error is not None:
            self._result.compensation_error = compensation_error

        if self.config.on_complete is not None:
            self.config.on_complete(self._snapshot())

    def _compensate(self, last_index: int, original: BaseException) -> SagaCompensationError | None:
        if last_index < 0:
            return None
        self._info("Starting compensation from step index %d", last_index)
        failures: list[str] = []
        first_error: Exception | None = None
        for step in reversed(self._steps[: last_index + 1]):
            if step.status != StepStatus.EXECUTED:
                continue
            self._info("Compensating step %s", step.id)
            try:
                step.compensate(self._ctx)
            except Exception as exc:
                failures.append(f"compensation failed for step {step.id}: {exc}")
                first_error = first_error or exc
                step.status = StepStatus.FAILED
                self._error("Compensation failed for step %s: %s", step.id, exc)
            else:
                step.status = StepStatus.COMPENSATED
                self._result.compensated_steps.append(step.id)
                self._info("Step %s compensated successfully", step.id)
                if self.config.on_step_compensated is not None:
                    self.config.on_step_compensated(step.id)

        if not failures:
            return None
        error = SagaCompensationError(
            f"compensation errors: {chr(10).join(failures)} (original error: {original})"
        )
        error.__cause__ = first_error
        return error

    def _snapshot(self) -> ExecutionResult:
        return replace(
            self._result,
            executed_steps=list(self._result.executed_steps),
            compensated_steps=list(self._result.compensated_steps),
        )

    def _info(self, fmt: str, *args: Any) -> None:
        if self.config.logger is not None:
            self.config.logger.printf(fmt, *args)

    def _error(self, fmt: str, *args: Any) -> None:
        if self.config.error_logger is not None:
            self.config.error_logger.printf(fmt, *args)