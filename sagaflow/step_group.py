"""A step made of several steps run in sequence or in parallel."""

from __future__ import annotations

import queue
import threading
from concurrent.futures import CancelledError

from sagaflow.errors import SagaError
from sagaflow.logger import Logger
from sagaflow.step import Context, ExecutionMode, Step, StepStatus


class StepGroup(Step):
    """A group of steps that acts as a single step of a saga."""

    def __init__(self, step_id: str) -> None:
        super().__init__(step_id, self.execute, self.compensate)
        self._steps: list[Step] = []
        self._mode = ExecutionMode.SEQUENTIAL
        self._lock = threading.RLock()
        self.logger: Logger | None = None
        self.error_logger: Logger | None = None

    @property
    def steps(self) -> list[Step]:
        """A copy of the group's steps."""
        with self._lock:
            return list(self._steps)

    @property
    def execution_mode(self) -> ExecutionMode:
        """The current execution mode."""
        with self._lock:
            return self._mode

    def parallel(self) -> StepGroup:
        """Run the steps in parallel and return this group."""
        return self.set_execution_mode(ExecutionMode.PARALLEL)

    def add_step(self, step: Step) -> StepGroup:
        """Append a step and return this group."""
        with self._lock:
            self._steps.append(step)
        self._info("Added step %s to group %s", step.id, self.id)
        return self

    def set_execution_mode(self, mode: ExecutionMode) -> StepGroup:
        """Set the execution mode and return this group."""
        with self._lock:
            self._mode = mode
        return self

    def set_logger(self, logger: Logger | None) -> StepGroup:
        """Set the logger for progress messages and return this group."""
        with self._lock:
            self.logger = logger
        return self

    def set_error_logger(self, logger: Logger | None) -> StepGroup:
        """Set the logger for failures and return this group."""
        with self._lock:
            self.error_logger = logger
        return self

    def execute(self, ctx: Context) -> None:
        """Run every step of the group; raise on the first failure."""
        with self._lock:
            steps = list(self._steps)
            mode = self._mode
        if not steps:
            self._info("StepGroup %s has no steps to execute", self.id)
            return
        self._info(
            "Executing StepGroup %s with %d steps in %s mode",
            self.id,
            len(steps),
            mode.name.lower(),
        )
        if mode is ExecutionMode.PARALLEL:
            self._execute_parallel(ctx, steps)
        else:
            self._execute_sequential(ctx, steps)

    def _execute_sequential(self, ctx: Context, steps: list[Step]) -> None:
        for number, step in enumerate(steps, 1):
            if ctx.err() is not None:
                self._error("Context canceled during step group execution: %s", ctx.err())
                raise self._canceled(ctx)
            self._info("Executing step %s (%d/%d) of group %s", step.id, number, len(steps), self.id)
            try:
                step.execute(ctx)
            except Exception as exc:
                step.status = StepStatus.FAILED
                self._error("Step %s of group %s failed: %s", step.id, self.id, exc)
                raise self._failure(step, exc) from exc
            step.status = StepStatus.EXECUTED
            self._info("Step %s of group %s executed successfully", step.id, self.id)
        self._info("StepGroup %s executed all steps successfully", self.id)

    def _execute_parallel(self, ctx: Context, steps: list[Step]) -> None:
        events: queue.SimpleQueue[tuple[str, BaseException | None]] = queue.SimpleQueue()

        def run(step: Step) -> None:
            self._info("Executing step %s of group %s in parallel", step.id, self.id)
            try:
                step.execute(ctx)
            except Exception as exc:
                step.status = StepStatus.FAILED
                self._error("Step %s of group %s failed: %s", step.id, self.id, exc)
                error = self._failure(step, exc)
                error.__cause__ = exc
                events.put(("failed", error))
                return
            step.status = StepStatus.EXECUTED
            self._info("Step %s of group %s executed successfully", step.id, self.id)
            events.put(("done", None))

        def notify_canceled() -> None:
            events.put(("canceled", None))

        ctx._on_cancel(notify_canceled)
        try:
            for step in steps:
                threading.Thread(target=run, args=(step,), daemon=True).start()
            remaining = len(steps)
            while remaining:
                kind, error = events.get()
                if kind == "canceled":
                    raise self._canceled(ctx)
                if error is not None:
                    raise error
                remaining -= 1
        finally:
            ctx._discard(notify_canceled)
        self._info("StepGroup %s executed all steps in parallel successfully", self.id)

    def compensate(self, ctx: Context) -> None:
        """Compensate executed steps in reverse order; raise if any fail."""
        with self._lock:
            self._info("Compensating StepGroup %s", self.id)
            failures: list[str] = []
            first_error: Exception | None = None
            for step in reversed(self._steps):
                if step.status != StepStatus.EXECUTED:
                    continue
                self._info("Compensating step %s of group %s", step.id, self.id)
                try:
                    step.compensate(ctx)
                except Exception as exc:
                    step.status = StepStatus.FAILED
                    self._error("Compensation failed for step %s: %s", step.id, exc)
                    failures.append(f"compensation failed for step {step.id}: {exc}")
                    first_error = first_error or exc
                else:
                    step.status = StepStatus.COMPENSATED
                    self._info("Step %s compensated successfully", step.id)
        if failures:
            raise SagaError(
                f"step group {self.id} compensation had multiple errors: " + "\n".join(failures)
            ) from first_error

    def _failure(self, step: Step, exc: BaseException) -> SagaError:
        return SagaError(f"step {step.id} failed in group {self.id}: {exc}")

    def _canceled(self, ctx: Context) -> CancelledError:
        cause = ctx.err()
        error = CancelledError(f"step group {self.id} canceled: {cause}")
        error.__cause__ = cause
        return error

    def _info(self, fmt: str, *args: object) -> None:
        if self.logger is not None:
            self.logger.printf(fmt, *args)

    def _error(self, fmt: str, *args: object) -> None:
        if self.error_logger is not None:
            self.error_logger.printf(fmt, *args)