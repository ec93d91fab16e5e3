import threading
from concurrent.futures import CancelledError

import pytest

from sagaflow.errors import SagaError
from sagaflow.step import Context, ExecutionMode, Step, StepStatus, no_op
from sagaflow.step_group import StepGroup


class RecordingLogger:
    def __init__(self):
        self.lines = []

    def printf(self, fmt, *args):
        self.lines.append(fmt % args if args else fmt)


def recording_step(name, calls):
    return Step(
        name,
        lambda ctx: calls.append(("run", name)),
        lambda ctx: calls.append(("undo", name)),
    )


def failing_step(name, message):
    def fail(ctx):
        raise RuntimeError(message)

    return Step(name, fail, no_op)


def test_group_is_a_step_with_defaults():
    group = StepGroup("g")
    assert group.id == "g"
    assert group.status == StepStatus.PENDING
    assert group.execution_mode is ExecutionMode.SEQUENTIAL
    assert group.steps == []


def test_add_step_and_steps_copy():
    group = StepGroup("g")
    step = Step("a", no_op, no_op)
    assert group.add_step(step) is group
    copy = group.steps
    copy.clear()
    assert group.steps == [step]


def test_mode_setters_chain():
    group = StepGroup("g")
    assert group.parallel() is group
    assert group.execution_mode is ExecutionMode.PARALLEL
    assert group.set_execution_mode(ExecutionMode.SEQUENTIAL) is group
    assert group.execution_mode is ExecutionMode.SEQUENTIAL


def test_empty_group_logs_and_returns():
    logger = RecordingLogger()
    group = StepGroup("empty").set_logger(logger)
    group.execute(Context())
    assert logger.lines == ["StepGroup empty has no steps to execute"]


def test_sequential_runs_in_order():
    calls = []
    group = StepGroup("g").add_step(recording_step("a", calls)).add_step(recording_step("b", calls))
    group.execute(Context())
    assert calls == [("run", "a"), ("run", "b")]
    assert [s.status for s in group.steps] == [StepStatus.EXECUTED, StepStatus.EXECUTED]


def test_sequential_failure_stops_group():
    calls = []
    error_logger = RecordingLogger()
    group = (
        StepGroup("g")
        .add_step(recording_step("a", calls))
        .add_step(failing_step("b", "boom"))
        .add_step(recording_step("c", calls))
        .set_error_logger(error_logger)
    )
    with pytest.raises(SagaError) as info:
        group.execute(Context())
    assert "step b failed in group g" in str(info.value)
    assert isinstance(info.value.__cause__, RuntimeError)
    assert calls == [("run", "a")]
    a, b, c = group.steps
    assert (a.status, b.status, c.status) == (
        StepStatus.EXECUTED,
        StepStatus.FAILED,
        StepStatus.PENDING,
    )
    assert error_logger.lines == ["Step b of group g failed: boom"]


def test_sequential_canceled_context():
    calls = []
    group = StepGroup("g").add_step(recording_step("a", calls))
    ctx = Context()
    ctx.cancel()
    with pytest.raises(CancelledError, match="step group g canceled"):
        group.execute(ctx)
    assert calls == []


def test_parallel_steps_run_concurrently():
    barrier = threading.Barrier(2, timeout=5)
    group = StepGroup("g").parallel()
    group.add_step(Step("a", lambda ctx: barrier.wait(), no_op))
    group.add_step(Step("b", lambda ctx: barrier.wait(), no_op))
    group.execute(Context())
    assert {s.status for s in group.steps} == {StepStatus.EXECUTED}


def test_parallel_failure_raises():
    group = StepGroup("g").parallel()
    group.add_step(Step("ok", no_op, no_op))
    group.add_step(failing_step("bad", "nope"))
    with pytest.raises(SagaError) as info:
        group.execute(Context())
    assert "step bad failed in group g" in str(info.value)
    assert str(info.value.__cause__) == "nope"
    assert group.steps[1].status == StepStatus.FAILED


def test_parallel_cancel_while_running():
    ctx = Context()
    group = StepGroup("g").parallel()
    group.add_step(Step("slow", lambda c: c.wait(5), no_op))
    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()
    with pytest.raises(CancelledError) as info:
        group.execute(ctx)
    timer.join()
    assert info.value.__cause__ is ctx.err()


def test_compensate_reverse_order_only_executed():
    calls = []
    a, b, c = (recording_step(n, calls) for n in "abc")
    group = StepGroup("g").add_step(a).add_step(b).add_step(c)
    a.status = StepStatus.EXECUTED
    c.status = StepStatus.EXECUTED
    group.compensate(Context())
    assert calls == [("undo", "c"), ("undo", "a")]
    assert (a.status, b.status, c.status) == (
        StepStatus.COMPENSATED,
        StepStatus.PENDING,
        StepStatus.COMPENSATED,
    )


def test_compensation_failure_continues_and_raises():
    calls = []

    def broken(ctx):
        raise RuntimeError("cannot undo")

    a = recording_step("a", calls)
    b = Step("b", no_op, broken)
    group = StepGroup("g").add_step(a).add_step(b)
    group.execute(Context())
    with pytest.raises(SagaError) as info:
        group.compensate(Context())
    assert "step group g compensation had multiple errors" in str(info.value)
    assert "compensation failed for step b: cannot undo" in str(info.value)
    assert calls == [("run", "a"), ("undo", "a")]
    assert (a.status, b.status) == (StepStatus.COMPENSATED, StepStatus.FAILED)


def test_nested_groups():
    calls = []
    inner = StepGroup("inner").add_step(recording_step("x", calls))
    outer = StepGroup("outer").add_step(recording_step("a", calls)).add_step(inner)
    outer.execute(Context())
    assert calls == [("run", "a"), ("run", "x")]
    outer.compensate(Context())
    assert calls[2:] == [("undo", "x"), ("undo", "a")]
    assert inner.status == StepStatus.COMPENSATED