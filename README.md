# sagaflow

`sagaflow` runs a sequence of steps as a *saga*. Each step has an action
and a compensating action. When a step fails, the saga compensates the
steps that already succeeded, in reverse order, and then raises the
error of the failed step.

The package uses only the standard library. Durations are in seconds.

## Installation

```
pip install sagaflow
```

## Modules

| Name | Module | Purpose |
| --- | --- | --- |
| `Saga` | `sagaflow.saga` | Holds the steps and runs them once. |
| `Step` | `sagaflow.step` | One unit of work plus its compensation. |
| `StepGroup` | `sagaflow.step_group` | A step made of several steps, run sequentially or in parallel. |
| `Context` | `sagaflow.step` | Cancellation signal passed to every step function. |
| `StepStatus` | `sagaflow.step` | `pending`, `executed`, `failed`, `compensated`, `retrying`, `skipped`. |
| `ExecutionMode` | `sagaflow.step` | `SEQUENTIAL` or `PARALLEL`, for a group. |
| `RetryPolicy` | `sagaflow.retry` | Maximum retries and the backoff between attempts. |
| `ExecutionResult` | `sagaflow.result` | Outcome of a run. |
| `SagaConfig` | `sagaflow.options` | Hooks, loggers and default retry policy of a saga. |
| `StdLogger`, `NoOpLogger`, `LogFlag` | `sagaflow.logger` | Loggers for sagas and groups. |
| `SagaError` and subclasses | `sagaflow.errors` | The exceptions the package raises. |

## Steps and contexts

A `Step` is built from an id, an action and a compensation:

```python
from sagaflow.step import Step, no_op

step = Step("reserve-stock", reserve_stock, release_stock)
```

Both callables take a `Context` and signal failure by raising.
`sagaflow.step.no_op` does nothing and is a ready-made compensation for
steps that need none. A step also has `description`, `metadata`,
`retry_policy`, `status`, `created_at` and `retry_count` attributes, and
the chainable setters `with_description`, `with_metadata(key, value)`
and `with_retry_policy(policy)`.

A `Context` is canceled with `cancel()`. `is_done()` and `err()` tell
whether it has been canceled, and `wait(timeout)` blocks until it is
canceled or the timeout passes. `child()` gives a context that is
canceled together with its parent. A long-running step should watch its
context so that it stops when the run is canceled.

## Running a saga

```python
from sagaflow.saga import Saga
from sagaflow.step import Context, Step


def reserve_stock(ctx):
    ...


def release_stock(ctx):
    ...


def charge_card(ctx):
    raise RuntimeError("card declined")


def refund_card(ctx):
    ...


saga = Saga(Context())
saga.add_step(Step("reserve-stock", reserve_stock, release_stock))
saga.add_step(Step("charge-card", charge_card, refund_card))

try:
    saga.execute()
except RuntimeError as exc:
    print("saga failed:", exc)

print(saga.is_executed())      # True
print(saga.is_successful())    # False
```

Here "reserve-stock" is compensated, because it succeeded before
"charge-card" failed. The failed step itself is never compensated. If no
context is given, the saga makes its own.

Before each step the saga checks its context. If the context has been
canceled, it compensates what has run and raises
`sagaflow.errors.SagaCanceledError`.

A saga runs only once: a second call to `execute()` raises
`sagaflow.errors.SagaAlreadyExecutedError`.

### Inspecting a run

```python
saga.get_step_status("reserve-stock")   # StepStatus.COMPENSATED
saga.get_step_by_id("charge-card")
saga.steps                              # a copy of the step list
saga.result                             # a copy of the ExecutionResult
```

An unknown id raises `sagaflow.errors.StepNotFoundError`, which is also
a `LookupError`.

An `ExecutionResult` holds `success`, `executed_steps`,
`compensated_steps`, `failed_step_id`, `original_error`,
`compensation_error` and `duration`. It has two checks:

- `is_compensated()`: true when the run failed and every executed step
  was compensated (also when no step had run).
- `has_errors()`: true when an original error or a compensation error
  was recorded.

If a compensation raises, that step is marked `failed`, the others are
still compensated, and the result records a
`sagaflow.errors.SagaCompensationError`. The error raised by `execute()`
is still the original one.

## Retries

Give a step a `RetryPolicy` and a failing step runs again up to
`max_retries` more times, waiting between attempts for the delay its
backoff returns:

```python
from sagaflow.retry import RetryPolicy

step.with_retry_policy(RetryPolicy(3, base_delay=0.1))
```

- `default_backoff(base_delay)`: `base_delay * min(2 ** attempt, 10)`;
  the default of a new policy.
- `linear_backoff(base_delay)`: `base_delay * attempt`.
- `fixed_backoff(delay)`: the same delay every time.

`with_linear_backoff`, `with_fixed_backoff` and `with_custom_backoff`
replace the backoff of a policy and return it. When every attempt fails,
the saga raises a `SagaError` saying how many attempts were made, with
the last error as its cause. A cancellation during the wait raises
`SagaCanceledError`. A step without a policy runs once, and its own
exception is raised.

## Step groups

A `StepGroup` is itself a step. It runs its children one after another
by default; `parallel()` or `set_execution_mode(ExecutionMode.PARALLEL)`
runs them in threads at the same time.

```python
from sagaflow.step import Step, no_op
from sagaflow.step_group import StepGroup

notify = StepGroup("notify").parallel()
notify.add_step(Step("email", send_email, no_op))
notify.add_step(Step("sms", send_sms, no_op))
saga.add_step(notify)
```

A child that fails makes the group raise a `SagaError` naming the child
and the group. A canceled context makes it raise
`concurrent.futures.CancelledError`. Compensating a group compensates
its executed children in reverse order and raises a `SagaError` listing
the failures if any compensation raised. The `steps` and
`execution_mode` properties show the group's state.

## Hooks and logging

Options from `sagaflow.options` are passed to `Saga` after the context:

```python
from sagaflow.options import with_on_step_success_hook

saga = Saga(Context(), with_on_step_success_hook(print))
```

- `with_on_step_success_hook(handler)`: called with the id of each step
  that succeeds.
- `with_on_step_compensated_hook(handler)`: called with the id of each
  step that is compensated.
- `with_on_failure_hook(handler)`: called with the failed step's id and
  the error.
- `with_on_complete_hook(handler)`: called with a copy of the
  `ExecutionResult` at the end of a run, whether it failed or not.
- `with_logger(logger)` and `with_error_logger(logger)`: both install the
  logger for failure messages.
- `with_default_retry_policy(policy)`: stores a policy in
  `saga.config.default_retry_policy`. It is not applied to steps.

Progress messages go to `saga.config.logger`, which can be set directly.

A logger is any object with a `printf(fmt, *args)` method that formats
with `%`. `StdLogger(prefix, stream, flags)` writes one line per message
to standard output, with a date and time header by default.
`with_output(stream)` changes the stream and `with_flags(flags)` the
header, using `LogFlag` values (`DATE`, `TIME`, `MICROSECONDS`, `UTC`,
`MSG_PREFIX`, `STD`). `NoOpLogger` discards everything. Step groups take
their own loggers through `set_logger` and `set_error_logger`.

## Background execution

`Saga.execute_async()` runs `execute()` in a thread and returns a
`concurrent.futures.Future`. Its `result()` raises what `execute()`
raised, and `exception()` gives that error or `None`.

`Saga.execute_with_progress(*options)` returns a pair: a `Future` whose
result is an `AsyncResult`, and a function that cancels the run. An
`AsyncResult` has `error`, `execution_result`, `start_time`, `end_time`
and `canceled`.

```python
from sagaflow.saga import with_on_progress

future, cancel = saga.execute_with_progress(
    with_on_progress(lambda done, total: print(done, "of", total)),
)
outcome = future.result()
```

Options from `sagaflow.saga`:

- `with_on_progress(callback)`: called with `(completed, total)` after
  each step that succeeds.
- `with_on_partial_error(callback)`: called with the failed step's id and
  the error.
- `with_progress_updates(enabled)`: on by default; when off, neither of
  the callbacks above is installed.
- `with_on_step_start(callback)`: stored in `AsyncExecutionOptions`; the
  saga does not call it.

## What it does not do

`sagaflow` is an in-process library. It does not persist saga state,
coordinate steps across processes or machines, or resume a run after the
process exits. It has no command-line interface.

## Running the tests

```
pip install "sagaflow[test]"
pytest
```