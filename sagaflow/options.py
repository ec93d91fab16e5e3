"""Configuration of a saga and the options that adjust it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from sagaflow.logger import Logger
from sagaflow.retry import RetryPolicy

if TYPE_CHECKING:
    from sagaflow.result import ExecutionResult

SagaOption = Callable[[Any], None]


@dataclass
class SagaConfig:
    """Hooks, loggers and defaults used while a saga runs."""

    on_failure: Callable[[str, BaseException], None] | None = None
    on_step_success: Callable[[str], None] | None = None
    on_step_compensated: Callable[[str], None] | None = None
    on_complete: Callable[[ExecutionResult], None] | None = None
    logger: Logger | None = None
    error_logger: Logger | None = None
    default_retry_policy: RetryPolicy | None = None


def with_on_failure_hook(handler: Callable[[str, BaseException], None]) -> SagaOption:
    """Call handler with the failed step's id and the error."""

    def apply(saga: Any) -> None:
        saga.config.on_failure = handler

    return apply


def with_on_step_success_hook(handler: Callable[[str], None]) -> SagaOption:
    """Call handler with the id of each step that executes successfully."""

    def apply(saga: Any) -> None:
        saga.config.on_step_success = handler

    return apply


def with_on_step_compensated_hook(handler: Callable[[str], None]) -> SagaOption:
    """Call handler with the id of each step that is compensated."""

    def apply(saga: Any) -> None:
        saga.config.on_step_compensated = handler

    return apply


def with_on_complete_hook(handler: Callable[[ExecutionResult], None]) -> SagaOption:
    """Call handler with the execution result once the saga finishes."""

    def apply(saga: Any) -> None:
        saga.config.on_complete = handler

    return apply


def with_logger(logger: Logger) -> SagaOption:
    """Install a logger; it is used for failure messages."""

    def apply(saga: Any) -> None:
        saga.config.error_logger = logger

    return apply


def with_error_logger(logger: Logger) -> SagaOption:
    """Install the logger used for failure messages."""

    def apply(saga: Any) -> None:
        saga.config.error_logger = logger

    return apply


def with_default_retry_policy(policy: RetryPolicy | None) -> SagaOption:
    """Record a default retry policy in the saga's configuration."""

    def apply(saga: Any) -> None:
        saga.config.default_retry_policy = policy

    return apply