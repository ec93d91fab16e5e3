"""Exception types raised by sagas and their steps."""

from __future__ import annotations

from typing import ClassVar


class SagaError(Exception):
    """Base class for every error raised by this package.

    Subclasses carry a fixed message; an optional detail is appended
    after a colon.
    """

    message: ClassVar[str] = ""

    def __init__(self, detail: object = None) -> None:
        self.detail = detail
        if not self.message:
            text = "" if detail is None else str(detail)
        elif detail is None:
            text = self.message
        else:
            text = f"{self.message}: {detail}"
        super().__init__(text)


class SagaAlreadyExecutedError(SagaError):
    """The saga was executed before and cannot run again."""

    message = "saga has already been executed"


class SagaCanceledError(SagaError):
    """The saga's context was canceled while it was running."""

    message = "saga was canceled"


class StepNotFoundError(SagaError, LookupError):
    """No step with the requested identifier exists."""

    message = "step not found"


class SagaCompensationError(SagaError):
    """One or more compensations failed while rolling a saga back."""

    message = "saga compensation failed"