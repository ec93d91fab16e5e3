"""The outcome of a saga execution."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ExecutionResult:
    """What happened when a saga ran."""

    success: bool = False
    executed_steps: list[str] = field(default_factory=list)
    failed_step_id: str | None = None
    original_error: BaseException | None = None
    compensation_error: BaseException | None = None
    compensated_steps: list[str] = field(default_factory=list)
    duration: float = 0.0

    def is_compensated(self) -> bool:
        """True if the saga failed and every executed step was compensated."""
        if self.success:
            return False
        return not set(self.executed_steps) - set(self.compensated_steps)

    def has_errors(self) -> bool:
        """True if an execution or a compensation error was recorded."""
        return self.original_error is not None or self.compensation_error is not None