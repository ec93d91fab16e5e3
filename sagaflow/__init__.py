"""Saga orchestration: run steps in order and compensate them when one fails."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "logger",
    "options",
    "result",
    "retry",
    "saga",
    "step",
    "step_group",
]