"""Exceptions raised by the finance engine.

Only rejected preconditions raise. Degenerate statistics (empty history,
zero denominators) resolve to neutral values instead.
"""

from __future__ import annotations


class FinanceEngineError(Exception):
    """Base class for all engine errors."""


class SplitMismatchError(FinanceEngineError, ValueError):
    """Split amounts do not add up to the shared expense total."""

    def __init__(self, expected: float, actual: float, tolerance: float):
        self.expected = expected
        self.actual = actual
        self.tolerance = tolerance
        super().__init__(
            f"Split amounts must equal the total expense amount "
            f"(expected {expected:.2f}, got {actual:.2f}, tolerance {tolerance})"
        )


class InvalidPeriodKeyError(FinanceEngineError, ValueError):
    """A period key cannot be parsed for the given period type."""


class UnknownBudgetTypeError(FinanceEngineError, ValueError):
    """The allocation engine does not know the budget variant."""


class UnknownParticipantError(FinanceEngineError, LookupError):
    """The participant has no split in the shared expense."""
