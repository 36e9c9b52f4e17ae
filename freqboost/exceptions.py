"""
Exceptions raised by the boosting orchestrator and its weak learners.
"""


class FreqBoostError(Exception):
    """Base class for all FreqBoost errors."""


class DegenerateInputError(FreqBoostError, ValueError):
    """Total claim count or total exposure is zero, so no log-rate exists."""


class InvalidPredictionError(FreqBoostError, ValueError):
    """A weak learner returned a non-positive or non-finite multiplicative prediction."""


class UnfittedModelError(FreqBoostError, RuntimeError):
    """The orchestrator was used before it was initialised or boosted."""
