"""
Error types for the survey grading engine.

Everything raised here is fatal for a batch. Per-section problems are
reported as BatchWarning entries instead (see integrity.py).
"""


class SurveyGradingError(Exception):
    """Base class for all grading engine errors."""


class BatchAbortedError(SurveyGradingError):
    """The batch cannot be processed at all."""


class EmptyBatchError(BatchAbortedError):
    """An upload produced zero sections."""


class RuleTableError(BatchAbortedError):
    """The MSCC5 rule table is missing or could not be loaded."""


class PricingConfigError(BatchAbortedError):
    """A pricing configuration file is unreadable or invalid (e.g. overlapping tiers)."""


class SurveyReadError(BatchAbortedError):
    """The survey input feed could not be read."""
