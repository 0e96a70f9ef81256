"""
Compliance Engine Errors

Only configuration and invocation bugs are raised. Domain states with a
defined default (missing expiry, unknown severity, empty denominators) are
handled by the scorers themselves and never surface here.
"""


class ComplianceEngineError(Exception):
    """Base class for all errors raised by the compliance engine."""


class UnknownCategoryError(ComplianceEngineError, ValueError):
    """A required compliance item references a category the engine does not know."""

    def __init__(self, category):
        self.category = category
        super().__init__(f"Unknown compliance category for required item: {category!r}")


class InvalidInputError(ComplianceEngineError, ValueError):
    """An evaluation timestamp, threshold or audit input is unusable."""

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")
