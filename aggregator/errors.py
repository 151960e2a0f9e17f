"""Exception types raised by the aggregation core."""


class AggregatorError(Exception):
    """Base class for aggregation errors."""


class AdapterError(AggregatorError):
    """A provider request failed (network, HTTP status or payload shape)."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"[{source}] {reason}")
        self.source = source
        self.reason = reason


class StoreReadError(AggregatorError):
    """The local store could not be read; discovery cannot proceed."""


class CriteriaValidationError(AggregatorError, ValueError):
    """Discovery input was rejected before any request was issued."""
