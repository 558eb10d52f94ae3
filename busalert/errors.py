"""
Typed errors raised across BusAlert services.
"""
from typing import Any, Optional


class BusAlertError(Exception):
    """Base class for BusAlert errors."""


class ProviderUnavailable(BusAlertError):
    """
    Upstream route search/detail call failed or timed out.

    Always retryable. `last_known` carries the last cached value for the
    same query (possibly expired), or None if nothing was ever cached.
    """

    retryable = True

    def __init__(self, message: str, last_known: Optional[Any] = None):
        super().__init__(message)
        self.last_known = last_known


class PositionUnavailable(BusAlertError):
    """Device position could not be read. Never retried automatically."""

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"Position unavailable: {reason}")
        self.reason = reason


class InvalidConfiguration(BusAlertError):
    """Alert settings rejected at the settings boundary."""
