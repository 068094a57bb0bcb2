"""Error taxonomy.

All engine errors derive from :class:`BacktestError` (a ``ValueError``) and carry
the offending field and value so callers can tell a parameter problem from a
data problem without parsing messages.
"""

from __future__ import annotations

from typing import Any


class BacktestError(ValueError):
    """Base class for engine errors."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        if field is not None:
            message = f"{message} ({field}={value!r})"
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidRange(BacktestError):
    """End date before start date."""


class InvalidParameters(BacktestError):
    """Non-positive capital, window, multiplier or lot size; bad symbol profile."""


class EmptyDataset(BacktestError):
    """No bars available after date filtering (or an empty provider response)."""


class MalformedBar(BacktestError):
    """Non-finite or negative price/volume, unsorted dates, unreadable rows."""
