"""
Converter Exceptions
--------------------
Malformed input lines are not exceptions (see ``parser.Malformed``); only
failures that stop a job or the whole run are raised.
"""

from __future__ import annotations


class ConverterError(Exception):
    """Base exception for the quote bar converter."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FatalStartupError(ConverterError):
    """Source or destination unusable; raised before any job starts."""


class ArchiveError(ConverterError):
    """A tick archive or bar file cannot be located, named or read."""


class BarStateError(ConverterError):
    """A sealed bar was touched or sealed again."""


class DependencyError(ConverterError):
    """A job's prerequisite stage did not succeed for its symbol."""


class JobFailure(ConverterError):
    """Wraps whatever escaped a single conversion job."""

    def __init__(self, symbol: str, stage_label: str, cause: BaseException):
        super().__init__(
            f"{stage_label} conversion failed for {symbol}: {cause}",
            details={"symbol": symbol, "stage": stage_label},
        )
        self.symbol = symbol
        self.stage_label = stage_label
        self.__cause__ = cause


def root_cause(exc: BaseException) -> BaseException:
    """Follow the explicit ``__cause__`` chain down to the innermost exception."""
    seen = set()
    cur = exc
    while cur.__cause__ is not None and id(cur) not in seen:
        seen.add(id(cur))
        cur = cur.__cause__
    return cur


def describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"
