"""
Bar Data Model
--------------
Immutable price containers shared by every stage of the converter:
- Resolution: bar period granularity and period flooring.
- Bar: one side's OHLC quad (fixed-point Decimal prices).
- QuoteBar: a sealed bid/ask pair plus its representative OHLC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import ClassVar


class Resolution(Enum):
    """Bar period granularity, finest first."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAILY = "daily"

    @property
    def period(self) -> timedelta:
        return _PERIODS[self]

    @property
    def is_intraday_file(self) -> bool:
        """Second/minute bars are written one file per day."""
        return self in (Resolution.SECOND, Resolution.MINUTE)

    def floor(self, dt: datetime) -> datetime:
        """Start of the period containing ``dt``."""
        if self is Resolution.DAILY:
            return dt.replace(hour=0, minute=0, second=0, microsecond=0)
        if self is Resolution.HOUR:
            return dt.replace(minute=0, second=0, microsecond=0)
        if self is Resolution.MINUTE:
            return dt.replace(second=0, microsecond=0)
        return dt.replace(microsecond=0)


_PERIODS = {
    Resolution.SECOND: timedelta(seconds=1),
    Resolution.MINUTE: timedelta(minutes=1),
    Resolution.HOUR: timedelta(hours=1),
    Resolution.DAILY: timedelta(days=1),
}


_ZERO = Decimal(0)


@dataclass(frozen=True)
class Bar:
    """One side's OHLC quad over one period."""

    ZERO: ClassVar["Bar"]

    open: Decimal = _ZERO
    high: Decimal = _ZERO
    low: Decimal = _ZERO
    close: Decimal = _ZERO

    @classmethod
    def point(cls, price: Decimal | int | str) -> "Bar":
        p = Decimal(price)
        return cls(p, p, p, p)

    @property
    def is_empty(self) -> bool:
        return self.open == 0 and self.high == 0 and self.low == 0 and self.close == 0

    def extend(self, other: "Bar") -> "Bar":
        """Fold a later quad into this one: keep open, widen range, take close."""
        return Bar(
            open=self.open,
            high=max(self.high, other.high),
            low=min(self.low, other.low),
            close=other.close,
        )

    def as_tuple(self) -> tuple[Decimal, Decimal, Decimal, Decimal]:
        return (self.open, self.high, self.low, self.close)


Bar.ZERO = Bar()


@dataclass(frozen=True)
class QuoteBar:
    """
    A sealed bid/ask bar for one symbol, period and resolution.

    Absent sides are stored as the all-zero Bar; nothing is ever copied across
    from the other side. The representative bar is chosen while the bar is
    being built (see ``aggregator.QuoteBarBuilder``).
    """

    symbol: str
    resolution: Resolution
    start: datetime
    end: datetime
    bid: Bar = field(default_factory=Bar)
    ask: Bar = field(default_factory=Bar)
    representative: Bar = field(default_factory=Bar)

    @property
    def has_bid(self) -> bool:
        return not self.bid.is_empty

    @property
    def has_ask(self) -> bool:
        return not self.ask.is_empty

    @property
    def open(self) -> Decimal:
        return self.representative.open

    @property
    def high(self) -> Decimal:
        return self.representative.high

    @property
    def low(self) -> Decimal:
        return self.representative.low

    @property
    def close(self) -> Decimal:
        return self.representative.close
