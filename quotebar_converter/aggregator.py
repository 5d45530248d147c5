"""
Quote Bar Aggregator
--------------------
Per-symbol state machine turning parsed tick records into sealed QuoteBars.

    EMPTY -> PARTIAL (one side touched) -> FILLED (both sides) -> SEALED

Representative bar policy: it mirrors the first side touched in the period,
for the whole period. Updates to the other side never move it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from .bars import Bar, QuoteBar, Resolution
from .errors import BarStateError
from .parser import Malformed, ParsedRecord, Quote, Trade

logger = logging.getLogger(__name__)

BID = "bid"
ASK = "ask"


class BarState(Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    FILLED = "filled"
    SEALED = "sealed"


class QuoteBarBuilder:
    """The single open (mutable) bar of one symbol/resolution."""

    def __init__(self, symbol: str, resolution: Resolution, start: datetime):
        self.symbol = symbol
        self.resolution = resolution
        self.start = start
        self.end = start + resolution.period
        self._sides: dict[str, Optional[Bar]] = {BID: None, ASK: None}
        self._lead: Optional[str] = None
        self._sealed = False

    @property
    def state(self) -> BarState:
        if self._sealed:
            return BarState.SEALED
        touched = sum(1 for b in self._sides.values() if b is not None)
        if touched == 0:
            return BarState.EMPTY
        if touched == 1:
            return BarState.PARTIAL
        return BarState.FILLED

    @property
    def is_touched(self) -> bool:
        return self._lead is not None

    @property
    def bid(self) -> Bar:
        return self._sides[BID] or Bar.ZERO

    @property
    def ask(self) -> Bar:
        return self._sides[ASK] or Bar.ZERO

    @property
    def representative(self) -> Bar:
        if self._lead is None:
            return Bar.ZERO
        return self._sides[self._lead] or Bar.ZERO

    def update_side(self, side: str, bar: Bar) -> None:
        if self._sealed:
            raise BarStateError(
                f"cannot update sealed {self.resolution.value} bar for {self.symbol} at {self.start}"
            )
        if side not in self._sides:
            raise ValueError(f"unknown side {side!r}")

        current = self._sides[side]
        self._sides[side] = bar if current is None else current.extend(bar)
        if self._lead is None:
            self._lead = side

    def update_bid(self, price) -> None:
        self.update_side(BID, Bar.point(price))

    def update_ask(self, price) -> None:
        self.update_side(ASK, Bar.point(price))

    def on_record(self, record: ParsedRecord) -> None:
        """Route a parsed record to its sides; Malformed records never mutate."""
        if isinstance(record, (Quote, Trade)):
            for side, bar in ((BID, record.bid), (ASK, record.ask)):
                # an all-zero quad is an absent side, not a price
                if not bar.is_empty:
                    self.update_side(side, bar)

    def seal(self) -> QuoteBar:
        if self._sealed:
            raise BarStateError(
                f"{self.resolution.value} bar for {self.symbol} at {self.start} already sealed"
            )
        self._sealed = True
        return QuoteBar(
            symbol=self.symbol,
            resolution=self.resolution,
            start=self.start,
            end=self.end,
            bid=self.bid,
            ask=self.ask,
            representative=self.representative,
        )


class TickAggregator:
    """
    Consumes timestamped tick records for one symbol at one resolution.

    Holds at most one open bar. ``update`` returns the bars sealed by that
    record (zero or one), always in non-decreasing period order.
    """

    def __init__(self, symbol: str, resolution: Resolution):
        self.symbol = symbol
        self.resolution = resolution
        self.current: Optional[QuoteBarBuilder] = None

    def _open(self, time: datetime) -> None:
        self.current = QuoteBarBuilder(self.symbol, self.resolution, self.resolution.floor(time))

    def _seal_current(self) -> list[QuoteBar]:
        cur = self.current
        self.current = None
        if cur is None or not cur.is_touched:
            return []
        return [cur.seal()]

    def on_boundary_crossed(self, time: datetime) -> list[QuoteBar]:
        """Seal the open bar and open an empty one for the period holding ``time``."""
        out = self._seal_current()
        self._open(time)
        return out

    def update(self, time: datetime, record: ParsedRecord) -> list[QuoteBar]:
        if isinstance(record, Malformed):
            return []

        out: list[QuoteBar] = []
        if self.current is None:
            self._open(time)
        elif time >= self.current.end:
            out = self.on_boundary_crossed(time)
        elif time < self.current.start:
            logger.debug(
                "%s %s: out-of-order tick at %s folded into bar %s",
                self.symbol,
                self.resolution.value,
                time,
                self.current.start,
            )

        if self.current is not None:
            self.current.on_record(record)
        return out

    def flush(self) -> Optional[QuoteBar]:
        out = self._seal_current()
        return out[0] if out else None
