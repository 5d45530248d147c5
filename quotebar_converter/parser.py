"""
Tick Parser
-----------
Classifies and decodes one comma-separated line into a tagged record.

Line shapes (field 0 is always a millisecond offset from a reference date):
- Trade:  offset,o,h,l,c                                  (5 fields, unscaled)
- Quote:  offset,bo,bh,bl,bc,bsize,ao,ah,al,ac[,asize]    (10-11 fields, scaled)
- Anything else is Malformed. ``parse`` never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Union

from .bars import Bar, QuoteBar, Resolution

DEFAULT_PRICE_SCALE = Decimal(10000)
TRADE_FIELDS = 5
QUOTE_FIELDS = (10, 11)
EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class Trade:
    offset_ms: int
    bar: Bar

    @property
    def bid(self) -> Bar:
        return self.bar

    @property
    def ask(self) -> Bar:
        return self.bar


@dataclass(frozen=True)
class Quote:
    offset_ms: int
    bid: Bar
    ask: Bar


@dataclass(frozen=True)
class Malformed:
    line: str
    reason: str

    @property
    def bid(self) -> Bar:
        return Bar.ZERO

    @property
    def ask(self) -> Bar:
        return Bar.ZERO


ParsedRecord = Union[Trade, Quote, Malformed]


def _decimal(text: str) -> Decimal:
    value = Decimal(text.strip())
    if not value.is_finite():
        raise InvalidOperation(text)
    return value


def _offset(text: str) -> int:
    value = _decimal(text)
    if value != value.to_integral_value():
        raise InvalidOperation(text)
    return int(value)


def _quad(fields: list[str], scale: Decimal | None = None) -> Bar:
    o, h, l, c = (_decimal(f) for f in fields)
    if scale is not None:
        o, h, l, c = o / scale, h / scale, l / scale, c / scale
    return Bar(o, h, l, c)


def parse(line: str, price_scale: Decimal | int = DEFAULT_PRICE_SCALE) -> ParsedRecord:
    """Decode one line; dirty data degrades to ``Malformed`` instead of raising."""
    text = line.strip()
    if not text:
        return Malformed(line, "empty line")

    fields = text.split(",")
    n = len(fields)
    scale = Decimal(price_scale)

    try:
        if n == TRADE_FIELDS:
            return Trade(_offset(fields[0]), _quad(fields[1:5]))
        if n in QUOTE_FIELDS:
            # fields[5] and fields[10] are sizes
            return Quote(
                _offset(fields[0]),
                bid=_quad(fields[1:5], scale),
                ask=_quad(fields[6:10], scale),
            )
    except (InvalidOperation, ValueError):
        return Malformed(line, "non-numeric field")

    return Malformed(line, f"unexpected field count {n}")


def read_quote_bar(
    line: str,
    symbol: str,
    reference: datetime,
    resolution: Resolution,
    price_scale: Decimal | int = DEFAULT_PRICE_SCALE,
) -> QuoteBar:
    """
    Parse a line straight into a sealed QuoteBar starting at ``reference + offset``.

    Malformed lines give an all-zero bar stamped at ``reference``.
    """
    record = parse(line, price_scale)
    if isinstance(record, Malformed):
        start = reference
        return QuoteBar(symbol, resolution, start, start + resolution.period)

    start = reference + timedelta(milliseconds=record.offset_ms)
    bid, ask = record.bid, record.ask
    # representative follows the first non-empty side, bid first
    representative = bid if not bid.is_empty else ask
    return QuoteBar(symbol, resolution, start, start + resolution.period, bid, ask, representative)


def _plain(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def offset_ms(start: datetime, reference: datetime) -> int:
    return int((start - reference) // timedelta(milliseconds=1))


def format_quote_bar(
    bar: QuoteBar,
    reference: datetime,
    price_scale: Decimal | int = DEFAULT_PRICE_SCALE,
) -> str:
    """Write the 11-field quote-shaped line; sizes are written as 0."""
    scale = Decimal(price_scale)
    fields = [str(offset_ms(bar.start, reference))]
    fields += [_plain(p * scale) for p in bar.bid.as_tuple()]
    fields.append("0")
    fields += [_plain(p * scale) for p in bar.ask.as_tuple()]
    fields.append("0")
    return ",".join(fields)
