"""
Resolution Chain
----------------
Builds coarser bars by absorbing already-sealed finer bars instead of
re-reading the tick archive, e.g. minute -> hour -> daily.

Each level keeps a single open builder, so memory is one bar per resolution.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .aggregator import ASK, BID, QuoteBarBuilder
from .bars import QuoteBar, Resolution


class ChainAggregator:
    """Aggregates sealed inner bars into one coarser resolution."""

    def __init__(self, symbol: str, resolution: Resolution):
        self.symbol = symbol
        self.resolution = resolution
        self.current: Optional[QuoteBarBuilder] = None

    def _seal(self) -> list[QuoteBar]:
        cur = self.current
        self.current = None
        if cur is None or not cur.is_touched:
            return []
        return [cur.seal()]

    def absorb(self, inner: QuoteBar) -> list[QuoteBar]:
        """
        Fold one finer bar into the open coarse bar.

        Per side: open comes from the first absorb that carries the side,
        high/low widen across all absorbs, close is the last absorb's close.
        Returns the coarse bars sealed by this absorb.
        """
        out: list[QuoteBar] = []
        if self.current is not None and inner.start >= self.current.end:
            out += self._seal()
        if self.current is None:
            self.current = QuoteBarBuilder(
                self.symbol, self.resolution, self.resolution.floor(inner.start)
            )

        if inner.has_bid:
            self.current.update_side(BID, inner.bid)
        if inner.has_ask:
            self.current.update_side(ASK, inner.ask)

        if inner.end >= self.current.end:
            out += self._seal()
        return out

    def flush(self) -> Optional[QuoteBar]:
        out = self._seal()
        return out[0] if out else None


class ResolutionChain:
    """
    Wires ChainAggregators so each level consumes the previous level's output.

    ``push`` takes bars of the input (finest) resolution and returns every
    ``(resolution, bar)`` sealed along the chain, finest first.
    """

    def __init__(self, symbol: str, resolutions: Sequence[Resolution]):
        if not resolutions:
            raise ValueError("ResolutionChain needs at least one resolution")
        self.symbol = symbol
        self.levels = [ChainAggregator(symbol, r) for r in resolutions]

    def _feed(self, level: int, bars: Iterable[QuoteBar]) -> list[tuple[Resolution, QuoteBar]]:
        out: list[tuple[Resolution, QuoteBar]] = []
        if level >= len(self.levels):
            return out
        agg = self.levels[level]
        for bar in bars:
            sealed = agg.absorb(bar)
            out += [(agg.resolution, b) for b in sealed]
            out += self._feed(level + 1, sealed)
        return out

    def push(self, bar: QuoteBar) -> list[tuple[Resolution, QuoteBar]]:
        return self._feed(0, [bar])

    def flush(self) -> list[tuple[Resolution, QuoteBar]]:
        out: list[tuple[Resolution, QuoteBar]] = []
        for i, agg in enumerate(self.levels):
            last = agg.flush()
            if last is not None:
                out.append((agg.resolution, last))
                out += self._feed(i + 1, [last])
        return out
