"""
Per-Symbol Conversion
---------------------
The work done inside one job. Everything here runs on a single worker, so a
symbol's aggregators are never touched concurrently.
"""

from __future__ import annotations

import heapq
import logging
from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Iterator

from .aggregator import TickAggregator
from .bars import QuoteBar, Resolution
from .chain import ResolutionChain
from .data_io import (
    archive_date,
    archives_by_date,
    bar_file_path,
    iter_archive_lines,
    read_bars,
    reference_for,
    tick_archives,
    write_bars,
)
from .errors import ArchiveError
from .jobs import ConversionJob
from .parser import DEFAULT_PRICE_SCALE, Malformed, Quote, Trade, parse

logger = logging.getLogger(__name__)


def _records(path: Path, price_scale: Decimal | int, skipped: Counter) -> Iterator[Trade | Quote]:
    for line in iter_archive_lines(path):
        record = parse(line, price_scale)
        if isinstance(record, Malformed):
            skipped[path.name] += 1
            continue
        yield record


def _convert_day(
    job: ConversionJob,
    date: datetime,
    archives: list[Path],
    price_scale: Decimal | int,
) -> dict[str, int]:
    aggregators = [TickAggregator(job.symbol, r) for r in job.resolutions]
    sealed: dict[Resolution, list[QuoteBar]] = {r: [] for r in job.resolutions}
    skipped: Counter = Counter()

    # Same-day archives are merged on offset; each is already in time order.
    streams = [_records(a, price_scale, skipped) for a in archives]
    for record in heapq.merge(*streams, key=lambda r: r.offset_ms):
        time = date + timedelta(milliseconds=record.offset_ms)
        for agg in aggregators:
            sealed[agg.resolution] += agg.update(time, record)

    for agg in aggregators:
        last = agg.flush()
        if last is not None:
            sealed[agg.resolution].append(last)

    for name, n in sorted(skipped.items()):
        logger.debug("%s: %d malformed lines skipped in %s", job.symbol, n, name)

    written = {}
    for res, bars in sealed.items():
        path = bar_file_path(job.destination, job.symbol, res, date)
        written[res.value] = write_bars(path, bars, reference_for(res, date), price_scale)
    return written


def convert_ticks(job: ConversionJob, price_scale: Decimal | int = DEFAULT_PRICE_SCALE) -> dict[str, int]:
    """
    Aggregates a symbol's tick archives into second and minute bar files.

    Days are converted oldest first, one bar file per day and resolution.
    Returns bars written per resolution.
    """
    written = {r.value: 0 for r in job.resolutions}
    for date, archives in archives_by_date(tick_archives(job.source)):
        if len(archives) > 1:
            names = ", ".join(a.name for a in archives)
            logger.debug("%s %s: merging %s", job.symbol, date.strftime("%Y%m%d"), names)
        for res, n in _convert_day(job, date, archives, price_scale).items():
            written[res] += n
    return written


def convert_bars(job: ConversionJob, price_scale: Decimal | int = DEFAULT_PRICE_SCALE) -> dict[str, int]:
    """
    Chains a symbol's sealed minute bars into hour and daily bar files.

    Minute files are read in date order, one bar at a time.
    """
    if not job.source.is_dir():
        raise ArchiveError(f"no minute bars for {job.symbol} at {job.source}", {"path": str(job.source)})

    chain = ResolutionChain(job.symbol, job.resolutions)
    sealed: dict[Resolution, list[QuoteBar]] = {r: [] for r in job.resolutions}

    files = sorted(job.source.glob("*_quote.csv"))
    for path in files:
        date = archive_date(path)
        for bar in read_bars(path, job.symbol, Resolution.MINUTE, date, price_scale):
            for res, out in chain.push(bar):
                sealed[res].append(out)
    for res, out in chain.flush():
        sealed[res].append(out)

    written = {}
    for res, bars in sealed.items():
        path = bar_file_path(job.destination, job.symbol, res)
        written[res.value] = write_bars(path, bars, reference_for(res), price_scale)
    return written
