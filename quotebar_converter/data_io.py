"""
Data IO Layer
-------------
Reading tick archives and reading/writing sealed quote bar files.

Layout under the destination root:
    <symbol>/second/<YYYYMMDD>_quote.csv   offsets from that day's midnight
    <symbol>/minute/<YYYYMMDD>_quote.csv   offsets from that day's midnight
    <symbol>/hour/<symbol>_quote.csv       offsets from the Unix epoch
    <symbol>/daily/<symbol>_quote.csv      offsets from the Unix epoch
"""

from __future__ import annotations

import io
import itertools
import re
import zipfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator

import pandas as pd

from .bars import QuoteBar, Resolution
from .errors import ArchiveError
from .parser import DEFAULT_PRICE_SCALE, EPOCH, format_quote_bar, read_quote_bar

ARCHIVE_SUFFIXES = (".zip", ".csv")
BAR_COLUMNS = (
    "offset",
    "bid_open",
    "bid_high",
    "bid_low",
    "bid_close",
    "bid_size",
    "ask_open",
    "ask_high",
    "ask_low",
    "ask_close",
    "ask_size",
)

_DATE_RE = re.compile(r"^(\d{8})")


def archive_date(path: str | Path) -> datetime:
    """Reference date of a tick archive or intraday bar file, from its name."""
    name = Path(path).name
    m = _DATE_RE.match(name)
    if m is None:
        raise ArchiveError(f"no YYYYMMDD date prefix in file name {name!r}", {"path": str(path)})
    try:
        return datetime.strptime(m.group(1), "%Y%m%d")
    except ValueError as e:
        raise ArchiveError(f"invalid date prefix in file name {name!r}", {"path": str(path)}) from e


def symbol_for(path: str | Path) -> str:
    """Archives live in a per-symbol directory: <root>/<symbol>/<file>."""
    return Path(path).parent.name.lower()


def iter_archive_lines(path: str | Path) -> Iterator[str]:
    """
    Yields raw lines of a .zip (all members, in name order) or plain .csv archive.

    Undecodable bytes become U+FFFD, so the line they sit on parses as Malformed
    instead of failing the whole archive.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".zip":
        with zipfile.ZipFile(p) as zf:
            for name in sorted(n for n in zf.namelist() if not n.endswith("/")):
                with zf.open(name) as raw:
                    yield from io.TextIOWrapper(raw, encoding="utf-8", errors="replace")
    elif suffix == ".csv":
        with p.open("r", encoding="utf-8", errors="replace") as f:
            yield from f
    else:
        raise ArchiveError(f"unsupported archive type {suffix!r}", {"path": str(p)})


def tick_archives(directory: str | Path) -> list[Path]:
    """Tick archives directly inside one symbol directory, in name order."""
    d = Path(directory)
    return sorted(p for p in d.iterdir() if p.is_file() and p.suffix.lower() in ARCHIVE_SUFFIXES)


def archives_by_date(paths: Iterable[str | Path]) -> Iterator[tuple[datetime, list[Path]]]:
    """
    Groups archives by the date in their name, oldest first.

    Several archives can share a date (e.g. a quote and a trade file); they
    are converted together into that day's bar files.
    """
    dated = sorted((archive_date(p), Path(p)) for p in paths)
    for date, group in itertools.groupby(dated, key=lambda pair: pair[0]):
        yield date, [p for _, p in group]


def reference_for(resolution: Resolution, date: datetime | None = None) -> datetime:
    if resolution.is_intraday_file:
        if date is None:
            raise ValueError(f"{resolution.value} bar files need a date")
        return date
    return EPOCH


def bar_file_path(
    destination: str | Path,
    symbol: str,
    resolution: Resolution,
    date: datetime | None = None,
) -> Path:
    base = Path(destination) / symbol / resolution.value
    if resolution.is_intraday_file:
        if date is None:
            raise ValueError(f"{resolution.value} bar files need a date")
        return base / f"{date:%Y%m%d}_quote.csv"
    return base / f"{symbol}_quote.csv"


def write_bars(
    path: str | Path,
    bars: Iterable[QuoteBar],
    reference: datetime,
    price_scale: Decimal | int = DEFAULT_PRICE_SCALE,
) -> int:
    """Write sealed bars as quote-shaped lines. Returns the number written."""
    rows = [format_quote_bar(b, reference, price_scale).split(",") for b in bars]
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        p.write_text("", encoding="utf-8")
        return 0
    pd.DataFrame(rows, columns=list(BAR_COLUMNS)).to_csv(p, header=False, index=False)
    return len(rows)


def read_bars(
    path: str | Path,
    symbol: str,
    resolution: Resolution,
    reference: datetime,
    price_scale: Decimal | int = DEFAULT_PRICE_SCALE,
) -> Iterator[QuoteBar]:
    """Stream sealed bars back from a bar file; lines without prices are skipped."""
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            bar = read_quote_bar(line, symbol, reference, resolution, price_scale)
            if bar.has_bid or bar.has_ask:
                yield bar


def load_quote_bars(
    path: str | Path,
    resolution: Resolution,
    reference: datetime | None = None,
    price_scale: float = float(DEFAULT_PRICE_SCALE),
) -> pd.DataFrame:
    """
    Loads a bar file into a float DataFrame indexed by period start.

    Columns: bid_*/ask_* quads plus representative open/high/low/close.
    Absent sides stay 0.

    Bar files do not record which side was touched first, so the
    representative here is the bid when present, else the ask. For a bar whose
    ask was touched before its bid this differs from the live aggregator.
    """
    if reference is None:
        reference = archive_date(path) if resolution.is_intraday_file else EPOCH

    if Path(path).stat().st_size == 0:
        return pd.DataFrame(
            columns=[c for c in BAR_COLUMNS if c not in ("offset", "bid_size", "ask_size")]
            + ["open", "high", "low", "close"]
        )

    df = pd.read_csv(path, header=None, names=list(BAR_COLUMNS))
    idx = pd.DatetimeIndex(
        pd.Timestamp(reference) + pd.to_timedelta(df["offset"].astype("int64"), unit="ms"),
        name="start",
    )
    df = df.drop(columns=["offset", "bid_size", "ask_size"]).astype("float64") / float(price_scale)
    df.index = idx

    has_bid = (df[["bid_open", "bid_high", "bid_low", "bid_close"]] != 0).any(axis=1)
    for col in ("open", "high", "low", "close"):
        df[col] = df[f"bid_{col}"].where(has_bid, df[f"ask_{col}"])

    return df.sort_index()
