"""
Tests for quotebar_converter.data_io
------------------------------------
Coverage:
- Archive naming (date prefix, symbol directory).
- Reading zip and csv archives; undecodable bytes stay on their own line.
- Grouping a symbol's archives by day.
- Writing bar files and loading them with pandas.
"""

import zipfile
from datetime import datetime, timedelta
from decimal import Decimal

import pandas as pd
import pytest

from quotebar_converter.bars import Bar, QuoteBar, Resolution
from quotebar_converter.data_io import (
    archive_date,
    archives_by_date,
    bar_file_path,
    iter_archive_lines,
    load_quote_bars,
    read_bars,
    symbol_for,
    tick_archives,
    write_bars,
)
from quotebar_converter.errors import ArchiveError
from quotebar_converter.parser import Malformed, Trade, parse

D = Decimal


def test_archive_naming(tmp_path):
    p = tmp_path / "EURUSD" / "20240102_quote.zip"
    assert archive_date(p) == datetime(2024, 1, 2)
    assert symbol_for(p) == "eurusd"

    with pytest.raises(ArchiveError, match="YYYYMMDD"):
        archive_date(tmp_path / "quote.zip")
    with pytest.raises(ArchiveError, match="invalid date"):
        archive_date(tmp_path / "20241399_quote.zip")


def test_reads_zip_and_csv(tmp_path, write_archive):
    z = write_archive(tmp_path, "eurusd", "20240102_quote.zip", ["1,2,3,4,5", "6,7,8,9,10"])
    c = write_archive(tmp_path, "eurusd", "20240103_quote.csv", ["1,2,3,4,5"])

    assert [ln.strip() for ln in iter_archive_lines(z)] == ["1,2,3,4,5", "6,7,8,9,10"]
    assert [ln.strip() for ln in iter_archive_lines(c)] == ["1,2,3,4,5"]

    with pytest.raises(ArchiveError, match="unsupported"):
        list(iter_archive_lines(tmp_path / "20240102.gz"))


def test_undecodable_bytes_only_spoil_their_line(tmp_path):
    payload = b"1000,1.1,1.1,1.1,1.1\n2000,\xff\xfe,1,1,1\n3000,1.2,1.2,1.2,1.2\n"
    c = tmp_path / "eurusd" / "20240102_trade.csv"
    c.parent.mkdir()
    c.write_bytes(payload)
    z = tmp_path / "eurusd" / "20240103_trade.zip"
    with zipfile.ZipFile(z, "w") as zf:
        zf.writestr("20240103_trade.csv", payload)

    for path in (c, z):
        records = [parse(line) for line in iter_archive_lines(path)]
        assert [type(r) for r in records] == [Trade, Malformed, Trade]


def test_archives_grouped_by_day(tmp_path, write_archive):
    write_archive(tmp_path, "eurusd", "20240103_quote.zip", ["0,1,1,1,1"])
    write_archive(tmp_path, "eurusd", "20240102_trade.csv", ["0,1,1,1,1"])
    write_archive(tmp_path, "eurusd", "20240102_quote.zip", ["0,1,1,1,1"])
    (tmp_path / "eurusd" / "notes.txt").write_text("ignored")

    archives = tick_archives(tmp_path / "eurusd")
    assert [p.name for p in archives] == ["20240102_quote.zip", "20240102_trade.csv", "20240103_quote.zip"]

    groups = [(d, [p.name for p in ps]) for d, ps in archives_by_date(archives)]
    assert groups == [
        (datetime(2024, 1, 2), ["20240102_quote.zip", "20240102_trade.csv"]),
        (datetime(2024, 1, 3), ["20240103_quote.zip"]),
    ]

def test_bar_file_layout(tmp_path):
    assert bar_file_path(tmp_path, "eurusd", Resolution.MINUTE, datetime(2024, 1, 2)) == (
        tmp_path / "eurusd" / "minute" / "20240102_quote.csv"
    )
    assert bar_file_path(tmp_path, "eurusd", Resolution.DAILY) == (
        tmp_path / "eurusd" / "daily" / "eurusd_quote.csv"
    )
    with pytest.raises(ValueError):
        bar_file_path(tmp_path, "eurusd", Resolution.SECOND)


def _bar(start, bid, ask=Bar.ZERO):
    rep = bid if not bid.is_empty else ask
    return QuoteBar("eurusd", Resolution.MINUTE, start, start + timedelta(minutes=1), bid, ask, rep)


def test_write_then_load_with_pandas(tmp_path):
    day = datetime(2024, 1, 2)
    bars = [
        _bar(
            datetime(2024, 1, 2, 1, 0),
            Bar(D("1.1"), D("1.2"), D("1.0"), D("1.15")),
            Bar(D("1.1002"), D("1.2002"), D("1.0002"), D("1.1502")),
        ),
        _bar(datetime(2024, 1, 2, 1, 1), Bar.ZERO, Bar.point(D("1.3"))),
    ]
    path = bar_file_path(tmp_path, "eurusd", Resolution.MINUTE, day)

    assert write_bars(path, bars, day) == 2
    assert path.read_text().splitlines()[0] == "3600000,11000,12000,10000,11500,0,11002,12002,10002,11502,0"

    df = load_quote_bars(path, Resolution.MINUTE)
    assert list(df.index) == [pd.Timestamp("2024-01-02 01:00"), pd.Timestamp("2024-01-02 01:01")]
    assert df["bid_high"].iloc[0] == pytest.approx(1.2)
    assert df["ask_close"].iloc[0] == pytest.approx(1.1502)
    # bid absent on the second bar: representative falls back to ask
    assert df["bid_open"].iloc[1] == 0
    assert df["close"].iloc[1] == pytest.approx(1.3)

    back = list(read_bars(path, "eurusd", Resolution.MINUTE, day))
    assert [b.bid for b in back] == [b.bid for b in bars]
    assert [b.ask for b in back] == [b.ask for b in bars]


def test_empty_bar_file(tmp_path):
    path = tmp_path / "eurusd" / "hour" / "eurusd_quote.csv"
    assert write_bars(path, [], datetime(1970, 1, 1)) == 0
    assert load_quote_bars(path, Resolution.HOUR).empty
    assert list(read_bars(path, "eurusd", Resolution.HOUR, datetime(1970, 1, 1))) == []


def test_loaded_representative_prefers_bid(tmp_path):
    # ask touched first: the live bar follows the ask, the loaded frame the bid
    day = datetime(2024, 1, 2)
    start = datetime(2024, 1, 2, 1, 0)
    bid = Bar.point(D("1.1"))
    ask = Bar.point(D("1.2"))
    bar = QuoteBar("eurusd", Resolution.MINUTE, start, start + timedelta(minutes=1), bid, ask, ask)
    path = bar_file_path(tmp_path, "eurusd", Resolution.MINUTE, day)
    write_bars(path, [bar], day)

    df = load_quote_bars(path, Resolution.MINUTE)
    assert bar.close == D("1.2")
    assert df["close"].iloc[0] == pytest.approx(1.1)
