"""
Pytest Fixtures
---------------
Shared resources for testing.
- write_archive: writes a tick archive (zip or csv) under a symbol directory.
- tick_root: small deterministic two-symbol archive tree with hand-checked prices.
- random_quote_ticks: seeded random bid ticks for cross-checking against pandas.
"""

from __future__ import annotations

import zipfile
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest

EURUSD_DAY1 = [
    "3600000,11000,11000,11000,11000,0,11002,11002,11002,11002,0",
    "3600500,11005,11005,11005,11005,0,11007,11007,11007,11007,0",
    "3601000,10990,10990,10990,10990,0,10993,10993,10993,10993,0",
    "3660000,11010,11010,11010,11010,0,11012,11012,11012,11012,0",
    "garbage,line",
    "7200000,11020,11020,11020,11020,0,11022,11022,11022,11022,0",
]
EURUSD_DAY2 = [
    "0,11100,11100,11100,11100,0,11103,11103,11103,11103,0",
]
GBPUSD_DAY1 = [
    "1000,1.25,1.26,1.24,1.255",
    "2000,1.255,1.27,1.25,1.26",
]


def _write_archive(root: Path, symbol: str, name: str, lines: list[str]) -> Path:
    d = root / symbol
    d.mkdir(parents=True, exist_ok=True)
    payload = "\n".join(lines) + "\n"
    path = d / name
    if path.suffix == ".zip":
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr(name.replace(".zip", ".csv"), payload)
    else:
        path.write_text(payload, encoding="utf-8")
    return path


@pytest.fixture
def write_archive():
    return _write_archive


@pytest.fixture
def tick_root(tmp_path: Path) -> Path:
    """
    eurusd: two zipped quote archives (one with a malformed line).
    gbpusd: one plain csv archive of trade-shaped lines.
    """
    root = tmp_path / "tick"
    _write_archive(root, "eurusd", "20240102_quote.zip", EURUSD_DAY1)
    _write_archive(root, "eurusd", "20240103_quote.zip", EURUSD_DAY2)
    _write_archive(root, "gbpusd", "20240102_trade.csv", GBPUSD_DAY1)
    return root


@pytest.fixture
def random_quote_ticks():
    """
    2000 bid ticks on 2024-01-02 as (time, scaled_int_price) pairs,
    strictly increasing in time.
    """
    rng = np.random.default_rng(42)
    gaps = rng.integers(100, 5000, size=2000)
    prices = rng.integers(10900, 11100, size=2000)
    base = datetime(2024, 1, 2)
    times = [base + timedelta(milliseconds=int(ms)) for ms in np.cumsum(gaps)]
    return list(zip(times, (int(p) for p in prices)))
