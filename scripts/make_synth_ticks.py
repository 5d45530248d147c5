"""
Script: Synthetic Tick Archive Generator
Purpose: Creates deterministic quote-shaped tick archives for local runs.

Description:
    Generates a random-walk mid price per symbol and writes one zip archive per
    symbol per day, laid out the way the converter discovers them:
        <out>/<symbol>/<YYYYMMDD>_quote.zip  ->  <YYYYMMDD>_<symbol>_tick_quote.csv
    Every line is quote-shaped with prices scaled by --price-scale.
    A few malformed lines are mixed in to exercise the tolerant parser.

Usage:
    python scripts/make_synth_ticks.py --out data/forex/oanda/tick --symbols eurusd,usdjpy --days 2
"""

from __future__ import annotations

import argparse
import zipfile
from pathlib import Path

import numpy as np
import pandas as pd


def make_synth_ticks(
    n_ticks: int,
    start_price: float,
    seed: int,
    price_scale: int = 10000,
    malformed_every: int = 0,
) -> list[str]:
    rng = np.random.default_rng(seed)

    gaps = rng.integers(50, 2000, size=n_ticks)
    offsets = np.minimum(np.cumsum(gaps), 86_399_999)
    mid = start_price + rng.standard_normal(n_ticks).cumsum() * 0.0001
    spread = rng.uniform(0.0001, 0.0003, size=n_ticks)

    bid = np.round((mid - spread / 2) * price_scale).astype(int)
    ask = np.round((mid + spread / 2) * price_scale).astype(int)

    lines = []
    for i in range(n_ticks):
        b, a = bid[i], ask[i]
        lines.append(f"{offsets[i]},{b},{b},{b},{b},0,{a},{a},{a},{a},0")
        if malformed_every and i % malformed_every == malformed_every - 1:
            lines.append(f"{offsets[i]},{b},{b}")
    return lines


def write_archive(out_root: Path, symbol: str, day: pd.Timestamp, lines: list[str]) -> Path:
    out_dir = out_root / symbol
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{day:%Y%m%d}_quote.zip"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"{day:%Y%m%d}_{symbol}_tick_quote.csv", "\n".join(lines) + "\n")
    return path


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True, help="Tick archive root")
    ap.add_argument("--symbols", default="eurusd,gbpusd")
    ap.add_argument("--start-date", default="2025-01-06")
    ap.add_argument("--days", type=int, default=2)
    ap.add_argument("--ticks-per-day", type=int, default=20000)
    ap.add_argument("--price-scale", type=int, default=10000)
    ap.add_argument("--malformed-every", type=int, default=500)
    ap.add_argument("--seed", type=int, default=123)
    args = ap.parse_args()

    out = Path(args.out).expanduser().resolve()
    symbols = [s.strip().lower() for s in args.symbols.split(",") if s.strip()]
    start = pd.Timestamp(args.start_date).normalize()

    for si, symbol in enumerate(symbols):
        price = 1.1 + 0.2 * si
        for d in range(args.days):
            day = start + pd.Timedelta(days=d)
            lines = make_synth_ticks(
                args.ticks_per_day,
                price,
                seed=args.seed + 1000 * si + d,
                price_scale=args.price_scale,
                malformed_every=args.malformed_every,
            )
            print(str(write_archive(out, symbol, day, lines)))


if __name__ == "__main__":
    main()
