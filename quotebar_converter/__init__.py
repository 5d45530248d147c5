"""
Quote Bar Converter
-------------------
Turns raw per-tick bid/ask (and trade) price lines into sealed OHLC quote bars
at second, minute, hour and daily resolution, converting many symbols in
parallel with per-job failure isolation.
"""
