"""
Error Log
---------
Append-only plain-text log shared by every worker of a batch.

Each record is written with a single ``write`` under a lock, so records from
parallel workers never interleave:

    #############
    2024-01-02 03:04:05Z
    <failure message>
    <root cause>
    <stage label>
    <symbol>
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import describe, root_cause

SEPARATOR = "#############"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%SZ"


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str
    message: str
    cause: str
    stage: str
    symbol: str

    def lines(self) -> list[str]:
        return [SEPARATOR, self.timestamp, self.message, self.cause, self.stage, self.symbol]


def _one_line(text: str) -> str:
    return " | ".join(part.strip() for part in str(text).splitlines() if part.strip())


class ErrorLog:
    """Single-writer append log; safe to share across worker threads."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.count = 0

    def record(
        self,
        exc: BaseException,
        *,
        stage: str,
        symbol: str,
        now: Optional[datetime] = None,
    ) -> ErrorRecord:
        ts = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        rec = ErrorRecord(
            timestamp=ts.strftime(TIMESTAMP_FORMAT),
            message=_one_line(str(exc) or type(exc).__name__),
            cause=_one_line(describe(root_cause(exc))),
            stage=_one_line(stage),
            symbol=_one_line(symbol),
        )
        self.append(rec)
        return rec

    def check_writable(self) -> None:
        """Opens the log for appending once; raises OSError when that is impossible."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8"):
                pass

    def append(self, rec: ErrorRecord) -> None:
        payload = "\n".join(rec.lines()) + "\n"
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(payload)
            self.count += 1


def read_error_log(path: str | Path) -> list[ErrorRecord]:
    """Parse an error log back into records; a missing file means no errors."""
    p = Path(path)
    if not p.exists():
        return []

    records: list[ErrorRecord] = []
    block: list[str] = []
    for line in p.read_text(encoding="utf-8").splitlines():
        if line == SEPARATOR:
            if block:
                records.append(_to_record(block))
            block = []
        else:
            block.append(line)
    if block:
        records.append(_to_record(block))
    return records


def _to_record(block: list[str]) -> ErrorRecord:
    if len(block) != 5:
        raise ValueError(f"corrupt error log record ({len(block)} lines): {block!r}")
    return ErrorRecord(*block)
