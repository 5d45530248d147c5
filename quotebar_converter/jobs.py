"""
Conversion Jobs
---------------
Units of work for the batch driver and their discovery on disk.

- FINE jobs: one per symbol directory holding tick archives, producing second
  and minute bars. A symbol's archives are converted in date order by one
  worker, so no two workers ever write the same day file.
- COARSE jobs: one per symbol directory, producing hour and daily bars
  from that symbol's sealed minute bars.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .bars import Resolution
from .data_io import symbol_for, tick_archives


class Stage(Enum):
    FINE = "fine"
    COARSE = "coarse"

    @property
    def label(self) -> str:
        """Stage label written to the error log."""
        return "min/sec resolution" if self is Stage.FINE else "daily/hour resolution"

    @property
    def resolutions(self) -> tuple[Resolution, ...]:
        if self is Stage.FINE:
            return (Resolution.SECOND, Resolution.MINUTE)
        return (Resolution.HOUR, Resolution.DAILY)


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ConversionJob:
    symbol: str
    source: Path
    destination: Path
    stage: Stage
    resolutions: tuple[Resolution, ...] = ()
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    bars_written: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.resolutions:
            self.resolutions = self.stage.resolutions

    def succeed(self) -> None:
        self.status = JobStatus.SUCCEEDED
        self.error = None

    def fail(self, error: str) -> None:
        self.status = JobStatus.FAILED
        self.error = error


def discover_fine_jobs(source_dir: str | Path, destination: str | Path) -> list[ConversionJob]:
    """One job per top-level symbol directory that holds at least one tick archive."""
    root = Path(source_dir)
    jobs = []
    for d in sorted(p for p in root.iterdir() if p.is_dir()):
        archives = tick_archives(d)
        if archives:
            jobs.append(ConversionJob(symbol_for(archives[0]), d, Path(destination), Stage.FINE))
    return jobs


def discover_coarse_jobs(source_dir: str | Path, destination: str | Path) -> list[ConversionJob]:
    """One job per top-level symbol directory; reads that symbol's minute bars."""
    root = Path(source_dir)
    dest = Path(destination)
    jobs = []
    for d in sorted(p for p in root.iterdir() if p.is_dir()):
        symbol = d.name.lower()
        jobs.append(
            ConversionJob(symbol, dest / symbol / Resolution.MINUTE.value, dest, Stage.COARSE)
        )
    return jobs
