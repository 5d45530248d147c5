"""
Batch Conversion Driver
-----------------------
Discovers per-symbol jobs and runs them in two stages on a bounded pool:

1. FINE: every symbol's tick archives, in date order -> second + minute bars.
2. COARSE: every symbol whose fine jobs all succeeded -> hour + daily bars.

Job failures never abort the batch; they only reach the error log and the
returned report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .config import ConverterConfig
from .convert import convert_bars, convert_ticks
from .error_log import ErrorLog
from .errors import DependencyError, FatalStartupError
from .jobs import ConversionJob, JobStatus, Stage, discover_coarse_jobs, discover_fine_jobs
from .pool import WorkerPool

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    fine: list[ConversionJob] = field(default_factory=list)
    coarse: list[ConversionJob] = field(default_factory=list)
    peak_in_flight: int = 0

    @property
    def jobs(self) -> list[ConversionJob]:
        return self.fine + self.coarse

    @property
    def failed(self) -> list[ConversionJob]:
        return [j for j in self.jobs if j.status is JobStatus.FAILED]

    @property
    def succeeded(self) -> list[ConversionJob]:
        return [j for j in self.jobs if j.status is JobStatus.SUCCEEDED]


class BatchConverter:
    def __init__(self, cfg: ConverterConfig, source_dir: Optional[str | Path] = None):
        self.cfg = cfg
        self.source_dir = Path(source_dir) if source_dir is not None else cfg.tick_directory
        self.destination = Path(cfg.destination_directory)
        self.price_scale = Decimal(cfg.price_scale)
        self.error_log = ErrorLog(cfg.error_log_path)
        self.pool = WorkerPool(cfg.max_workers, self.error_log)

    def check_startup(self) -> None:
        """Raises FatalStartupError before any job is created."""
        if not self.source_dir.is_dir():
            raise FatalStartupError(
                f"source directory does not exist: {self.source_dir}",
                {"source": str(self.source_dir)},
            )
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalStartupError(
                f"cannot create destination directory {self.destination}: {e}",
                {"destination": str(self.destination)},
            ) from e
        if not self.destination.is_dir():
            raise FatalStartupError(
                f"destination is not a directory: {self.destination}",
                {"destination": str(self.destination)},
            )
        try:
            self.error_log.check_writable()
        except OSError as e:
            raise FatalStartupError(
                f"cannot write error log {self.error_log.path}: {e}",
                {"error_log": str(self.error_log.path)},
            ) from e

    def _fine(self, job: ConversionJob) -> dict:
        return convert_ticks(job, self.price_scale)

    def _coarse(self, job: ConversionJob) -> dict:
        return convert_bars(job, self.price_scale)

    def run(self) -> BatchReport:
        self.check_startup()
        report = BatchReport()

        report.fine = discover_fine_jobs(self.source_dir, self.destination)
        logger.info(
            "Beginning to convert tick data into second and minute quote bars (%d symbols, %d workers).",
            len(report.fine),
            self.pool.max_workers,
        )
        self.pool.run(report.fine, self._fine)
        logger.info("Done converting second and minute resolution data.")

        coarse = discover_coarse_jobs(self.source_dir, self.destination)
        blocked = {j.symbol for j in report.fine if j.status is not JobStatus.SUCCEEDED}
        runnable = []
        for job in coarse:
            if job.symbol in blocked:
                self._block(job)
            else:
                runnable.append(job)
        report.coarse = coarse

        logger.info("Beginning to create hour and daily quote bars (%d symbols).", len(runnable))
        self.pool.run(runnable, self._coarse)
        logger.info("Done converting minute data to hour and daily resolution data.")

        report.peak_in_flight = self.pool.peak_in_flight
        logger.info(
            "Done converting tick data: %d succeeded, %d failed (see %s).",
            len(report.succeeded),
            len(report.failed),
            self.error_log.path,
        )
        return report

    def _block(self, job: ConversionJob) -> None:
        reason = DependencyError(
            f"skipped: {Stage.FINE.label} conversion did not succeed for {job.symbol}",
            {"symbol": job.symbol},
        )
        self.pool.record_failure(job, reason, reason.message)
        logger.warning("%s [%s] skipped: fine stage failed", job.symbol, job.stage.value)
