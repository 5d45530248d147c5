"""
Worker Pool
-----------
Fixed-capacity pool draining a list of jobs. Each job runs inside an
isolation boundary: whatever it raises is written to the error log and the
job is marked FAILED, while sibling jobs keep running.

No timeouts and no cancellation: a started job runs to completion or failure.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Callable, Iterable

from .error_log import ErrorLog
from .errors import JobFailure
from .jobs import ConversionJob, JobStatus

logger = logging.getLogger(__name__)

JobFn = Callable[[ConversionJob], dict]


class WorkerPool:
    def __init__(self, max_workers: int, error_log: ErrorLog):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.error_log = error_log
        self._lock = threading.Lock()
        self._in_flight = 0
        self.peak_in_flight = 0

    def _enter(self) -> None:
        with self._lock:
            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)

    def _exit(self) -> None:
        with self._lock:
            self._in_flight -= 1

    def record_failure(self, job: ConversionJob, exc: BaseException, reason: str) -> None:
        """
        Marks ``job`` FAILED and appends ``exc`` to the error log.

        A log that cannot be written is reported at ERROR and does not stop
        the batch.
        """
        job.fail(reason)
        try:
            self.error_log.record(exc, stage=job.stage.label, symbol=job.symbol)
        except OSError as log_err:
            logger.error(
                "%s [%s] could not write error log %s: %s",
                job.symbol,
                job.stage.value,
                self.error_log.path,
                log_err,
            )

    def _run_isolated(self, job: ConversionJob, fn: JobFn) -> ConversionJob:
        self._enter()
        job.status = JobStatus.RUNNING
        try:
            job.bars_written = fn(job) or {}
        except Exception as e:
            failure = JobFailure(job.symbol, job.stage.label, e)
            self.record_failure(job, failure, str(e) or type(e).__name__)
            logger.warning("%s [%s] failed: %s", job.symbol, job.stage.value, job.error)
        else:
            job.succeed()
            logger.info("%s [%s] done: %s", job.symbol, job.stage.value, job.bars_written)
        finally:
            self._exit()
        return job

    def run(self, jobs: Iterable[ConversionJob], fn: JobFn) -> list[ConversionJob]:
        """Run every job through ``fn``; returns the jobs in submission order."""
        jobs = list(jobs)
        if not jobs:
            return jobs
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self._run_isolated, job, fn) for job in jobs]
            for fut in concurrent.futures.as_completed(futures):
                fut.result()
        return jobs
