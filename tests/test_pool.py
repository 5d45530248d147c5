"""
Tests for quotebar_converter.pool
---------------------------------
Coverage:
- Concurrency ceiling is never exceeded.
- A failing job is recorded and does not stop its siblings.
- An error log that cannot be written is reported, not raised.
"""

import threading
import time
from pathlib import Path

import pytest

from quotebar_converter.error_log import ErrorLog, read_error_log
from quotebar_converter.jobs import ConversionJob, JobStatus, Stage
from quotebar_converter.pool import WorkerPool


def _jobs(tmp_path: Path, symbols, stage=Stage.FINE):
    return [ConversionJob(s, tmp_path / s, tmp_path / "out", stage) for s in symbols]


def test_concurrency_ceiling(tmp_path):
    pool = WorkerPool(3, ErrorLog(tmp_path / "error.log"))
    lock = threading.Lock()
    seen = {"now": 0, "max": 0}

    def fn(job):
        with lock:
            seen["now"] += 1
            seen["max"] = max(seen["max"], seen["now"])
        time.sleep(0.02)
        with lock:
            seen["now"] -= 1
        return {"minute": 1}

    jobs = pool.run(_jobs(tmp_path, [f"s{i}" for i in range(12)]), fn)

    assert all(j.status is JobStatus.SUCCEEDED for j in jobs)
    assert 1 <= seen["max"] <= 3
    assert 1 <= pool.peak_in_flight <= 3
    assert jobs[0].bars_written == {"minute": 1}


def test_failing_job_is_isolated(tmp_path):
    log_path = tmp_path / "error.log"
    pool = WorkerPool(2, ErrorLog(log_path))
    done = []

    def fn(job):
        if job.symbol == "bad":
            raise ValueError("corrupt tick archive")
        time.sleep(0.01)
        done.append(job.symbol)
        return {}

    jobs = pool.run(_jobs(tmp_path, ["a", "bad", "b", "c"]), fn)

    assert sorted(done) == ["a", "b", "c"]
    status = {j.symbol: j.status for j in jobs}
    assert status["bad"] is JobStatus.FAILED
    assert [s for s, st in status.items() if st is JobStatus.SUCCEEDED] == ["a", "b", "c"]
    assert jobs[1].error == "corrupt tick archive"

    (rec,) = read_error_log(log_path)
    assert rec.symbol == "bad"
    assert rec.stage == "min/sec resolution"
    assert rec.message == "min/sec resolution conversion failed for bad: corrupt tick archive"
    assert rec.cause == "ValueError: corrupt tick archive"


def test_failure_is_logged_as_warning(tmp_path, caplog):
    pool = WorkerPool(1, ErrorLog(tmp_path / "error.log"))

    def fn(job):
        raise OSError("disk gone")

    with caplog.at_level("WARNING"):
        pool.run(_jobs(tmp_path, ["eurusd"], Stage.COARSE), fn)

    assert "eurusd [coarse] failed: disk gone" in caplog.text


def test_unwritable_error_log_does_not_stop_siblings(tmp_path, caplog):
    # the log path is a directory, so every append fails
    pool = WorkerPool(2, ErrorLog(tmp_path))

    def fn(job):
        if job.symbol == "bad":
            raise ValueError("corrupt tick archive")
        return {"minute": 1}

    with caplog.at_level("ERROR"):
        jobs = pool.run(_jobs(tmp_path, ["a", "bad", "b"]), fn)

    status = {j.symbol: j.status for j in jobs}
    assert status == {"a": JobStatus.SUCCEEDED, "bad": JobStatus.FAILED, "b": JobStatus.SUCCEEDED}
    assert jobs[1].error == "corrupt tick archive"
    assert "bad [fine] could not write error log" in caplog.text

def test_invalid_ceiling(tmp_path):
    with pytest.raises(ValueError, match="max_workers"):
        WorkerPool(0, ErrorLog(tmp_path / "error.log"))
