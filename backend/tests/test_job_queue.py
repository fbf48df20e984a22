"""Tests for job_queue -- MemoryJobQueue dedupe and cooperative cancellation."""

import threading
import time

import pytest

from job_queue import JobStatus, create_job_queue
from job_queue.memory_queue import MemoryJobQueue


def _wait_finished(queue, job_id, timeout=5.0):
    """Block until the job has left the active statuses (done-callbacks included)."""
    deadline = time.monotonic() + timeout
    while queue.is_active(job_id):
        assert time.monotonic() < deadline, f"job {job_id} still active"
        time.sleep(0.01)
    return queue.get_job(job_id)


@pytest.fixture
def queue():
    q = MemoryJobQueue(max_workers=1)
    yield q
    q.shutdown(wait=True)


def _blocking_job(started, release):
    def job(cancellation_token=None):
        started.set()
        while not release.is_set():
            if cancellation_token.wait(0.01):
                return "cancelled"
        return "done"
    return job


def test_create_job_queue():
    q = create_job_queue(max_workers=3)
    try:
        assert isinstance(q, MemoryJobQueue)
    finally:
        q.shutdown()


def test_job_receives_token_and_result(queue):
    seen = []

    def job(value, cancellation_token=None):
        seen.append(cancellation_token)
        return value * 2

    queue.enqueue(job, 21, job_id="double")
    info = _wait_finished(queue, "double")
    assert info.status == JobStatus.COMPLETED
    assert info.result == 42
    assert info.func_name == "job"
    assert seen[0] is not None and not seen[0].is_cancelled


def test_failed_job_records_error(queue):
    def job(cancellation_token=None):
        raise RuntimeError("kaput")

    job_id = queue.enqueue(job)
    info = _wait_finished(queue, job_id)
    assert info.status == JobStatus.FAILED
    assert info.error == "kaput"


def test_duplicate_active_job_rejected(queue):
    started, release = threading.Event(), threading.Event()
    assert queue.enqueue(_blocking_job(started, release), job_id="translation-1") == "translation-1"
    assert queue.enqueue(_blocking_job(started, release), job_id="translation-1") is None
    assert queue.is_active("translation-1")

    release.set()
    _wait_finished(queue, "translation-1")
    # Finished jobs may be enqueued again
    assert queue.enqueue(lambda cancellation_token=None: None, job_id="translation-1") == "translation-1"


def test_cancel_running_job_signals_token(queue):
    started, release = threading.Event(), threading.Event()
    queue.enqueue(_blocking_job(started, release), job_id="running")
    assert started.wait(5)

    assert queue.cancel_job("running") == JobStatus.RUNNING
    info = _wait_finished(queue, "running")
    assert info.result == "cancelled"
    assert info.cancel_requested


def test_cancel_queued_job_never_runs(queue):
    started, release = threading.Event(), threading.Event()
    ran = []
    queue.enqueue(_blocking_job(started, release), job_id="first")
    assert started.wait(5)
    queue.enqueue(lambda cancellation_token=None: ran.append(True), job_id="second")

    assert queue.get_queue_length() == 1
    assert queue.cancel_job("second") == JobStatus.CANCELLED
    assert queue.get_job("second").status == JobStatus.CANCELLED

    release.set()
    _wait_finished(queue, "first")
    assert ran == []


def test_cancel_unknown_or_finished_job(queue):
    assert queue.cancel_job("missing") is None
    job_id = queue.enqueue(lambda cancellation_token=None: 1)
    _wait_finished(queue, job_id)
    assert queue.cancel_job(job_id) is None


def test_active_jobs(queue):
    started, release = threading.Event(), threading.Event()
    queue.enqueue(_blocking_job(started, release), job_id="a")
    assert started.wait(5)
    queue.enqueue(lambda cancellation_token=None: None, job_id="b")

    active = {info.id: info.status for info in queue.get_active_jobs()}
    assert active == {"a": JobStatus.RUNNING, "b": JobStatus.QUEUED}
    release.set()


def test_shutdown_cancels_running_jobs():
    q = MemoryJobQueue(max_workers=1)
    started, release = threading.Event(), threading.Event()
    q.enqueue(_blocking_job(started, release), job_id="long")
    assert started.wait(5)

    q.shutdown(wait=True)
    assert q.get_job("long").result == "cancelled"
