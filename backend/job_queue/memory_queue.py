"""In-memory job queue using ThreadPoolExecutor.

Each job receives its own CancellationToken as the cancellation_token
keyword argument. Only one active (queued or running) job may exist per
job id, which gives at-most-one execution per translation request inside
this process.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from cancellation import CancellationToken
from job_queue import ACTIVE_STATUSES, JobInfo, JobStatus

logger = logging.getLogger(__name__)

# Auto-cleanup completed/failed jobs older than this (seconds)
_JOB_RETENTION_SECONDS = 24 * 60 * 60  # 24 hours

# Run cleanup every N enqueue calls
_CLEANUP_INTERVAL = 50


class MemoryJobQueue:
    """Bounded thread pool with per-job metadata and cooperative cancellation.

    Completed/failed job metadata is retained for 24 hours for status
    queries, then automatically cleaned up to prevent memory leaks.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="translation-worker"
        )
        self._max_workers = max_workers
        self._jobs: dict = {}  # job_id -> job metadata dict
        self._lock = threading.RLock()  # future.cancel() runs done-callbacks inline
        self._enqueue_count = 0

    def enqueue(self, func, *args, job_id: str = None, **kwargs) -> str | None:
        """Submit func(*args, cancellation_token=..., **kwargs) to the pool.

        Args:
            func: The callable to execute. Must accept cancellation_token.
            job_id: Optional custom job ID. Auto-generated (uuid[:8]) if not provided.

        Returns:
            The job ID, or None if a job with this ID is still queued or running.
        """
        if job_id is None:
            job_id = uuid.uuid4().hex[:8]

        token = CancellationToken()
        func_name = getattr(func, "__name__", str(func))

        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is not None and existing["status"] in ACTIVE_STATUSES:
                logger.info("Job %s is already %s, not enqueued again",
                            job_id, existing["status"].value)
                return None

            self._jobs[job_id] = {
                "status": JobStatus.QUEUED,
                "func_name": func_name,
                "enqueued_at": datetime.now(UTC).isoformat(),
                "started_at": None,
                "completed_at": None,
                "result": None,
                "error": None,
                "future": None,
                "token": token,
            }

            future = self._executor.submit(
                self._run_job, job_id, func, *args, cancellation_token=token, **kwargs
            )
            self._jobs[job_id]["future"] = future

        future.add_done_callback(lambda f: self._on_complete(job_id, f))
        logger.debug("Enqueued job %s: %s", job_id, func_name)

        # Periodic cleanup
        self._enqueue_count += 1
        if self._enqueue_count % _CLEANUP_INTERVAL == 0:
            self._cleanup_old_jobs()

        return job_id

    def _run_job(self, job_id: str, func, *args, **kwargs) -> Any:
        """Execute the job function, updating status to RUNNING."""
        with self._lock:
            if job_id in self._jobs:
                self._jobs[job_id]["status"] = JobStatus.RUNNING
                self._jobs[job_id]["started_at"] = datetime.now(UTC).isoformat()

        return func(*args, **kwargs)

    def _on_complete(self, job_id: str, future: Future) -> None:
        """Callback when a job future completes (success, failure or cancel)."""
        with self._lock:
            meta = self._jobs.get(job_id)
            if meta is None or meta["future"] is not future:
                return

            meta["completed_at"] = datetime.now(UTC).isoformat()
            if future.cancelled():
                meta["status"] = JobStatus.CANCELLED
                return

            exc = future.exception()
            if exc is not None:
                meta["status"] = JobStatus.FAILED
                meta["error"] = str(exc)
                logger.error("Job %s raised: %s", job_id, exc)
            else:
                meta["status"] = JobStatus.COMPLETED
                meta["result"] = future.result()

    def get_job(self, job_id: str) -> JobInfo | None:
        """Get job status from the in-memory tracker."""
        with self._lock:
            meta = self._jobs.get(job_id)
            if meta is None:
                return None
            return self._to_info(job_id, meta)

    def is_active(self, job_id: str) -> bool:
        with self._lock:
            meta = self._jobs.get(job_id)
            return meta is not None and meta["status"] in ACTIVE_STATUSES

    def cancel_job(self, job_id: str) -> JobStatus | None:
        """Cancel a job.

        A queued job is removed from the pool before it starts. A running job
        has its cancellation token signalled and stops at its next checkpoint.

        Returns:
            CANCELLED if the job will never start, RUNNING if a running job
            was signalled, None if there was nothing to cancel.
        """
        with self._lock:
            meta = self._jobs.get(job_id)
            if meta is None or meta["status"] not in ACTIVE_STATUSES:
                return None

            meta["token"].cancel()
            future = meta["future"]
            if future is not None and future.cancel():
                meta["status"] = JobStatus.CANCELLED
                meta["completed_at"] = datetime.now(UTC).isoformat()
                logger.info("Cancelled queued job %s", job_id)
                return JobStatus.CANCELLED

        logger.info("Signalled cancellation for running job %s", job_id)
        return JobStatus.RUNNING

    def get_queue_length(self) -> int:
        """Get number of queued (not yet started) jobs."""
        with self._lock:
            return sum(1 for meta in self._jobs.values() if meta["status"] == JobStatus.QUEUED)

    def get_active_jobs(self) -> list[JobInfo]:
        """Get queued and running jobs."""
        with self._lock:
            return [
                self._to_info(job_id, meta)
                for job_id, meta in self._jobs.items()
                if meta["status"] in ACTIVE_STATUSES
            ]

    def shutdown(self, wait: bool = True) -> None:
        """Signal every active job and stop accepting work."""
        with self._lock:
            for meta in self._jobs.values():
                if meta["status"] in ACTIVE_STATUSES:
                    meta["token"].cancel()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    @staticmethod
    def _to_info(job_id: str, meta: dict) -> JobInfo:
        return JobInfo(
            id=job_id,
            func_name=meta["func_name"],
            status=meta["status"],
            enqueued_at=meta["enqueued_at"],
            started_at=meta["started_at"],
            completed_at=meta["completed_at"],
            cancel_requested=meta["token"].is_cancelled,
            result=meta["result"],
            error=meta["error"],
        )

    def _cleanup_old_jobs(self) -> None:
        """Remove finished job entries older than _JOB_RETENTION_SECONDS."""
        cutoff = time.time() - _JOB_RETENTION_SECONDS
        with self._lock:
            old_ids = []
            for jid, meta in self._jobs.items():
                if meta["status"] in ACTIVE_STATUSES:
                    continue
                completed_at = meta.get("completed_at")
                try:
                    if not completed_at or datetime.fromisoformat(completed_at).timestamp() < cutoff:
                        old_ids.append(jid)
                except (ValueError, TypeError):
                    # If timestamp is unparseable, clean it up
                    old_ids.append(jid)
            for jid in old_ids:
                del self._jobs[jid]

        if old_ids:
            logger.debug("Cleaned up %d old job entries from memory queue", len(old_ids))
