"""Job queue for background translation work.

Package named 'job_queue' (not 'queue') to avoid shadowing Python's
stdlib queue module, which is used by concurrent.futures.

Jobs run in-process on a bounded ThreadPoolExecutor (MemoryJobQueue).
Durability across restarts comes from the translation_requests table:
pending requests are re-enqueued on startup, not from the queue itself.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Status of a queued job (not of the translation request it runs)."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (JobStatus.QUEUED, JobStatus.RUNNING)


@dataclass
class JobInfo:
    """Snapshot of one job's queue metadata."""

    id: str
    func_name: str
    status: JobStatus
    enqueued_at: str
    started_at: str | None = None
    completed_at: str | None = None
    cancel_requested: bool = False
    result: Any | None = None
    error: str | None = None


def create_job_queue(max_workers: int = 2):
    """Create the job queue used by the application.

    Args:
        max_workers: Number of translation requests that may run concurrently.
    """
    from job_queue.memory_queue import MemoryJobQueue

    logger.info("Memory job queue with %d workers", max_workers)
    return MemoryJobQueue(max_workers=max_workers)
