"""Background execution of translation requests.

Connects the job queue to the orchestrator: each queued job claims its
request (pending -> in_progress lease), runs TranslationJob.execute inside a
Flask app context, and releases the scoped DB session afterwards.
"""

import logging
from typing import Optional

from cancellation import CancellationToken
from db.models.core import TranslationStatus
from db.repositories.translation_requests import TranslationRequestRepository
from error_handler import TranslationCancelledError
from extensions import db
from job_queue import JobStatus
from services.progress import ProgressService
from services.settings_service import SettingsService
from services.statistics import StatisticsService
from translation import get_translation_service_factory
from translation_job import TranslationJob

logger = logging.getLogger(__name__)


def job_id_for(request_id: int) -> str:
    return f"translation-{request_id}"


def build_translation_job() -> TranslationJob:
    """Wire the orchestrator to the database-backed collaborators."""
    return TranslationJob(
        settings_service=SettingsService(),
        request_service=TranslationRequestRepository(),
        progress_service=ProgressService(),
        statistics_service=StatisticsService(),
        backend_factory=get_translation_service_factory(),
    )


def run_translation_request(app, request_id: int,
                            cancellation_token: Optional[CancellationToken] = None) -> Optional[dict]:
    """Claim and execute one request. Runs on a worker thread.

    Returns:
        The request in its final state, or None if it does not exist.
    """
    with app.app_context():
        try:
            repo = TranslationRequestRepository()
            request = repo.claim_request(request_id)
            if request is None:
                existing = repo.get_translation_request(request_id)
                if existing is None:
                    logger.warning("Translation request %s no longer exists", request_id)
                else:
                    logger.info("Translation request %s is %s, not claimed",
                                request_id, existing["status"])
                return existing

            return build_translation_job().execute(request, cancellation_token)
        finally:
            db.session.remove()


def enqueue_translation_request(app, queue, request_id: int) -> Optional[str]:
    """Queue a request for background execution.

    Returns:
        The job id, or None if the request already has an active job.
    """
    return queue.enqueue(run_translation_request, app, request_id, job_id=job_id_for(request_id))


def submit_translation_request(app, queue, subtitle_path: str, source_language: str,
                               target_language: str, title: str = "",
                               media_type: str = "movie") -> dict:
    """Create a pending request and queue it."""
    with app.app_context():
        request = TranslationRequestRepository().create_translation_request(
            subtitle_path, source_language, target_language, title=title, media_type=media_type,
        )
    enqueue_translation_request(app, queue, request["id"])
    return request


def cancel_translation_request(app, queue, request_id: int) -> bool:
    """Cancel a queued or running request.

    A running request stops at its next checkpoint and fails itself. A
    request cancelled before its job started is failed here, since no
    execution will ever write its terminal status.

    Returns:
        True if there was an active job to cancel.
    """
    outcome = queue.cancel_job(job_id_for(request_id))
    if outcome is None:
        return False

    if outcome == JobStatus.CANCELLED:
        with app.app_context():
            repo = TranslationRequestRepository()
            request = repo.get_translation_request(request_id)
            if request and request["status"] == TranslationStatus.PENDING.value:
                updated = repo.update_translation_request(
                    request, TranslationStatus.FAILED.value,
                    message=str(TranslationCancelledError()),
                )
                ProgressService().report_status(updated)
    return True


def resume_pending_requests(app, queue) -> int:
    """Re-enqueue work left over from a previous process.

    Requests interrupted mid-flight are reset to pending first, so every
    non-terminal request gets exactly one new job.

    Returns:
        Number of requests enqueued.
    """
    with app.app_context():
        repo = TranslationRequestRepository()
        repo.reset_interrupted_requests()
        request_ids = repo.get_pending_request_ids()

    enqueued = sum(
        1 for request_id in request_ids
        if enqueue_translation_request(app, queue, request_id) is not None
    )
    if enqueued:
        logger.info("Resumed %d pending translation requests", enqueued)
    return enqueued
