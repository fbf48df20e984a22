"""Translation request repository using SQLAlchemy ORM.

Requests are handed around as plain dicts (see _to_dict); the job
orchestrator never touches ORM instances directly.
"""

import logging
from typing import Optional

from sqlalchemy import select, update

from db.models.core import TranslationRequest, TranslationStatus
from db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class TranslationRequestRepository(BaseRepository):
    """Repository for translation_requests table operations."""

    def create_translation_request(self, subtitle_to_translate: str, source_language: str,
                                   target_language: str, title: str = "",
                                   media_type: str = "movie") -> dict:
        """Create a new pending translation request."""
        now = self._now()
        request = TranslationRequest(
            title=title,
            media_type=media_type,
            subtitle_to_translate=subtitle_to_translate,
            source_language=source_language,
            target_language=target_language,
            status=TranslationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(request)
        self._commit()
        logger.info("Created translation request %d for %s (%s -> %s)",
                    request.id, subtitle_to_translate, source_language, target_language)
        return self._to_dict(request)

    def get_translation_request(self, request_id: int) -> Optional[dict]:
        """Get a translation request by ID."""
        return self._to_dict(self.session.get(TranslationRequest, request_id))

    def get_translation_requests(self, status: str = None, limit: int = 100) -> list:
        """Get requests ordered by creation time, optionally filtered by status."""
        stmt = select(TranslationRequest).order_by(TranslationRequest.created_at).limit(limit)
        if status:
            stmt = stmt.where(TranslationRequest.status == status)
        rows = self.session.execute(stmt).scalars().all()
        return [self._to_dict(r) for r in rows]

    def update_translation_request(self, request: dict, status: str,
                                   message: str = None,
                                   translated_subtitle: str = None) -> Optional[dict]:
        """Move a request to a new status and return the updated request.

        Terminal statuses stamp completed_at. error_message holds the failure
        message for failed requests and is cleared otherwise.

        Returns:
            The updated request dict, or None if the row no longer exists.
        """
        row = self.session.get(TranslationRequest, request["id"])
        if row is None:
            logger.warning("Translation request %s not found, status %s not written",
                           request["id"], status)
            return None

        status = TranslationStatus(status)
        now = self._now()
        row.status = status.value
        row.updated_at = now
        row.error_message = message if status == TranslationStatus.FAILED else None
        if translated_subtitle is not None:
            row.translated_subtitle = translated_subtitle
        row.completed_at = now if status.is_terminal else None
        self._commit()
        return self._to_dict(row)

    def claim_request(self, request_id: int) -> Optional[dict]:
        """Atomically move a pending request to in_progress.

        This is the single-owner lease: only one caller can win the
        pending -> in_progress transition for a given request.

        Returns:
            The claimed request dict, or None if it was not pending.
        """
        result = self.session.execute(
            update(TranslationRequest)
            .where(TranslationRequest.id == request_id)
            .where(TranslationRequest.status == TranslationStatus.PENDING.value)
            .values(status=TranslationStatus.IN_PROGRESS.value, updated_at=self._now())
        )
        self._commit()
        if result.rowcount != 1:
            logger.debug("Request %s not claimable (not pending)", request_id)
            return None
        self.session.expire_all()
        return self.get_translation_request(request_id)

    def reset_interrupted_requests(self) -> int:
        """Move requests left in_progress by a previous process back to pending.

        Returns:
            Number of requests reset.
        """
        result = self.session.execute(
            update(TranslationRequest)
            .where(TranslationRequest.status == TranslationStatus.IN_PROGRESS.value)
            .values(status=TranslationStatus.PENDING.value, updated_at=self._now())
        )
        self._commit()
        if result.rowcount:
            logger.info("Reset %d interrupted translation requests to pending", result.rowcount)
        return result.rowcount

    def get_pending_request_ids(self) -> list[int]:
        """IDs of pending requests, oldest first."""
        stmt = (
            select(TranslationRequest.id)
            .where(TranslationRequest.status == TranslationStatus.PENDING.value)
            .order_by(TranslationRequest.created_at, TranslationRequest.id)
        )
        return list(self.session.execute(stmt).scalars().all())
