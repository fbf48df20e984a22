"""Translation statistics repository using SQLAlchemy ORM."""

import logging

from sqlalchemy import select

from db.models.core import TranslationStatistic
from db.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class StatisticsRepository(BaseRepository):
    """Repository for translation_statistics table operations."""

    def record_translation(self, request_id: int, line_count: int,
                           backend_name: str, model_name: str = "") -> dict:
        """Insert one statistics row for a completed translation."""
        stat = TranslationStatistic(
            request_id=request_id,
            line_count=line_count,
            backend_name=backend_name,
            model_name=model_name or "",
            created_at=self._now(),
        )
        self.session.add(stat)
        self._commit()
        return self._to_dict(stat)

    def get_statistics_for_request(self, request_id: int) -> list:
        stmt = (
            select(TranslationStatistic)
            .where(TranslationStatistic.request_id == request_id)
            .order_by(TranslationStatistic.id)
        )
        rows = self.session.execute(stmt).scalars().all()
        return [self._to_dict(r) for r in rows]
