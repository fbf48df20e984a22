"""Statistics collaborator: one record per completed translation."""

import logging
from typing import Optional

from db.repositories.statistics import StatisticsRepository

logger = logging.getLogger(__name__)


class StatisticsService:

    def __init__(self, repository: Optional[StatisticsRepository] = None):
        self._repository = repository or StatisticsRepository()

    def record_translation(self, request_id: int, line_count: int,
                           backend_name: str, model_name: str = "") -> dict:
        logger.info("Recording statistics for request %s: %d lines via %s%s",
                    request_id, line_count, backend_name,
                    f" ({model_name})" if model_name else "")
        return self._repository.record_translation(request_id, line_count, backend_name, model_name)
