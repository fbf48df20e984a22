"""Repository pattern for Linguarr database operations using SQLAlchemy ORM.

Each repository class wraps one table family and returns plain dicts.
"""

from db.repositories.base import BaseRepository
from db.repositories.config import ConfigRepository
from db.repositories.statistics import StatisticsRepository
from db.repositories.translation_requests import TranslationRequestRepository

__all__ = [
    "BaseRepository",
    "ConfigRepository",
    "TranslationRequestRepository",
    "StatisticsRepository",
]
