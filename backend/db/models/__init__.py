"""SQLAlchemy ORM models for the Linguarr database.

All models use Flask-SQLAlchemy's db.Model as the base class.
Import all models from here so db.create_all() sees every table.
"""

from db.models.core import (
    ConfigEntry,
    MediaType,
    TranslationRequest,
    TranslationStatistic,
    TranslationStatus,
)

__all__ = [
    "ConfigEntry",
    "TranslationRequest",
    "TranslationStatistic",
    # enums
    "TranslationStatus",
    "MediaType",
]
