"""Core ORM models: config entries, translation requests, translation statistics.

Timestamp columns use Text (ISO 8601 strings) like the rest of the schema.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from extensions import db


class TranslationStatus(str, Enum):
    """Lifecycle of a translation request."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TranslationStatus.COMPLETED, TranslationStatus.FAILED)


class MediaType(str, Enum):
    MOVIE = "movie"
    EPISODE = "episode"


class ConfigEntry(db.Model):
    """Runtime configuration stored in database (job settings, backend config)."""

    __tablename__ = "config_entries"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)


class TranslationRequest(db.Model):
    """A subtitle file queued for translation into one target language."""

    __tablename__ = "translation_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_type: Mapped[str] = mapped_column(String(20), nullable=False, default=MediaType.MOVIE.value)
    subtitle_to_translate: Mapped[str] = mapped_column(Text, nullable=False)
    source_language: Mapped[str] = mapped_column(String(10), nullable=False)
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TranslationStatus.PENDING.value
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    translated_subtitle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)
    completed_at: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_translation_requests_status", "status"),
        Index("idx_translation_requests_created", "created_at"),
    )


class TranslationStatistic(db.Model):
    """One row per successfully completed translation."""

    __tablename__ = "translation_statistics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(Integer, nullable=False)
    line_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    backend_name: Mapped[str] = mapped_column(Text, nullable=False)
    model_name: Mapped[Optional[str]] = mapped_column(Text, default="")
    created_at: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_translation_statistics_request", "request_id"),
    )
