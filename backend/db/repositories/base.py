"""Base repository class with shared SQLAlchemy session helpers.

All repository classes inherit from BaseRepository to get access to
the Flask-SQLAlchemy scoped session and common helpers. Worker threads
must run repositories inside an application context.
"""

from contextlib import contextmanager
from datetime import UTC, datetime

from extensions import db


class BaseRepository:
    """Base class for all repository classes.

    Provides access to the Flask-SQLAlchemy session and helpers for
    commit, dict conversion, and timestamp generation.
    """

    def __init__(self):
        self._batch_mode = False

    @property
    def session(self):
        """Return the Flask-SQLAlchemy scoped session."""
        return db.session

    def _commit(self):
        """Commit the current session (no-op in batch mode)."""
        if not self._batch_mode:
            self.session.commit()

    @contextmanager
    def batch(self):
        """Run several writes in a single transaction.

        Usage:
            with repo.batch():
                repo.save_config_entry("a", "1")
                repo.save_config_entry("b", "2")
        """
        self._batch_mode = True
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._batch_mode = False

    def _to_dict(self, model_instance):
        """Convert a model instance to a {column: value} dict (None passes through)."""
        if model_instance is None:
            return None
        return {c.key: getattr(model_instance, c.key) for c in model_instance.__table__.columns}

    def _now(self) -> str:
        """Return current UTC time as ISO format string."""
        return datetime.now(UTC).isoformat()
