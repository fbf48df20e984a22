"""Database package - models, repositories and schema setup.

The schema is owned by the ORM models in db.models; init_db() creates any
missing tables and applies the SQLite pragmas the worker threads rely on.
"""

import logging

from sqlalchemy import text

logger = logging.getLogger(__name__)


def init_db(app, settings) -> None:
    """Bind Flask-SQLAlchemy to app and create all tables.

    Args:
        app: Flask application
        settings: Process Settings (database_url / db_path)
    """
    from extensions import db as sa_db

    database_url = settings.get_database_url()
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        # SQLite: worker threads share the engine
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "connect_args": {"check_same_thread": False},
        }
    else:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {"pool_pre_ping": True}

    sa_db.init_app(app)

    with app.app_context():
        # Import all models so they register with metadata
        import db.models  # noqa: F401
        sa_db.create_all()
        if is_sqlite and ":memory:" not in database_url:
            with sa_db.engine.connect() as conn:
                conn.execute(text("PRAGMA journal_mode=WAL"))
                conn.commit()

    logger.info("Database initialized (%s)", "sqlite" if is_sqlite else database_url.split(":", 1)[0])
