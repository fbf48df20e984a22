"""Application factory for the Linguarr translation worker.

Uses the Flask Application Factory pattern: create_app() builds and
configures the application, initializes extensions, the event bridge and
the job queue, and re-enqueues translation requests left over from a
previous run.
"""

import os
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask

from extensions import socketio

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class StructuredJSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging (ELK, Loki, etc.)."""

    def format(self, record: logging.LogRecord) -> str:
        import json as _json

        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }

        return _json.dumps(entry, default=str)


class SocketIOLogHandler(logging.Handler):
    """Emits log entries to connected WebSocket clients."""

    def __init__(self, sio):
        super().__init__()
        self.sio = sio

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            self.sio.emit("log_entry", {"message": msg})
        except Exception:
            self.handleError(record)


def _setup_logging(settings) -> None:
    """Set up file handler and WebSocket handler on the root logger."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(log_level)
    # create_app() may run several times per process (tests)
    for handler in [h for h in root.handlers if isinstance(h, (RotatingFileHandler, SocketIOLogHandler))]:
        root.removeHandler(handler)
        handler.close()

    # Determine formatter
    if settings.log_format.lower() == "json":
        formatter: logging.Formatter = StructuredJSONFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT)

    # File handler
    log_file = settings.log_file
    try:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError as e:
        logging.getLogger(__name__).warning("Could not set up log file %s: %s", log_file, e)

    # WebSocket handler (emits log_entry events to connected clients)
    ws_handler = SocketIOLogHandler(socketio)
    ws_handler.setLevel(log_level)
    ws_handler.setFormatter(logging.Formatter(LOG_FORMAT))  # Always text for WebSocket
    root.addHandler(ws_handler)


def _log_backends(factory, logger) -> None:
    """Log registered backends and warn about missing required config."""
    backends = factory.get_all_backends()
    logger.info("Translation backends: %s", ", ".join(b["name"] for b in backends))
    for backend in backends:
        if backend["missing_fields"]:
            logger.warning(
                "Backend %s is missing required config: %s",
                backend["name"], ", ".join(backend["missing_fields"]),
            )


def create_app(testing=False):
    """Create and configure the Flask application.

    Args:
        testing: If True, do not resume pending requests on startup.

    Returns:
        Configured Flask application instance. The job queue is available
        as app.job_queue.
    """
    app = Flask(__name__)
    app.config["TESTING"] = testing

    # Load config
    from config import get_settings, reload_settings
    settings = get_settings()

    # Set up logging
    _setup_logging(settings)

    logger = logging.getLogger(__name__)

    # Initialize SocketIO with the app
    socketio.init_app(app, cors_allowed_origins="*", async_mode="threading")

    # Database: models, tables, SQLite pragmas
    from db import init_db
    init_db(app, settings)

    with app.app_context():
        # Process settings stored in config_entries take precedence over env
        from db.repositories.config import ConfigRepository
        _db_overrides = ConfigRepository().get_all_config_entries()
        if _db_overrides:
            settings = reload_settings(_db_overrides)

        # Event bus -> WebSocket bridge
        from events import init_event_system
        init_event_system(app)

    from job_queue import create_job_queue
    app.job_queue = create_job_queue(max_workers=max(1, settings.worker_count))

    from translation import get_translation_service_factory
    factory = get_translation_service_factory()
    with app.app_context():
        _log_backends(factory, logger)

    @socketio.on("connect")
    def handle_connect():
        logger.debug("WebSocket client connected")

    @socketio.on("disconnect")
    def handle_disconnect():
        logger.debug("WebSocket client disconnected")

    if not testing and settings.resume_on_startup:
        from translation_worker import resume_pending_requests
        resume_pending_requests(app, app.job_queue)

    return app


if __name__ == "__main__":
    from config import get_settings
    app = create_app()
    socketio.run(app, host="0.0.0.0", port=get_settings().port, allow_unsafe_werkzeug=True)
