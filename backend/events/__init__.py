"""Event system package -- blinker signal bus with SocketIO bridge.

Provides:
    - init_event_system(app): Connects a SocketIO bridge to every event in
      the catalog so WebSocket clients see progress and status changes.
    - emit_event(event_name, data): Primary API for emitting events from
      any module. Looks up the signal and sends it on the blinker bus.
"""

import logging

from events.catalog import CATALOG_VERSION, EVENT_CATALOG

logger = logging.getLogger(__name__)

_bridged = False


def init_event_system(app):
    """Register a SocketIO bridge for every event in the catalog.

    When any blinker signal fires, the bridge emits the same event_name
    and data dict to all connected WebSocket clients. Calling this more
    than once (several apps in one test session) connects the bridge once.

    Args:
        app: The Flask application instance.
    """
    global _bridged
    if _bridged:
        return

    from extensions import socketio

    def _make_bridge(event_name: str):
        """Create a bridge subscriber that captures event_name via closure."""
        def _bridge(sender, data=None, **kwargs):
            payload = data if data is not None else {}
            logger.debug("Event bridge: %s -> WebSocket", event_name)
            try:
                socketio.emit(event_name, payload)
            except Exception as exc:
                logger.warning("Failed to bridge event %s to WebSocket: %s",
                               event_name, exc)
        return _bridge

    for name, entry in EVENT_CATALOG.items():
        entry["signal"].connect(_make_bridge(name), weak=False)
    _bridged = True

    logger.info("Event system initialized: %d events, catalog v%d",
                len(EVENT_CATALOG), CATALOG_VERSION)


def emit_event(event_name: str, data: dict = None):
    """Emit an event on the blinker bus.

    Unknown event names are logged and ignored.

    Args:
        event_name: Key in EVENT_CATALOG (e.g. 'translation_progress').
        data: Payload dict. Must not contain secrets or absolute paths.
    """
    entry = EVENT_CATALOG.get(event_name)
    if entry is None:
        logger.warning("emit_event called with unknown event: %s", event_name)
        return

    # Sender is the current Flask app when one is active
    sender = None
    try:
        from flask import current_app
        sender = current_app._get_current_object()
    except RuntimeError:
        pass

    entry["signal"].send(sender, data=data or {})
