"""Progress and status notifications for running translations.

Fire-and-forget: a failing subscriber (e.g. a dropped WebSocket) is logged
and never interrupts the translation that reported it.
"""

import logging

from events import emit_event

logger = logging.getLogger(__name__)


class ProgressService:
    """Progress collaborator backed by the blinker event bus."""

    def report_progress(self, request_id: int, processed: int, total: int) -> None:
        percent = round(processed * 100 / total) if total else 100
        self._emit("translation_progress", {
            "request_id": request_id,
            "processed": processed,
            "total": total,
            "percent": percent,
        })

    def report_status(self, request: dict) -> None:
        """Announce a status change; terminal statuses also fire completed/failed."""
        payload = {
            "request_id": request["id"],
            "status": request["status"],
            "title": request.get("title", ""),
            "source_language": request.get("source_language", ""),
            "target_language": request.get("target_language", ""),
        }
        self._emit("translation_request_updated", payload)

        if request["status"] == "completed":
            payload = {k: v for k, v in payload.items() if k != "status"}
            self._emit("translation_completed", payload)
        elif request["status"] == "failed":
            payload = {k: v for k, v in payload.items() if k != "status"}
            payload["error"] = request.get("error_message") or ""
            self._emit("translation_failed", payload)

    def _emit(self, event_name: str, data: dict) -> None:
        try:
            emit_event(event_name, data)
        except Exception as e:
            logger.warning("Failed to emit %s: %s", event_name, e)
