"""Event catalog -- discoverable registry of all Linguarr internal events.

Defines blinker signals in a Namespace and an EVENT_CATALOG dict mapping
event names to metadata (label, description, payload keys).

Payload keys intentionally omit secrets and absolute filesystem paths.
"""

from blinker import Namespace

# All Linguarr signals live in this namespace
linguarr_signals = Namespace()

# Catalog version for future payload schema evolution
CATALOG_VERSION = 1

# ---- Signal definitions --------------------------------------------------------

translation_progress = linguarr_signals.signal("translation_progress")
translation_request_updated = linguarr_signals.signal("translation_request_updated")
translation_completed = linguarr_signals.signal("translation_completed")
translation_failed = linguarr_signals.signal("translation_failed")
config_updated = linguarr_signals.signal("config_updated")

# ---- Catalog dict (machine-readable metadata) ----------------------------------

EVENT_CATALOG: dict[str, dict] = {
    "translation_progress": {
        "signal": translation_progress,
        "label": "Translation Progress",
        "description": "A line or batch of a running translation was processed.",
        "payload_keys": [
            "request_id",
            "processed",
            "total",
            "percent",
        ],
    },
    "translation_request_updated": {
        "signal": translation_request_updated,
        "label": "Translation Request Updated",
        "description": "A translation request changed status.",
        "payload_keys": [
            "request_id",
            "status",
            "title",
            "source_language",
            "target_language",
        ],
    },
    "translation_completed": {
        "signal": translation_completed,
        "label": "Translation Completed",
        "description": "A translation request finished and its subtitle was written.",
        "payload_keys": [
            "request_id",
            "title",
            "source_language",
            "target_language",
        ],
    },
    "translation_failed": {
        "signal": translation_failed,
        "label": "Translation Failed",
        "description": "A translation request failed or was cancelled.",
        "payload_keys": [
            "request_id",
            "title",
            "source_language",
            "target_language",
            "error",
        ],
    },
    "config_updated": {
        "signal": config_updated,
        "label": "Config Updated",
        "description": "Job settings were changed.",
        "payload_keys": [
            "keys",
        ],
    },
}
