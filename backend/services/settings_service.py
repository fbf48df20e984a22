"""Job settings resolution on top of config_entries.

get_settings(keys) returns a snapshot for exactly the requested keys: stored
values win, keys without a stored value fall back to DEFAULT_SETTINGS, and
keys with neither are omitted (never None-filled).
"""

import logging
from typing import Iterable, Optional

from db.repositories.config import ConfigRepository
from events import emit_event
from job_config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class SettingsService:
    """Settings collaborator used by the translation job orchestrator."""

    def __init__(self, repository: Optional[ConfigRepository] = None,
                 defaults: Optional[dict] = None):
        self._repository = repository or ConfigRepository()
        self._defaults = DEFAULT_SETTINGS if defaults is None else defaults

    def get_settings(self, keys: Iterable[str]) -> dict[str, str]:
        keys = list(dict.fromkeys(keys))
        stored = self._repository.get_config_entries(keys)

        snapshot = {}
        for key in keys:
            if key in stored:
                snapshot[key] = stored[key]
            elif key in self._defaults:
                snapshot[key] = self._defaults[key]
        logger.debug("Resolved %d of %d setting keys", len(snapshot), len(keys))
        return snapshot

    def get_setting(self, key: str) -> Optional[str]:
        return self.get_settings([key]).get(key)

    def set_settings(self, values: dict) -> None:
        """Store several settings at once; a None value deletes the stored entry."""
        with self._repository.batch():
            for key, value in values.items():
                if value is None:
                    self._repository.delete_config_entry(key)
                else:
                    self._repository.save_config_entry(key, str(value))
        emit_event("config_updated", {"keys": sorted(values)})
        logger.info("Updated %d settings", len(values))
