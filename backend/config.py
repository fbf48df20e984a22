"""Centralized process configuration using Pydantic Settings.

All settings can be overridden via environment variables with the LINGUARR_ prefix,
or via a .env file. Example: LINGUARR_WORKER_COUNT=4

Per-job translation settings (backend selection, context prompt, validation
thresholds, ...) are NOT stored here -- they live in the config_entries table
and are resolved per execution through services.settings_service.
"""

import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Linguarr process settings."""

    # General
    port: int = 9876
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"
    log_file: str = "/config/logs/linguarr.log"

    # Database
    db_path: str = "/config/linguarr.db"
    database_url: str = ""  # Empty = sqlite at db_path

    # Workers
    worker_count: int = 2
    resume_on_startup: bool = True

    # Language list for LLM backends (empty = bundled translation/languages.json)
    languages_file: str = ""

    model_config = {
        "env_prefix": "LINGUARR_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def get_database_url(self) -> str:
        """Return the SQLAlchemy URL, defaulting to the sqlite file at db_path."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.db_path}"

    def get_languages_file(self) -> str:
        """Return the language list path used by file-backed backends."""
        if self.languages_file:
            return self.languages_file
        return os.path.join(os.path.dirname(__file__), "translation", "languages.json")


# Singleton settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(overrides: dict = None) -> Settings:
    """Force reload settings from environment/file, with optional overrides.

    Args:
        overrides: Dict of key-value pairs to apply on top of the
                   env/file settings. String values are converted to the
                   field's type; unknown keys and invalid values are skipped.
    """
    global _settings
    base = Settings()

    if overrides:
        base_data = base.model_dump()
        update = {}
        for key, value in overrides.items():
            if key not in base_data:
                continue
            expected_type = type(base_data[key])
            try:
                if expected_type is bool:
                    update[key] = value.lower() in ("true", "1", "yes") if isinstance(value, str) else bool(value)
                elif expected_type is int:
                    update[key] = int(value)
                elif expected_type is float:
                    update[key] = float(value)
                else:
                    update[key] = str(value)
            except (ValueError, TypeError):
                continue

        _settings = base.model_copy(update=update) if update else base
    else:
        _settings = base

    return _settings
