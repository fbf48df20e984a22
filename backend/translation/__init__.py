"""Translation package -- backend registry and factory.

Provides the TranslationServiceFactory singleton which registers backend
classes by name and creates configured instances on demand. The job
orchestrator asks for a backend by the service_type setting value.
"""

import logging
import threading
from typing import Optional

from error_handler import UnknownBackendError
from translation.base import TranslationBackend

logger = logging.getLogger(__name__)


class TranslationServiceFactory:
    """Creates translation backends by name.

    Backend classes are registered at import time. Each call to
    create_translation_service builds a fresh instance with config loaded from
    the config_entries DB table using backend.<name>.<key> namespacing, so
    settings changed between jobs always take effect.
    """

    def __init__(self, config_loader=None):
        self._backend_classes: dict[str, type[TranslationBackend]] = {}
        self._config_loader = config_loader or _load_backend_config

    def register_backend(self, cls: type[TranslationBackend]) -> None:
        """Register a backend class by its name attribute."""
        self._backend_classes[cls.name] = cls
        logger.debug("Registered translation backend: %s", cls.name)

    def custom_parameter_keys(self) -> list[str]:
        """Setting keys holding custom request parameters, one per backend."""
        from job_config import SettingKeys
        return [SettingKeys.custom_parameters(name) for name in self._backend_classes]

    def create_translation_service(self, name: str) -> TranslationBackend:
        """Instantiate the backend registered under name.

        Raises:
            UnknownBackendError: If no backend is registered under name
        """
        cls = self._backend_classes.get((name or "").strip().lower())
        if cls is None:
            logger.warning("Unknown translation backend: %s", name)
            raise UnknownBackendError(name)

        instance = cls(**self._config_loader(cls.name))
        logger.info("Created translation backend instance: %s", cls.name)
        return instance

    def get_all_backends(self) -> list[dict]:
        """Return info about all registered backends.

        Returns:
            List of dicts with name, display_name, config_fields,
            configured status, missing_fields (required keys with neither a
            stored value nor a default), and supports_* flags.
        """
        result = []
        for name, cls in self._backend_classes.items():
            config = self._config_loader(name)
            missing = [
                field["key"] for field in cls.config_fields
                if field.get("required") and not config.get(field["key"]) and not field.get("default")
            ]
            result.append({
                "name": cls.name,
                "display_name": cls.display_name,
                "config_fields": cls.config_fields,
                "configured": bool(config),
                "missing_fields": missing,
                "supports_batch": cls.supports_batch,
                "supports_context_prompt": cls.supports_context_prompt,
                "max_batch_size": cls.max_batch_size,
            })
        return result


def _load_backend_config(name: str) -> dict:
    """Load backend config from config_entries DB table.

    Keys are namespaced as backend.<name>.<key>.

    Returns:
        Flat dict of config key-value pairs
    """
    from db.repositories.config import ConfigRepository

    prefix = f"backend.{name}."
    return {
        key[len(prefix):]: value
        for key, value in ConfigRepository().get_config_entries_with_prefix(prefix).items()
    }


# ─── Singleton ────────────────────────────────────────────────────────────────

_factory: Optional[TranslationServiceFactory] = None
_factory_lock = threading.Lock()


def get_translation_service_factory() -> TranslationServiceFactory:
    """Get or create the singleton TranslationServiceFactory (thread-safe)."""
    global _factory
    if _factory is None:
        with _factory_lock:
            if _factory is None:
                factory = TranslationServiceFactory()
                _register_builtin_backends(factory)
                _factory = factory
    return _factory


def invalidate_translation_service_factory() -> None:
    """Destroy the singleton instance (for testing)."""
    global _factory
    _factory = None


def _register_builtin_backends(factory: TranslationServiceFactory) -> None:
    """Register all built-in translation backends."""
    from translation.libretranslate import LibreTranslateBackend
    from translation.openai_compat import OpenAICompatBackend

    factory.register_backend(LibreTranslateBackend)
    factory.register_backend(OpenAICompatBackend)
