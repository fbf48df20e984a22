"""Language listing from a JSON file, shared by backends without a languages API.

LLM backends can translate between any pair of languages they know, so their
supported set comes from a static list: [{"code": "en", "name": "English"}, ...].
Every language can target every other language in the file.
"""

import json
import logging

from translation.base import SourceLanguage, TranslationBackend

logger = logging.getLogger(__name__)


def load_language_file(path: str) -> list[SourceLanguage]:
    """Read a language JSON file and derive source -> targets.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a list of {code, name} objects
    """
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)

    if not isinstance(entries, list):
        raise ValueError(f"Failed to deserialize {path}: expected a list")

    languages = [
        (str(e["code"]), str(e.get("name", e["code"])))
        for e in entries
        if isinstance(e, dict) and e.get("code")
    ]
    codes = [code for code, _ in languages]
    return [
        SourceLanguage(code=code, name=name, targets=[c for c in codes if c != code])
        for code, name in languages
    ]


class LanguageFileBackend(TranslationBackend):
    """Base for backends whose language list comes from a JSON file.

    Subclasses pass languages_file via config or rely on the process setting.
    """

    def __init__(self, **config):
        super().__init__(**config)
        self._languages_file = config.get("languages_file") or self._default_languages_file()

    @staticmethod
    def _default_languages_file() -> str:
        from config import get_settings
        return get_settings().get_languages_file()

    def list_languages(self) -> list[SourceLanguage]:
        logger.info("Retrieving languages from %s", self._languages_file)
        return load_language_file(self._languages_file)

    def language_name(self, code: str) -> str:
        """Display name for a language code (the code itself if unknown)."""
        if not code:
            return code
        try:
            for lang in load_language_file(self._languages_file):
                if lang.code.lower() == code.lower():
                    return lang.name
        except (OSError, ValueError) as e:
            logger.debug("Language name lookup failed for %s: %s", code, e)
        return code
