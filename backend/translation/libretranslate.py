"""LibreTranslate translation backend using REST API.

Self-hosted open-source machine translation. Translates one unit per call
via the /translate endpoint and reads its language pairs from /languages.
"""

import logging
from typing import Optional

import requests

from cancellation import CancellationToken
from error_handler import BackendError
from translation.base import SourceLanguage, TranslationBackend
from translation.custom_parameters import add_custom_parameters

logger = logging.getLogger(__name__)


class LibreTranslateBackend(TranslationBackend):
    """LibreTranslate backend with per-line translation.

    Connects to a self-hosted LibreTranslate instance via REST API.
    Each line is translated individually to guarantee 1:1 line mapping.
    """

    name = "libretranslate"
    display_name = "LibreTranslate (Self-Hosted)"
    supports_batch = False
    max_batch_size = 1  # Translate one line at a time

    config_fields = [
        {
            "key": "url",
            "label": "LibreTranslate URL",
            "type": "text",
            "required": True,
            "default": "http://libretranslate:5000",
            "help": "LibreTranslate API endpoint",
        },
        {
            "key": "api_key",
            "label": "API Key (optional)",
            "type": "password",
            "required": False,
            "default": "",
            "help": "Only needed for public instances",
        },
        {
            "key": "request_timeout",
            "label": "Timeout (seconds)",
            "type": "number",
            "required": False,
            "default": "30",
            "help": "Request timeout per line",
        },
    ]

    @property
    def _url(self) -> str:
        return (self.config.get("url") or "http://libretranslate:5000").rstrip("/")

    @property
    def _timeout(self) -> int:
        try:
            return int(self.config.get("request_timeout", 30))
        except (ValueError, TypeError):
            return 30

    def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        context_before: Optional[list[str]] = None,
        context_after: Optional[list[str]] = None,
        custom_parameters: Optional[list[tuple[str, object]]] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> str:
        """Translate one line via the /translate endpoint.

        Context lines are ignored; LibreTranslate has no notion of them.
        """
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()

        payload = {
            "q": text,
            "source": source_lang,
            "target": target_lang,
            "format": "text",
        }
        api_key = self.config.get("api_key", "")
        if api_key:
            payload["api_key"] = api_key
        add_custom_parameters(payload, custom_parameters)

        try:
            resp = requests.post(f"{self._url}/translate", json=payload, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("LibreTranslate translation failed: %s", e)
            raise BackendError(
                f"LibreTranslate request failed: {e}",
                context={"backend": self.name, "url": self._url},
            ) from e

        if "translatedText" not in data:
            raise BackendError(
                f"LibreTranslate returned no translation: {data.get('error', data)}",
                context={"backend": self.name},
            )
        return data["translatedText"]

    def list_languages(self) -> list[SourceLanguage]:
        """Query /languages; a language never lists itself as a target."""
        logger.info("Retrieving languages from %s/languages", self._url)
        try:
            resp = requests.get(f"{self._url}/languages", timeout=self._timeout)
            resp.raise_for_status()
            entries = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise BackendError(
                f"Failed to retrieve LibreTranslate languages: {e}",
                context={"backend": self.name, "url": self._url},
            ) from e

        languages = []
        for entry in entries:
            code = entry.get("code")
            if not code:
                continue
            targets = [t for t in entry.get("targets", []) if t != code]
            languages.append(SourceLanguage(code=code, name=entry.get("name", code), targets=targets))
        return languages
