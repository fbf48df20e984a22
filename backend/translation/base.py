"""Abstract base class for translation backends and shared data models.

All translation backends implement the same capability set: translate a piece
of subtitle text (optionally with surrounding context and custom request
parameters), report the model in use, and list the languages they support.
Batch translation and model listing are optional capabilities.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from cancellation import CancellationToken


@dataclass
class SourceLanguage:
    """A source language a backend can translate from."""

    code: str
    name: str
    targets: list[str] = field(default_factory=list)


@dataclass
class BatchSubtitleItem:
    """One entry of a batch translation request."""

    position: int
    line: str


class TranslationBackend(ABC):
    """Abstract base class for translation backends.

    Backends implement translate and list_languages; translate_batch and
    list_models are optional.

    Class-level attributes for the factory and the job orchestrator:
        name: Unique backend identifier, also the service_type setting value
        display_name: Human-readable name
        config_fields: Declarative config field definitions, checked at
            startup for missing required values. Each dict:
            {"key": str, "label": str, "type": "text"|"password"|"number",
             "required": bool, "default": str, "help": str}
        supports_batch: Whether translate_batch is implemented
        supports_context_prompt: Whether rendered context prompts are
            meaningful input (LLMs); MT backends receive the raw line
        max_batch_size: Maximum lines per batch call (0 = unlimited)
    """

    name: str = "unknown"
    display_name: str = "Unknown"
    config_fields: list[dict] = []
    supports_batch: bool = False
    supports_context_prompt: bool = False
    max_batch_size: int = 0  # 0 = no limit

    def __init__(self, **config):
        self.config = config

    @property
    def model_name(self) -> str:
        """Model identifier reported in statistics ("" for non-model backends)."""
        return ""

    @abstractmethod
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
        """Translate one subtitle unit.

        Args:
            text: Text to translate (raw line or rendered context prompt)
            source_lang: ISO 639-1 source language code
            target_lang: ISO 639-1 target language code
            context_before: Preceding subtitle lines, oldest first
            context_after: Following subtitle lines, nearest first
            custom_parameters: Extra (key, value) pairs for the outbound request
            cancellation_token: Checked between retry attempts

        Returns:
            Translated text

        Raises:
            BackendError: When the call fails after the backend's own retries
            TranslationCancelledError: When cancelled between attempts
        """
        ...

    def translate_batch(
        self,
        items: list[BatchSubtitleItem],
        source_lang: str,
        target_lang: str,
        context_before: Optional[list[str]] = None,
        context_after: Optional[list[str]] = None,
        custom_parameters: Optional[list[tuple[str, object]]] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> dict[int, str]:
        """Translate several items in one call.

        Returns:
            Mapping of item position to translated text

        Raises:
            NotImplementedError: Unless the backend sets supports_batch
        """
        raise NotImplementedError(f"{self.name} does not support batch translation")

    @abstractmethod
    def list_languages(self) -> list[SourceLanguage]:
        """Return supported source languages with their valid targets.

        A language never lists itself as a target.
        """
        ...

    def list_models(self) -> list[dict]:
        """Return selectable models ({"value": id, "label": name}); none by default."""
        return []
