"""OpenAI-compatible translation backend.

Supports any OpenAI-compatible endpoint via configurable base_url:
OpenAI, Azure OpenAI, OpenRouter, LM Studio, vLLM and similar services.

Retries (timeouts, rate limits, malformed batch answers) are handled here with
exponential backoff; the job orchestrator sees a single call that either
returns a translation or raises BackendError.
"""

import time
import logging
import threading
from typing import Optional

from openai import APIError, OpenAI

from cancellation import CancellationToken
from error_handler import BackendError
from translation.base import BatchSubtitleItem
from translation.custom_parameters import add_custom_parameters
from translation.language_file import LanguageFileBackend
from translation.llm_utils import (
    DEFAULT_BATCH_INSTRUCTIONS,
    DEFAULT_SYSTEM_PROMPT,
    number_lines,
    parse_llm_response,
    strip_wrapping_quotes,
)
from translation.prompt_engine import format_context_lines, render_template

logger = logging.getLogger(__name__)

# Request fields the SDK accepts as keyword arguments; any other custom
# parameter is sent through extra_body
_SDK_FIELDS = {
    "temperature", "top_p", "max_tokens", "max_completion_tokens", "frequency_penalty",
    "presence_penalty", "seed", "stop", "n", "user", "response_format", "reasoning_effort",
}


class OpenAICompatBackend(LanguageFileBackend):
    """OpenAI-compatible LLM translation backend.

    Uses the OpenAI Python SDK with configurable base_url. Config values are
    loaded from config_entries (backend.openai.*) by the service factory.
    """

    name = "openai"
    display_name = "OpenAI-Compatible (OpenAI, Azure, OpenRouter, LM Studio, vLLM)"
    supports_batch = True
    supports_context_prompt = True
    max_batch_size = 25

    config_fields = [
        {
            "key": "api_key",
            "label": "API Key",
            "type": "password",
            "required": True,
            "default": "",
            "help": "API key for the OpenAI-compatible service",
        },
        {
            "key": "base_url",
            "label": "Base URL",
            "type": "text",
            "required": True,
            "default": "https://api.openai.com/v1",
            "help": "API base URL (e.g. https://api.openai.com/v1, http://localhost:1234/v1)",
        },
        {
            "key": "model",
            "label": "Model",
            "type": "text",
            "required": True,
            "default": "gpt-4o-mini",
            "help": "Model name (e.g. gpt-4o-mini, gpt-4o, local model name)",
        },
        {
            "key": "system_prompt",
            "label": "System Prompt",
            "type": "text",
            "required": False,
            "default": "",
            "help": "Supports {sourceLanguage} and {targetLanguage}; empty = built-in prompt",
        },
        {
            "key": "temperature",
            "label": "Temperature",
            "type": "number",
            "required": False,
            "default": "0.3",
            "help": "Lower = more deterministic (0.0-1.0)",
        },
        {
            "key": "request_timeout",
            "label": "Timeout (seconds)",
            "type": "number",
            "required": False,
            "default": "120",
            "help": "Request timeout for API calls",
        },
        {
            "key": "max_retries",
            "label": "Max Retries",
            "type": "number",
            "required": False,
            "default": "3",
            "help": "Number of attempts before a call is reported as failed",
        },
    ]

    def __init__(self, **config):
        super().__init__(**config)
        self._client = None
        self._client_lock = threading.Lock()

    @property
    def _api_key(self) -> str:
        return self.config.get("api_key", "")

    @property
    def _base_url(self) -> str:
        return self.config.get("base_url") or "https://api.openai.com/v1"

    @property
    def _model(self) -> str:
        return self.config.get("model") or "gpt-4o-mini"

    @property
    def _temperature(self) -> float:
        try:
            return float(self.config.get("temperature", 0.3))
        except (ValueError, TypeError):
            return 0.3

    @property
    def _request_timeout(self) -> int:
        try:
            return int(self.config.get("request_timeout", 120))
        except (ValueError, TypeError):
            return 120

    @property
    def _max_retries(self) -> int:
        try:
            return max(1, int(self.config.get("max_retries", 3)))
        except (ValueError, TypeError):
            return 3

    @property
    def model_name(self) -> str:
        return self._model

    def _get_client(self) -> OpenAI:
        """Get or create the OpenAI client (lazy initialization, thread-safe)."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = OpenAI(
                        api_key=self._api_key or "not-needed",
                        base_url=self._base_url,
                        timeout=self._request_timeout,
                        max_retries=0,  # We handle retries ourselves
                    )
        return self._client

    def _system_prompt(self, source_lang: str, target_lang: str) -> str:
        template = self.config.get("system_prompt") or DEFAULT_SYSTEM_PROMPT
        return render_template(template, {
            "sourceLanguage": self.language_name(source_lang),
            "targetLanguage": self.language_name(target_lang),
        })

    def _build_request(self, messages: list[dict], custom_parameters) -> dict:
        """Assemble create() kwargs; unknown custom keys travel in extra_body."""
        request_data = add_custom_parameters(
            {"temperature": self._temperature}, custom_parameters
        )
        kwargs = {"model": self._model, "messages": messages}
        extra_body = {}
        for key, value in request_data.items():
            if key in _SDK_FIELDS:
                kwargs[key] = value
            elif key not in ("model", "messages"):
                extra_body[key] = value
        if extra_body:
            kwargs["extra_body"] = extra_body
        return kwargs

    def _complete(self, messages, custom_parameters, cancellation_token, validate=None):
        """Run a chat completion with retries and return the (validated) content.

        Args:
            validate: Optional callable turning the raw content into the
                result; returning None means "malformed, retry"

        Raises:
            BackendError: After max_retries failed attempts
            TranslationCancelledError: If cancelled between attempts
        """
        token = cancellation_token or CancellationToken()
        client = self._get_client()
        request = self._build_request(messages, custom_parameters)

        last_error = None
        for attempt in range(1, self._max_retries + 1):
            token.raise_if_cancelled()
            try:
                start_time = time.time()
                completion = client.chat.completions.create(**request)
                content = (completion.choices[0].message.content or "").strip()
                logger.debug(
                    "Completion from %s in %.0fms", self._model, (time.time() - start_time) * 1000
                )

                result = validate(content) if validate else content
                if result is not None and result != "":
                    return result
                last_error = "Malformed or empty response"
                logger.warning("Attempt %d: malformed response, retrying...", attempt)
            except APIError as e:
                logger.warning("Attempt %d failed: %s", attempt, e)
                last_error = str(e)

            if attempt < self._max_retries:
                wait = 2 ** (attempt - 1)
                logger.info("Waiting %ds before retry...", wait)
                token.wait(wait)

        raise BackendError(
            f"All {self._max_retries} attempts failed. Last error: {last_error}",
            context={"backend": self.name, "model": self._model},
        )

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
        """Translate one unit. The text may already be a rendered context prompt."""
        if not text.strip():
            return text

        messages = [
            {"role": "system", "content": self._system_prompt(source_lang, target_lang)},
            {"role": "user", "content": text},
        ]
        return self._complete(
            messages, custom_parameters, cancellation_token, validate=strip_wrapping_quotes
        )

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
        """Translate a batch as numbered lines and map answers back to positions."""
        if not items:
            return {}

        content = DEFAULT_BATCH_INSTRUCTIONS
        if context_before:
            content += "Previous lines (context only, do not translate):\n"
            content += format_context_lines(context_before) + "\n\n"
        content += "Lines to translate:\n" + number_lines([i.line for i in items])
        if context_after:
            content += "\n\nFollowing lines (context only, do not translate):\n"
            content += format_context_lines(context_after)

        messages = [
            {"role": "system", "content": self._system_prompt(source_lang, target_lang)},
            {"role": "user", "content": content},
        ]
        parsed = self._complete(
            messages,
            custom_parameters,
            cancellation_token,
            validate=lambda raw: parse_llm_response(raw, len(items)),
        )
        return {item.position: line for item, line in zip(items, parsed)}

    def list_models(self) -> list[dict]:
        """List models exposed by the endpoint's /models route."""
        try:
            models = self._get_client().models.list()
            return [{"value": m.id, "label": m.id} for m in models]
        except APIError as e:
            raise BackendError(f"Failed to list models: {e}", context={"backend": self.name}) from e
