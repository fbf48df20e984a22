"""Tests for the translation backend system.

Covers: ABC contract, the service factory, LLM utilities, the language file
helper, and the LibreTranslate and OpenAI-compatible backends. All external
services are mocked.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from cancellation import CancellationToken
from error_handler import BackendError, TranslationCancelledError, UnknownBackendError
from translation import TranslationServiceFactory
from translation.base import BatchSubtitleItem, SourceLanguage, TranslationBackend
from translation.language_file import load_language_file
from translation.libretranslate import LibreTranslateBackend
from translation.llm_utils import number_lines, parse_llm_response, strip_wrapping_quotes
from translation.openai_compat import OpenAICompatBackend

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def languages_file(tmp_path):
    path = tmp_path / "languages.json"
    path.write_text(json.dumps([
        {"code": "en", "name": "English"},
        {"code": "es", "name": "Spanish"},
        {"code": "de", "name": "German"},
    ]), encoding="utf-8")
    return str(path)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _openai_backend(languages_file, responses, **config):
    """OpenAICompatBackend with a MagicMock client returning responses in order."""
    backend = OpenAICompatBackend(
        api_key="sk-test", model="test-model", languages_file=languages_file, **config
    )
    client = MagicMock()
    client.chat.completions.create.side_effect = responses
    backend._client = client
    return backend, client


def _api_error(message="rate limited"):
    return openai.APIError(message, request=httpx.Request("POST", "http://test/v1"), body=None)


# ---------------------------------------------------------------------------
# ABC contract
# ---------------------------------------------------------------------------


class TestTranslationBackendABC:
    def test_cannot_instantiate_abc(self):
        with pytest.raises(TypeError):
            TranslationBackend()

    def test_minimal_subclass(self):
        class Minimal(TranslationBackend):
            name = "minimal"

            def translate(self, text, source_lang, target_lang, **kwargs):
                return text.upper()

            def list_languages(self):
                return [SourceLanguage("en", "English", ["es"])]

        backend = Minimal(foo="bar")
        assert backend.config == {"foo": "bar"}
        assert backend.translate("hi", "en", "es") == "HI"
        assert backend.model_name == ""
        assert backend.list_models() == []
        assert not backend.supports_batch
        with pytest.raises(NotImplementedError):
            backend.translate_batch([BatchSubtitleItem(1, "hi")], "en", "es")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestTranslationServiceFactory:
    def test_unknown_backend_raises(self):
        factory = TranslationServiceFactory(config_loader=lambda name: {})
        with pytest.raises(UnknownBackendError) as exc_info:
            factory.create_translation_service("nope")
        assert "nope" in str(exc_info.value)

    def test_empty_name_raises(self):
        factory = TranslationServiceFactory(config_loader=lambda name: {})
        with pytest.raises(UnknownBackendError):
            factory.create_translation_service("")

    def test_creates_fresh_configured_instances(self):
        loaded = []

        def loader(name):
            loaded.append(name)
            return {"url": "http://lt:5000"}

        factory = TranslationServiceFactory(config_loader=loader)
        factory.register_backend(LibreTranslateBackend)

        first = factory.create_translation_service(" LibreTranslate ")
        second = factory.create_translation_service("libretranslate")

        assert isinstance(first, LibreTranslateBackend)
        assert first is not second
        assert first.config == {"url": "http://lt:5000"}
        assert loaded == ["libretranslate", "libretranslate"]

    def test_custom_parameter_keys(self):
        factory = TranslationServiceFactory(config_loader=lambda name: {})
        factory.register_backend(LibreTranslateBackend)
        factory.register_backend(OpenAICompatBackend)
        assert factory.custom_parameter_keys() == [
            "libretranslate_custom_parameters",
            "openai_custom_parameters",
        ]

    def test_get_all_backends(self):
        factory = TranslationServiceFactory(
            config_loader=lambda name: {"url": "x"} if name == "libretranslate" else {}
        )
        factory.register_backend(LibreTranslateBackend)
        factory.register_backend(OpenAICompatBackend)

        info = {b["name"]: b for b in factory.get_all_backends()}
        assert info["libretranslate"]["configured"] is True
        assert info["openai"]["configured"] is False
        assert info["openai"]["supports_batch"] is True
        assert info["openai"]["supports_context_prompt"] is True
        assert info["openai"]["missing_fields"] == ["api_key"]
        assert info["libretranslate"]["missing_fields"] == []

    def test_startup_log_warns_about_missing_config(self, caplog):
        import logging

        from app import _log_backends

        factory = TranslationServiceFactory(config_loader=lambda name: {})
        factory.register_backend(LibreTranslateBackend)
        factory.register_backend(OpenAICompatBackend)

        with caplog.at_level(logging.INFO):
            _log_backends(factory, logging.getLogger("app"))

        assert "Translation backends: libretranslate, openai" in caplog.text
        assert "Backend openai is missing required config: api_key" in caplog.text
        assert "Backend libretranslate is missing" not in caplog.text

    def test_loads_config_from_database(self, app):
        from db.repositories.config import ConfigRepository
        from translation import get_translation_service_factory, invalidate_translation_service_factory

        repo = ConfigRepository()
        repo.save_config_entry("backend.libretranslate.url", "http://lt:5000")
        repo.save_config_entry("backend.libretranslate.api_key", "secret")
        repo.save_config_entry("backend.openai.model", "ignored")

        invalidate_translation_service_factory()
        try:
            factory = get_translation_service_factory()
            assert {b["name"] for b in factory.get_all_backends()} == {"libretranslate", "openai"}
            backend = factory.create_translation_service("libretranslate")
            assert backend.config == {"url": "http://lt:5000", "api_key": "secret"}
        finally:
            invalidate_translation_service_factory()


# ---------------------------------------------------------------------------
# LLM utilities
# ---------------------------------------------------------------------------


class TestLLMUtils:
    def test_number_lines(self):
        assert number_lines(["a", "b\nc"]) == "1: a\n2: b c"

    def test_parse_numbered(self):
        assert parse_llm_response("1: Hola\n2. Adiós", 2) == ["Hola", "Adiós"]

    def test_parse_plain(self):
        assert parse_llm_response("Hola\n\nAdiós\n", 2) == ["Hola", "Adiós"]

    def test_parse_merges_continuation_lines(self):
        assert parse_llm_response("1: Hola\nmundo\n2: Adiós", 2) == ["Hola mundo", "Adiós"]

    def test_parse_count_mismatch(self):
        assert parse_llm_response("1: Hola", 2) is None

    @pytest.mark.parametrize("raw,expected", [
        ('"Hola"', "Hola"),
        ("'Hola'", "Hola"),
        ('"Dijo "hola""', '"Dijo "hola""'),
        ("  Hola  ", "Hola"),
        ('"', '"'),
    ])
    def test_strip_wrapping_quotes(self, raw, expected):
        assert strip_wrapping_quotes(raw) == expected


# ---------------------------------------------------------------------------
# Language file
# ---------------------------------------------------------------------------


class TestLanguageFile:
    def test_targets_exclude_self(self, languages_file):
        languages = {lang.code: lang for lang in load_language_file(languages_file)}
        assert languages["en"].name == "English"
        assert languages["en"].targets == ["es", "de"]
        assert "es" not in languages["es"].targets

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"en": "English"}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_language_file(str(path))

    def test_bundled_languages_file(self):
        from config import get_settings
        languages = load_language_file(get_settings().get_languages_file())
        assert any(lang.code == "en" for lang in languages)


# ---------------------------------------------------------------------------
# LibreTranslate
# ---------------------------------------------------------------------------


class TestLibreTranslateBackend:
    def test_translate(self, mock_requests):
        mock_requests["responses"]["post"] = mock_requests["response_class"](
            {"translatedText": "Subtítulo de prueba"}
        )
        backend = LibreTranslateBackend(url="http://lt:5000/", api_key="k")

        result = backend.translate(
            "Test subtitle", "en", "es", custom_parameters=[("alternatives", 0.0)]
        )

        assert result == "Subtítulo de prueba"
        url, kwargs = mock_requests["calls"]["post"][0]
        assert url == "http://lt:5000/translate"
        assert kwargs["json"] == {
            "q": "Test subtitle",
            "source": "en",
            "target": "es",
            "format": "text",
            "api_key": "k",
            "alternatives": 0.0,
        }

    def test_http_error_raises_backend_error(self, mock_requests):
        mock_requests["responses"]["post"] = mock_requests["response_class"]({}, status_code=503)
        with pytest.raises(BackendError) as exc_info:
            LibreTranslateBackend().translate("Hello", "en", "es")
        assert "503" in str(exc_info.value)

    def test_missing_translation_raises(self, mock_requests):
        mock_requests["responses"]["post"] = mock_requests["response_class"](
            {"error": "Invalid target language"}
        )
        with pytest.raises(BackendError, match="Invalid target language"):
            LibreTranslateBackend().translate("Hello", "en", "xx")

    def test_cancelled_before_request(self, mock_requests):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(TranslationCancelledError):
            LibreTranslateBackend().translate("Hello", "en", "es", cancellation_token=token)
        assert mock_requests["calls"]["post"] == []

    def test_list_languages(self, mock_requests):
        mock_requests["responses"]["get"] = mock_requests["response_class"]([
            {"code": "en", "name": "English", "targets": ["en", "es", "de"]},
            {"code": "es", "name": "Spanish", "targets": ["en", "es"]},
        ])
        languages = LibreTranslateBackend(url="http://lt:5000").list_languages()

        assert mock_requests["calls"]["get"][0][0] == "http://lt:5000/languages"
        assert languages[0] == SourceLanguage("en", "English", ["es", "de"])
        assert languages[1].targets == ["en"]


# ---------------------------------------------------------------------------
# OpenAI-compatible
# ---------------------------------------------------------------------------


class TestOpenAICompatBackend:
    def test_translate(self, languages_file):
        backend, client = _openai_backend(languages_file, [_completion('"Hola"')])

        assert backend.translate("Hello", "en", "es") == "Hola"

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.3
        system, user = kwargs["messages"]
        assert "from English to Spanish" in system["content"]
        assert user == {"role": "user", "content": "Hello"}

    def test_blank_text_skips_call(self, languages_file):
        backend, client = _openai_backend(languages_file, [])
        assert backend.translate("  ", "en", "es") == "  "
        client.chat.completions.create.assert_not_called()

    def test_custom_parameters(self, languages_file):
        backend, client = _openai_backend(languages_file, [_completion("Hola")])
        backend.translate(
            "Hello", "en", "es",
            custom_parameters=[("temperature", 0.1), ("top_k", 40.0), ("provider", '{"order": ["a"]}')],
        )

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["extra_body"] == {"top_k": 40.0, "provider": '{"order": ["a"]}'}

    def test_custom_system_prompt(self, languages_file):
        backend, client = _openai_backend(
            languages_file, [_completion("Hola")],
            system_prompt="Into {targetLanguage} please",
        )
        backend.translate("Hello", "en", "es")
        system = client.chat.completions.create.call_args.kwargs["messages"][0]
        assert system["content"] == "Into Spanish please"

    def test_retries_then_succeeds(self, languages_file, monkeypatch):
        backend, client = _openai_backend(
            languages_file, [_api_error(), _completion(""), _completion("Hola")]
        )
        waits = []
        token = CancellationToken()
        monkeypatch.setattr(token, "wait", lambda seconds: waits.append(seconds) or False)

        assert backend.translate("Hello", "en", "es", cancellation_token=token) == "Hola"
        assert client.chat.completions.create.call_count == 3
        assert waits == [1, 2]

    def test_exhausted_retries_raise_backend_error(self, languages_file, monkeypatch):
        backend, client = _openai_backend(
            languages_file, [_api_error("boom")] * 2, max_retries="2"
        )
        token = CancellationToken()
        monkeypatch.setattr(token, "wait", lambda seconds: False)

        with pytest.raises(BackendError, match="All 2 attempts failed. Last error: boom"):
            backend.translate("Hello", "en", "es", cancellation_token=token)

    def test_cancellation_between_attempts(self, languages_file):
        backend, client = _openai_backend(languages_file, [_api_error(), _completion("Hola")])
        token = CancellationToken()

        def cancel_during_backoff(seconds):
            token.cancel()
            return True

        token.wait = cancel_during_backoff
        with pytest.raises(TranslationCancelledError):
            backend.translate("Hello", "en", "es", cancellation_token=token)
        assert client.chat.completions.create.call_count == 1

    def test_translate_batch(self, languages_file):
        backend, client = _openai_backend(languages_file, [_completion("1: Hola\n2: Adiós")])

        result = backend.translate_batch(
            [BatchSubtitleItem(7, "Hello"), BatchSubtitleItem(8, "Goodbye")],
            "en", "es",
            context_before=["Earlier"],
            context_after=["Later"],
        )

        assert result == {7: "Hola", 8: "Adiós"}
        prompt = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "[1] Earlier" in prompt
        assert "1: Hello\n2: Goodbye" in prompt
        assert prompt.rstrip().endswith("[1] Later")

    def test_translate_batch_retries_malformed_answer(self, languages_file, monkeypatch):
        backend, client = _openai_backend(
            languages_file, [_completion("1: Hola"), _completion("1: Hola\n2: Adiós")]
        )
        token = CancellationToken()
        monkeypatch.setattr(token, "wait", lambda seconds: False)

        result = backend.translate_batch(
            [BatchSubtitleItem(1, "Hello"), BatchSubtitleItem(2, "Goodbye")],
            "en", "es", cancellation_token=token,
        )
        assert result == {1: "Hola", 2: "Adiós"}
        assert client.chat.completions.create.call_count == 2

    def test_list_models(self, languages_file):
        backend, client = _openai_backend(languages_file, [])
        client.models.list.return_value = [SimpleNamespace(id="gpt-4o"), SimpleNamespace(id="gpt-4o-mini")]
        assert backend.list_models() == [
            {"value": "gpt-4o", "label": "gpt-4o"},
            {"value": "gpt-4o-mini", "label": "gpt-4o-mini"},
        ]

    def test_list_models_failure(self, languages_file):
        backend, client = _openai_backend(languages_file, [])
        client.models.list.side_effect = _api_error("unauthorized")
        with pytest.raises(BackendError):
            backend.list_models()

    def test_model_name_and_languages(self, languages_file):
        backend, _ = _openai_backend(languages_file, [])
        assert backend.model_name == "test-model"
        assert backend.language_name("ES") == "Spanish"
        assert backend.language_name("xx") == "xx"
        assert [lang.code for lang in backend.list_languages()] == ["en", "es", "de"]
