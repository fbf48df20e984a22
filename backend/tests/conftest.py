"""Shared pytest fixtures for all tests."""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from config import reload_settings

_ENV_KEYS = ("LINGUARR_DB_PATH", "LINGUARR_LOG_LEVEL", "LINGUARR_LOG_FILE", "LINGUARR_WORKER_COUNT")


@pytest.fixture
def app(tmp_path):
    """Flask app bound to a temporary SQLite database, with an app context pushed."""
    from app import create_app
    from extensions import db

    os.environ["LINGUARR_DB_PATH"] = str(tmp_path / "linguarr.db")
    os.environ["LINGUARR_LOG_LEVEL"] = "ERROR"  # Reduce log noise in tests
    os.environ["LINGUARR_LOG_FILE"] = str(tmp_path / "logs" / "linguarr.log")
    os.environ["LINGUARR_WORKER_COUNT"] = "2"
    reload_settings()

    application = create_app(testing=True)
    ctx = application.app_context()
    ctx.push()

    yield application

    db.session.remove()
    ctx.pop()
    application.job_queue.shutdown(wait=True)
    for key in _ENV_KEYS:
        os.environ.pop(key, None)
    reload_settings()


@pytest.fixture
def create_test_subtitle(tmp_path):
    """Factory fixture to create SRT subtitle files.

    Each line becomes one entry lasting two seconds, starting at 1s, 4s, 7s...
    """
    def _create(lines=None, name="test.en.srt"):
        if lines is None:
            lines = ["Hello World", "How are you"]

        content = ""
        for i, line in enumerate(lines, 1):
            start = (i - 1) * 3 + 1
            content += f"{i}\n00:00:{start:02d},000 --> 00:00:{start + 2:02d},000\n{line}\n\n"

        path = Path(tmp_path) / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _create


@pytest.fixture
def mock_collaborators():
    """MagicMock stand-ins for the orchestrator's settings/request/progress/statistics services.

    update_translation_request echoes the request back with the new status,
    like the repository does.
    """
    def _update(request, status, message=None, translated_subtitle=None):
        updated = dict(request, status=status)
        updated["error_message"] = message if status == "failed" else None
        if translated_subtitle is not None:
            updated["translated_subtitle"] = translated_subtitle
        return updated

    settings = MagicMock()
    settings.get_settings.return_value = {"service_type": "fake"}
    requests_ = MagicMock()
    requests_.update_translation_request.side_effect = _update

    return {
        "settings_service": settings,
        "request_service": requests_,
        "progress_service": MagicMock(),
        "statistics_service": MagicMock(),
    }


@pytest.fixture
def mock_requests(monkeypatch):
    """Mock requests library for HTTP calls."""
    import requests

    class MockResponse:
        def __init__(self, json_data, status_code=200):
            self.json_data = json_data
            self.status_code = status_code
            self.text = str(json_data)

        def json(self):
            return self.json_data

        def raise_for_status(self):
            if self.status_code >= 400:
                raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")

    calls = {"get": [], "post": []}
    responses = {"get": MockResponse([]), "post": MockResponse({})}

    def mock_get(url, *args, **kwargs):
        calls["get"].append((url, kwargs))
        return responses["get"]

    def mock_post(url, *args, **kwargs):
        calls["post"].append((url, kwargs))
        return responses["post"]

    monkeypatch.setattr(requests, "get", mock_get)
    monkeypatch.setattr(requests, "post", mock_post)

    return {"calls": calls, "responses": responses, "response_class": MockResponse}
