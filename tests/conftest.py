import os

import pytest

from chatbridge.config import get_settings


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    for key in (
        "APP_ENV",
        "USE_CLOUD_AI",
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
        "OLLAMA_BASE_URL",
        "OLLAMA_TEXT_MODEL",
        "OLLAMA_VISION_MODEL",
        "GOOGLE_SPEECH_API_KEY",
        "CONTEXT_MESSAGE_LIMIT",
    ):
        monkeypatch.delenv(key, raising=False)
    os.environ["LOG_LEVEL"] = "WARNING"
    # Never shell out to a real whisper binary from tests.
    os.environ["WHISPER_COMMAND"] = "chatbridge-test-missing-whisper"
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
