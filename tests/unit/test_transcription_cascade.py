from pathlib import Path

import pytest

from chatbridge.config import get_settings
from chatbridge.errors import ErrorKind, ProviderError, TranscriptionError
from chatbridge.transcription.cascade import (
    ALTERNATE_RECOGNITION_CONFIGS,
    DEFAULT_RECOGNITION_CONFIG,
    RecognitionConfig,
    TranscriptionCascade,
)
from chatbridge.transcription.factory import build_transcription_cascade


class RecordingSpeech:
    name = "speech-stub"

    def __init__(self, answers: dict[str, str | Exception]) -> None:
        self.answers = answers
        self.calls: list[RecognitionConfig] = []

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str:
        self.calls.append(config)
        answer = self.answers.get(config.label(), "")
        if isinstance(answer, Exception):
            raise answer
        return answer


class StubLocal:
    name = "local-stub"

    def __init__(self, transcript: str = "", *, available: bool = True) -> None:
        self.transcript = transcript
        self.available = available
        self.calls: list[Path] = []

    def is_available(self) -> bool:
        return self.available

    async def transcribe(self, file_path: Path) -> str:
        self.calls.append(file_path)
        if not self.transcript:
            raise TranscriptionError("whisper_failed")
        return self.transcript


def _audio(tmp_path: Path) -> Path:
    path = tmp_path / "voice.webm"
    path.write_bytes(b"\x1aE\xdf\xa3 fake webm")
    return path


def test_recognition_order_starts_with_default() -> None:
    cascade = TranscriptionCascade()
    order = cascade.recognition_order()
    assert order[0] == DEFAULT_RECOGNITION_CONFIG
    assert order[1:] == list(ALTERNATE_RECOGNITION_CONFIGS)
    assert [item.label() for item in order] == [
        "WEBM_OPUS@48000",
        "OGG_OPUS@48000",
        "LINEAR16@16000",
        "LINEAR16@44100",
        "FLAC@44100",
    ]


@pytest.mark.asyncio
async def test_cloud_alternates_stop_at_first_transcript(tmp_path: Path) -> None:
    speech = RecordingSpeech(
        {
            "WEBM_OPUS@48000": ProviderError("bad encoding"),
            "OGG_OPUS@48000": "",
            "LINEAR16@16000": "  hello world ",
        }
    )
    local = StubLocal("never used")
    cascade = TranscriptionCascade(cloud=speech, local=local)

    result = await cascade.transcribe(_audio(tmp_path))

    assert result.success is True
    assert result.transcription == "hello world"
    assert result.backend == "speech-stub"
    assert [item.label() for item in speech.calls] == [
        "WEBM_OPUS@48000",
        "OGG_OPUS@48000",
        "LINEAR16@16000",
    ]
    assert local.calls == []
    assert [item.success for item in result.attempts] == [False, False, True]


@pytest.mark.asyncio
async def test_local_transcriber_runs_after_cloud_exhausted(tmp_path: Path) -> None:
    speech = RecordingSpeech({})
    local = StubLocal("from whisper")
    cascade = TranscriptionCascade(cloud=speech, local=local)

    result = await cascade.transcribe(_audio(tmp_path))

    assert len(speech.calls) == 5
    assert result.success is True
    assert result.backend == "local-stub"
    assert result.transcription == "from whisper"


@pytest.mark.asyncio
async def test_everything_failing_is_exhausted(tmp_path: Path) -> None:
    cascade = TranscriptionCascade(cloud=RecordingSpeech({}), local=StubLocal(""))

    result = await cascade.transcribe(_audio(tmp_path))

    assert result.success is False
    assert result.error_kind is ErrorKind.TRANSCRIPTION_EXHAUSTED
    assert result.error == (
        "all transcription attempts failed (6 tried): TranscriptionError: whisper_failed"
    )
    assert result.to_dict()["error_kind"] == "transcription_exhausted"


@pytest.mark.asyncio
async def test_no_backends_available(tmp_path: Path) -> None:
    cascade = TranscriptionCascade(cloud=None, local=StubLocal("x", available=False))
    result = await cascade.transcribe(_audio(tmp_path))
    assert result.success is False
    assert result.error == "no transcription backend available"
    assert result.attempts == []


@pytest.mark.asyncio
async def test_missing_audio_is_not_found(tmp_path: Path) -> None:
    speech = RecordingSpeech({"WEBM_OPUS@48000": "unused"})
    cascade = TranscriptionCascade(cloud=speech)
    result = await cascade.transcribe(tmp_path / "gone.webm")
    assert result.success is False
    assert result.error_kind is ErrorKind.NOT_FOUND
    assert speech.calls == []


def test_cascade_built_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    cascade = build_transcription_cascade(get_settings())
    assert cascade.cloud is None
    assert cascade.local is not None
    assert cascade.local.is_available() is False

    monkeypatch.setenv("GOOGLE_SPEECH_API_KEY", "speech-key")
    monkeypatch.setenv("SPEECH_LANGUAGE", "fr-FR")
    get_settings.cache_clear()
    cascade = build_transcription_cascade(get_settings())
    assert cascade.cloud is not None
    assert cascade.cloud.name == "google-speech"
    assert cascade.local.language == "fr"
