import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from chatbridge.cli import main as cli_main
from chatbridge.providers.base import GenerationRequest, ProviderKind
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.providers.state import ProviderState
from chatbridge.transcription.cascade import TranscriptionCascade


class CannedProvider:
    name = "canned"
    supports_streaming = True

    def text_model(self) -> str:
        return "canned-text"

    def vision_model(self) -> str:
        return "canned-vision"

    async def generate_text(self, request: GenerationRequest) -> str:
        return f"answer to {request.prompt}"

    async def generate_multimodal(self, request: GenerationRequest) -> str:
        return await self.generate_text(request)

    async def stream_text(self, request: GenerationRequest):
        for fragment in ("one ", "two"):
            yield fragment


class FixedSpeech:
    name = "fixed-speech"

    async def recognize(self, audio: bytes, config) -> str:
        return "spoken words"


def _install_gateway(monkeypatch: pytest.MonkeyPatch, *, live: bool) -> None:
    def fake_build_gateway(settings):
        state = ProviderState.from_settings(settings)
        if live:
            state.mark(ProviderKind.LOCAL_TEXT, available=True)
        return AIProviderGateway(state, local=CannedProvider())

    monkeypatch.setattr(cli_main, "build_gateway", fake_build_gateway)


def test_status_json_reports_active_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_gateway(monkeypatch, live=True)
    result = CliRunner().invoke(cli_main.cli, ["status", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["active_mode"] == "local_active"
    assert payload["current_model"] == "canned-text"


def test_status_exits_nonzero_when_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_gateway(monkeypatch, live=False)
    result = CliRunner().invoke(cli_main.cli, ["status"])
    assert result.exit_code == 1
    assert "unavailable" in result.output
    assert "local-text: llama3.2" in result.output


def test_ask_prints_reply_with_template(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_gateway(monkeypatch, live=True)
    result = CliRunner().invoke(
        cli_main.cli, ["ask", "tides", "--template", "Explain {user_prompt} briefly"]
    )
    assert result.exit_code == 0, result.output
    assert "answer to Explain tides briefly" in result.output


def test_ask_stream_prints_fragments(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_gateway(monkeypatch, live=True)
    result = CliRunner().invoke(cli_main.cli, ["ask", "count", "--stream"])
    assert result.exit_code == 0, result.output
    assert "one two" in result.output


def test_ask_fails_when_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_gateway(monkeypatch, live=False)
    result = CliRunner().invoke(cli_main.cli, ["ask", "hello"])
    assert result.exit_code == 1
    assert "offline" in result.output


def test_transcribe_prints_transcript(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    audio = tmp_path / "memo.webm"
    audio.write_bytes(b"webm")
    monkeypatch.setattr(
        cli_main,
        "build_transcription_cascade",
        lambda settings: TranscriptionCascade(cloud=FixedSpeech()),
    )
    result = CliRunner().invoke(cli_main.cli, ["transcribe", str(audio)])
    assert result.exit_code == 0, result.output
    assert "spoken words" in result.output


def test_transcribe_missing_file_fails(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli_main.cli, ["transcribe", str(tmp_path / "none.webm")])
    assert result.exit_code == 1
    assert "audio file not found" in result.output
