"""Local transcription through the openai-whisper command-line tool."""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from chatbridge.errors import TranscriptionError

logger = logging.getLogger(__name__)


class WhisperCliTranscriber:
    """Runs ``whisper`` and reads the ``<stem>.txt`` sidecar it writes.

    Whisper writes into a scratch directory owned by a single call, so
    files next to the audio are never read or removed.
    """

    name = "whisper-cli"

    def __init__(
        self,
        *,
        command: str = "whisper",
        model: str = "base",
        language: str = "",
        timeout_seconds: float = 60.0,
        output_dir: Path | None = None,
    ) -> None:
        self.command = command
        self.model = model
        # whisper wants a bare language code ("en"), not a locale ("en-US").
        self.language = language.split("-", 1)[0].strip().lower()
        self.timeout_seconds = timeout_seconds
        self.output_dir = output_dir

    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    def build_command(self, file_path: Path, output_dir: Path) -> list[str]:
        args = [
            self.command,
            str(file_path),
            "--model",
            self.model,
            "--output_format",
            "txt",
            "--output_dir",
            str(output_dir),
            "--fp16",
            "False",
        ]
        if self.language:
            args.extend(["--language", self.language])
        return args

    def _transcribe_sync(self, file_path: Path) -> str:
        with tempfile.TemporaryDirectory(prefix="whisper-", dir=self.output_dir) as scratch:
            output_dir = Path(scratch)
            sidecar = output_dir / f"{file_path.stem}.txt"
            try:
                proc = subprocess.run(
                    self.build_command(file_path, output_dir),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise TranscriptionError("whisper_timeout") from exc
            except OSError as exc:
                raise TranscriptionError("whisper_unavailable") from exc
            if proc.returncode != 0:
                logger.warning(
                    "whisper exited with %d: %s", proc.returncode, (proc.stderr or "")[-500:]
                )
                raise TranscriptionError("whisper_failed")
            if not sidecar.exists():
                raise TranscriptionError("whisper_output_missing")
            transcript = sidecar.read_text(encoding="utf-8").strip()
        if not transcript:
            raise TranscriptionError("whisper_empty_transcript")
        return " ".join(transcript.split())

    async def transcribe(self, file_path: Path) -> str:
        if not file_path.exists():
            raise TranscriptionError("voice_transcription_input_missing")
        return await asyncio.to_thread(self._transcribe_sync, file_path)
