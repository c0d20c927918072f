"""Audio-to-text with ordered fallback between transcription backends.

Order: the cloud speech backend with the default recognition config, then
each alternate config in turn, then the local CLI transcriber. The first
non-empty transcript wins and nothing after it is attempted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from chatbridge.errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    encoding: str
    sample_rate_hertz: int

    def label(self) -> str:
        return f"{self.encoding}@{self.sample_rate_hertz}"


DEFAULT_RECOGNITION_CONFIG = RecognitionConfig("WEBM_OPUS", 48000)
ALTERNATE_RECOGNITION_CONFIGS: tuple[RecognitionConfig, ...] = (
    RecognitionConfig("OGG_OPUS", 48000),
    RecognitionConfig("LINEAR16", 16000),
    RecognitionConfig("LINEAR16", 44100),
    RecognitionConfig("FLAC", 44100),
)


@dataclass(slots=True)
class TranscriptionAttempt:
    backend: str
    config: RecognitionConfig | None = None
    transcript: str = ""
    error: str | None = None

    @property
    def success(self) -> bool:
        return bool(self.transcript.strip())


@dataclass(slots=True)
class TranscriptionResult:
    success: bool
    transcription: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    backend: str | None = None
    attempts: list[TranscriptionAttempt] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "transcription": self.transcription,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "backend": self.backend,
        }


class SpeechBackend(Protocol):
    name: str

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str: ...


class LocalTranscriber(Protocol):
    name: str

    def is_available(self) -> bool: ...

    async def transcribe(self, file_path: Path) -> str: ...


class TranscriptionCascade:
    def __init__(
        self,
        *,
        cloud: SpeechBackend | None = None,
        local: LocalTranscriber | None = None,
        default_config: RecognitionConfig = DEFAULT_RECOGNITION_CONFIG,
        alternate_configs: tuple[RecognitionConfig, ...] = ALTERNATE_RECOGNITION_CONFIGS,
    ) -> None:
        self.cloud = cloud
        self.local = local
        self.default_config = default_config
        self.alternate_configs = alternate_configs

    def recognition_order(self) -> list[RecognitionConfig]:
        return [self.default_config, *self.alternate_configs]

    async def _run_cloud(
        self, cloud: SpeechBackend, audio: bytes, attempts: list[TranscriptionAttempt]
    ) -> str | None:
        for config in self.recognition_order():
            attempt = TranscriptionAttempt(backend=cloud.name, config=config)
            attempts.append(attempt)
            try:
                attempt.transcript = (await cloud.recognize(audio, config)).strip()
            except Exception as exc:
                attempt.error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "Cloud transcription failed with %s: %s", config.label(), attempt.error
                )
                continue
            if attempt.success:
                logger.info("Cloud transcription succeeded with %s", config.label())
                return attempt.transcript
            attempt.error = "no transcript returned"
            logger.info("Cloud transcription returned nothing with %s", config.label())
        return None

    async def _run_local(
        self, local: LocalTranscriber, file_path: Path, attempts: list[TranscriptionAttempt]
    ) -> str | None:
        attempt = TranscriptionAttempt(backend=local.name)
        attempts.append(attempt)
        try:
            attempt.transcript = (await local.transcribe(file_path)).strip()
        except Exception as exc:
            attempt.error = f"{type(exc).__name__}: {exc}"
            logger.warning("Local transcription failed: %s", attempt.error)
            return None
        if not attempt.success:
            attempt.error = "no transcript returned"
            return None
        return attempt.transcript

    async def transcribe(self, audio_path: str | Path) -> TranscriptionResult:
        file_path = Path(audio_path)
        if not file_path.is_file():
            return TranscriptionResult(
                success=False,
                error=f"audio file not found: {file_path}",
                error_kind=ErrorKind.NOT_FOUND,
            )

        attempts: list[TranscriptionAttempt] = []
        if self.cloud is not None:
            try:
                audio = await asyncio.to_thread(file_path.read_bytes)
            except OSError as exc:
                attempts.append(
                    TranscriptionAttempt(backend=self.cloud.name, error=f"read failed: {exc}")
                )
            else:
                transcript = await self._run_cloud(self.cloud, audio, attempts)
                if transcript:
                    return TranscriptionResult(
                        success=True,
                        transcription=transcript,
                        backend=self.cloud.name,
                        attempts=attempts,
                    )

        if self.local is not None and self.local.is_available():
            transcript = await self._run_local(self.local, file_path, attempts)
            if transcript:
                return TranscriptionResult(
                    success=True,
                    transcription=transcript,
                    backend=self.local.name,
                    attempts=attempts,
                )

        last_error = next((item.error for item in reversed(attempts) if item.error), None)
        if not attempts:
            error = "no transcription backend available"
        else:
            error = f"all transcription attempts failed ({len(attempts)} tried): {last_error}"
        return TranscriptionResult(
            success=False,
            error=error,
            error_kind=ErrorKind.TRANSCRIPTION_EXHAUSTED,
            attempts=attempts,
        )
