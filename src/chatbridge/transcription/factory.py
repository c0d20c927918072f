"""Transcription cascade construction from settings."""

from chatbridge.config import Settings
from chatbridge.transcription.cascade import TranscriptionCascade
from chatbridge.transcription.google_speech import GoogleSpeechBackend
from chatbridge.transcription.whisper_cli import WhisperCliTranscriber


def build_transcription_cascade(settings: Settings) -> TranscriptionCascade:
    cloud = None
    if settings.google_speech_api_key.strip():
        cloud = GoogleSpeechBackend(
            settings.google_speech_api_key.strip(),
            language=settings.speech_language,
            timeout_seconds=settings.speech_timeout_seconds,
        )
    local = None
    if settings.whisper_command.strip():
        local = WhisperCliTranscriber(
            command=settings.whisper_command.strip(),
            model=settings.whisper_model.strip() or "base",
            language=settings.speech_language,
            timeout_seconds=settings.whisper_timeout_seconds,
        )
    return TranscriptionCascade(cloud=cloud, local=local)
