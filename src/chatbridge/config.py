"""Application configuration contract."""

import logging
import warnings
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatbridge.errors import ConfigError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    # Security: bind host defaults to loopback
    bind_host: str = Field(alias="BIND_HOST", default="127.0.0.1")
    bind_port: int = Field(alias="BIND_PORT", default=8000)
    web_cors_origins: str = Field(alias="WEB_CORS_ORIGINS", default="http://localhost:8081")

    use_cloud_ai: int = Field(alias="USE_CLOUD_AI", default=1)
    gemini_api_key: str = Field(alias="GEMINI_API_KEY", default="")
    gemini_model: str = Field(alias="GEMINI_MODEL", default="gemini-1.5-flash")
    gemini_base_url: str = Field(
        alias="GEMINI_BASE_URL", default="https://generativelanguage.googleapis.com/v1beta"
    )

    ollama_base_url: str = Field(alias="OLLAMA_BASE_URL", default="http://localhost:11434")
    ollama_text_model: str = Field(alias="OLLAMA_TEXT_MODEL", default="llama3.2")
    ollama_vision_model: str = Field(alias="OLLAMA_VISION_MODEL", default="llava:7b")

    probe_timeout_seconds: float = Field(alias="PROBE_TIMEOUT_SECONDS", default=5.0)
    text_timeout_seconds: float = Field(alias="TEXT_TIMEOUT_SECONDS", default=30.0)
    vision_timeout_seconds: float = Field(alias="VISION_TIMEOUT_SECONDS", default=90.0)
    stream_timeout_seconds: float = Field(alias="STREAM_TIMEOUT_SECONDS", default=60.0)
    speech_timeout_seconds: float = Field(alias="SPEECH_TIMEOUT_SECONDS", default=30.0)
    whisper_timeout_seconds: float = Field(alias="WHISPER_TIMEOUT_SECONDS", default=60.0)

    text_temperature: float = Field(alias="TEXT_TEMPERATURE", default=0.7)
    text_max_tokens: int = Field(alias="TEXT_MAX_TOKENS", default=1000)
    vision_temperature: float = Field(alias="VISION_TEMPERATURE", default=0.5)
    vision_max_tokens: int = Field(alias="VISION_MAX_TOKENS", default=800)
    context_message_limit: int = Field(alias="CONTEXT_MESSAGE_LIMIT", default=10)

    google_speech_api_key: str = Field(alias="GOOGLE_SPEECH_API_KEY", default="")
    speech_language: str = Field(alias="SPEECH_LANGUAGE", default="en-US")
    whisper_command: str = Field(alias="WHISPER_COMMAND", default="whisper")
    whisper_model: str = Field(alias="WHISPER_MODEL", default="base")


def validate_settings_for_env(settings: Settings) -> None:
    if settings.app_env == "prod" and settings.bind_host == "0.0.0.0":
        msg = (
            "SECURITY WARNING: BIND_HOST=0.0.0.0 in production. "
            "This exposes the API to all network interfaces. "
            "Set BIND_HOST=127.0.0.1 and use a reverse proxy."
        )
        logger.warning(msg)
        warnings.warn(msg, stacklevel=2)

    if settings.app_env != "prod":
        return

    missing: list[str] = []
    required_non_empty = {
        "GEMINI_MODEL": settings.gemini_model,
        "OLLAMA_BASE_URL": settings.ollama_base_url,
        "OLLAMA_TEXT_MODEL": settings.ollama_text_model,
    }
    if int(settings.use_cloud_ai) == 1:
        required_non_empty["GEMINI_API_KEY"] = settings.gemini_api_key
    for key, value in required_non_empty.items():
        if not value.strip():
            missing.append(key)

    timeouts = {
        "PROBE_TIMEOUT_SECONDS": settings.probe_timeout_seconds,
        "TEXT_TIMEOUT_SECONDS": settings.text_timeout_seconds,
        "VISION_TIMEOUT_SECONDS": settings.vision_timeout_seconds,
        "STREAM_TIMEOUT_SECONDS": settings.stream_timeout_seconds,
        "SPEECH_TIMEOUT_SECONDS": settings.speech_timeout_seconds,
        "WHISPER_TIMEOUT_SECONDS": settings.whisper_timeout_seconds,
    }
    for key, value in timeouts.items():
        if value <= 0:
            missing.append(f"{key}(positive value required)")
    if settings.context_message_limit <= 0:
        missing.append("CONTEXT_MESSAGE_LIMIT(positive value required)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ConfigError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
