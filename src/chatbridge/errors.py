"""Chatbridge exception hierarchy.

All chatbridge-specific exceptions inherit from ChatBridgeError. Provider
adapters raise them; the gateway and the transcription cascade catch them at
their boundary and turn them into result objects.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    TRANSCRIPTION_EXHAUSTED = "transcription_exhausted"


class ChatBridgeError(Exception):
    """Base exception for all chatbridge errors."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ProviderError(ChatBridgeError):
    """Error communicating with a model provider."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class ProviderTimeoutError(ProviderError):
    """Provider call exceeded its timeout."""

    kind = ErrorKind.TIMEOUT


class ProviderUnavailableError(ChatBridgeError):
    """No provider is reachable or configured for the request."""

    kind = ErrorKind.UNAVAILABLE


class MediaNotFoundError(ChatBridgeError):
    """Referenced image or audio file does not exist on disk."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, path: str) -> None:
        super().__init__(f"file not found: {path}")
        self.path = path


class TranscriptionError(ChatBridgeError):
    """Raised when a transcription backend cannot produce a transcript."""

    kind = ErrorKind.TRANSCRIPTION_EXHAUSTED

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigError(ChatBridgeError, ValueError):
    """Invalid or missing configuration."""


def error_kind_of(exc: BaseException) -> ErrorKind:
    if isinstance(exc, ChatBridgeError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.PROVIDER_ERROR
