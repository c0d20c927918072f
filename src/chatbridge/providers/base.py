"""Provider contracts and the request/result value objects."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Protocol

from chatbridge.errors import ErrorKind


class ContentKind(StrEnum):
    TEXT = "text"
    IMAGE_CAPTION = "image_caption"
    IMAGE_QA = "image_qa"
    STREAM = "stream"


class ProviderKind(StrEnum):
    CLOUD_TEXT = "cloud-text"
    CLOUD_MULTIMODAL = "cloud-multimodal"
    LOCAL_TEXT = "local-text"
    LOCAL_VISION = "local-vision"


@dataclass(frozen=True, slots=True)
class Turn:
    role: str
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class ImagePayload:
    data: bytes
    mime_type: str = "image/jpeg"


@dataclass(frozen=True, slots=True)
class GenerationParams:
    temperature: float = 0.7
    max_tokens: int | None = None


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    prompt: str
    image: ImagePayload | None = None
    context: tuple[Turn, ...] = ()
    params: GenerationParams = field(default_factory=GenerationParams)

    def __post_init__(self) -> None:
        if not isinstance(self.prompt, str):
            raise TypeError("prompt must be a string")
        if not isinstance(self.context, tuple):
            object.__setattr__(self, "context", tuple(self.context))

    def with_image(self, image: ImagePayload) -> "GenerationRequest":
        return replace(self, image=image)

    def messages(self) -> list[dict[str, str]]:
        """Prior turns followed by the prompt as the final user message."""
        out = [turn.as_message() for turn in self.context]
        out.append({"role": "user", "content": self.prompt})
        return out


@dataclass(frozen=True, slots=True)
class GenerationResult:
    success: bool
    content: str
    model: str
    kind: ContentKind
    error: str | None = None
    error_kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "content": self.content,
            "model": self.model,
            "type": self.kind.value,
        }
        if not self.success:
            payload["error"] = self.error
            payload["error_kind"] = self.error_kind.value if self.error_kind else None
        return payload


@dataclass(slots=True)
class ProviderDescriptor:
    kind: ProviderKind
    model: str
    available: bool = False
    priority: int = 0
    reason: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "model": self.model,
            "available": self.available,
            "priority": self.priority,
            "reason": self.reason,
        }


class ModelProvider(Protocol):
    name: str
    supports_streaming: bool

    def text_model(self) -> str: ...

    def vision_model(self) -> str: ...

    async def generate_text(self, request: GenerationRequest) -> str: ...

    async def generate_multimodal(self, request: GenerationRequest) -> str: ...

    def stream_text(self, request: GenerationRequest) -> AsyncIterator[str]: ...
