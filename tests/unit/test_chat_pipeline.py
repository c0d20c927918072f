from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from chatbridge.chat.pipeline import VOICE_PLACEHOLDER, ChatPipeline
from chatbridge.chat.stores import InMemoryMessageStore, InMemoryTemplateStore, StoredMessage
from chatbridge.config import get_settings
from chatbridge.errors import ErrorKind
from chatbridge.prompts.composer import PromptComposer
from chatbridge.prompts.defaults import default_templates
from chatbridge.providers.base import ContentKind, GenerationRequest, ProviderKind, Turn
from chatbridge.providers.gateway import FALLBACK_RESPONSES, AIProviderGateway
from chatbridge.providers.state import ProviderState
from chatbridge.transcription.cascade import TranscriptionResult


class EchoProvider:
    name = "echo"
    supports_streaming = False

    def __init__(self) -> None:
        self.requests: list[GenerationRequest] = []

    def text_model(self) -> str:
        return "echo-text"

    def vision_model(self) -> str:
        return "echo-vision"

    async def generate_text(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        return f"echo: {request.prompt}"

    async def generate_multimodal(self, request: GenerationRequest) -> str:
        return await self.generate_text(request)

    async def stream_text(self, request: GenerationRequest):
        yield await self.generate_text(request)


class StubCascade:
    def __init__(self, result: TranscriptionResult) -> None:
        self.result = result
        self.paths: list[str] = []

    async def transcribe(self, audio_path) -> TranscriptionResult:
        self.paths.append(str(audio_path))
        return self.result


def _pipeline(
    provider: EchoProvider | None,
    *,
    cascade: StubCascade | None = None,
    context_limit: int = 10,
) -> tuple[ChatPipeline, InMemoryMessageStore, InMemoryTemplateStore]:
    state = ProviderState.from_settings(get_settings())
    if provider is not None:
        state.mark(ProviderKind.LOCAL_TEXT, available=True)
        state.mark(ProviderKind.LOCAL_VISION, available=True)
    state.select_mode()
    gateway = AIProviderGateway(
        state, local=provider, composer=PromptComposer(context_limit=context_limit)
    )
    messages = InMemoryMessageStore()
    templates = InMemoryTemplateStore(default_templates())
    pipeline = ChatPipeline(
        gateway,
        cascade or StubCascade(TranscriptionResult(success=False, error="unused")),
        messages=messages,
        templates=templates,
    )
    return pipeline, messages, templates


@pytest.mark.asyncio
async def test_send_message_stores_both_sides() -> None:
    provider = EchoProvider()
    pipeline, messages, _ = _pipeline(provider)

    reply = await pipeline.send_message("s1", "  hello  ")

    assert reply.user_message.content == "hello"
    assert reply.user_message.is_user_message is True
    assert reply.assistant_message.content == "echo: hello"
    assert reply.assistant_message.metadata["ai_model"] == "echo-text"
    assert reply.assistant_message.metadata["type"] == "text"
    assert reply.assistant_message.metadata["processing_time_ms"] >= 0
    stored = await messages.find_recent_messages("s1", 10)
    assert {item.content for item in stored} == {"echo: hello", "hello"}


@pytest.mark.asyncio
async def test_context_excludes_current_message_and_respects_limit() -> None:
    provider = EchoProvider()
    pipeline, messages, _ = _pipeline(provider, context_limit=2)
    earlier = datetime.now(UTC) - timedelta(hours=1)
    for index, text in enumerate(["q1", "a1", "q2"]):
        await messages.save_message(
            StoredMessage(
                session_id="s1",
                content=text,
                is_user_message=index % 2 == 0,
                created_at=earlier + timedelta(minutes=index),
            )
        )

    await pipeline.send_message("s1", "q3")

    request = provider.requests[0]
    assert request.context == (Turn("assistant", "a1"), Turn("user", "q2"))
    assert request.prompt == "q3"


@pytest.mark.asyncio
async def test_template_is_applied_and_usage_counted() -> None:
    provider = EchoProvider()
    pipeline, _, templates = _pipeline(provider)

    reply = await pipeline.send_message("s1", "black holes", template_id="sys-explain-like-five")

    template = await templates.find_template("sys-explain-like-five")
    assert template is not None
    assert template.usage_count == 1
    assert provider.requests[0].prompt.endswith("\n\nUser request: black holes")
    assert reply.user_message.content == "black holes"
    assert reply.user_message.metadata["template_id"] == "sys-explain-like-five"


@pytest.mark.asyncio
async def test_unknown_template_sends_plain_text() -> None:
    provider = EchoProvider()
    pipeline, _, _ = _pipeline(provider)
    await pipeline.send_message("s1", "plain", template_id="does-not-exist")
    assert provider.requests[0].prompt == "plain"


@pytest.mark.asyncio
async def test_voice_message_is_transcribed() -> None:
    provider = EchoProvider()
    cascade = StubCascade(
        TranscriptionResult(success=True, transcription="turn on the lights", backend="stub")
    )
    pipeline, _, _ = _pipeline(provider, cascade=cascade)

    reply = await pipeline.send_message("s1", voice_path="/tmp/voice.webm")

    assert cascade.paths == ["/tmp/voice.webm"]
    assert reply.user_message.content == "turn on the lights"
    assert reply.user_message.message_type == "voice"
    assert reply.user_message.metadata["transcription"]["backend"] == "stub"
    assert provider.requests[0].prompt == "turn on the lights"


@pytest.mark.asyncio
async def test_failed_transcription_uses_placeholder() -> None:
    provider = EchoProvider()
    cascade = StubCascade(
        TranscriptionResult(
            success=False,
            error="no transcription backend available",
            error_kind=ErrorKind.TRANSCRIPTION_EXHAUSTED,
        )
    )
    pipeline, _, _ = _pipeline(provider, cascade=cascade)

    reply = await pipeline.send_message("s1", voice_path="/tmp/voice.webm")

    assert reply.user_message.content == VOICE_PLACEHOLDER
    assert reply.transcription is not None
    assert reply.transcription.success is False
    assert reply.result.success is True


@pytest.mark.asyncio
async def test_unavailable_ai_stores_fallback_reply() -> None:
    pipeline, messages, _ = _pipeline(None)

    reply = await pipeline.send_message("s1", "anyone there?")

    assert reply.result.success is False
    assert reply.assistant_message.content == FALLBACK_RESPONSES[ContentKind.TEXT]
    assert reply.assistant_message.metadata["ai_model"] == "fallback"
    assert reply.assistant_message.metadata["processing_time_ms"] == 0
    assert len(await messages.find_recent_messages("s1", 10)) == 2


@pytest.mark.asyncio
async def test_image_message_goes_to_vision_model(tmp_path: Path) -> None:
    image = tmp_path / "cat.jpg"
    image.write_bytes(b"\xff\xd8\xff")
    provider = EchoProvider()
    pipeline, _, _ = _pipeline(provider)

    reply = await pipeline.send_message("s1", "", image_path=image)

    assert reply.user_message.message_type == "image"
    assert reply.result.kind is ContentKind.IMAGE_CAPTION
    assert reply.assistant_message.metadata["ai_model"] == "echo-vision"
    assert provider.requests[0].image is not None


@pytest.mark.asyncio
async def test_empty_message_is_rejected() -> None:
    pipeline, _, _ = _pipeline(EchoProvider())
    with pytest.raises(ValueError, match="content is required"):
        await pipeline.send_message("s1", "   ")
