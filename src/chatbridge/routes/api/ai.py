"""Direct AI endpoints: text, image caption, image Q&A, streaming, transcription, status."""

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from chatbridge.chat.stores import MessageStore
from chatbridge.errors import ErrorKind
from chatbridge.logging import request_context
from chatbridge.prompts.composer import build_context
from chatbridge.providers.base import GenerationResult, Turn
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.routes.deps import get_cascade, get_gateway, get_message_store
from chatbridge.transcription.cascade import TranscriptionCascade

router = APIRouter(prefix="/ai", tags=["api-ai"])

IMAGE_QA_CONTEXT_LIMIT = 5


class TextInput(BaseModel):
    message: str = Field(min_length=1)
    session_id: str | None = None


class CaptionInput(BaseModel):
    image_path: str = Field(min_length=1)
    custom_prompt: str | None = None


class ImageQuestionInput(BaseModel):
    image_path: str = Field(min_length=1)
    question: str = Field(min_length=1)
    session_id: str | None = None


class StreamInput(BaseModel):
    message: str = Field(min_length=1)
    image_path: str | None = None


class TranscribeInput(BaseModel):
    audio_path: str = Field(min_length=1)


def _unavailable(result: GenerationResult) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"success": False, "message": "AI service unavailable", "error": result.error},
    )


async def _session_context(
    store: MessageStore, session_id: str | None, limit: int
) -> list[Turn]:
    if not session_id:
        return []
    recent = await store.find_recent_messages(session_id, limit)
    return build_context(recent, limit)


@router.post("/text", response_model=None)
async def generate_text(
    body: TextInput,
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
    store: MessageStore = Depends(get_message_store),  # noqa: B008
) -> dict[str, object] | JSONResponse:
    with request_context(request_kind="text", session_id=body.session_id):
        context = await _session_context(store, body.session_id, gateway.composer.context_limit)
        result = await gateway.generate_text(body.message, context)
    if not result.success:
        return _unavailable(result)
    return {
        "success": True,
        "data": {"response": result.content, "model": result.model, "type": result.kind.value},
    }


@router.post("/caption", response_model=None)
async def generate_caption(
    body: CaptionInput,
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
) -> dict[str, object] | JSONResponse:
    with request_context(request_kind="caption"):
        result = await gateway.generate_multimodal(body.custom_prompt or "", body.image_path)
    if not result.success:
        if result.error_kind is ErrorKind.NOT_FOUND:
            return JSONResponse(
                status_code=404, content={"success": False, "message": result.content}
            )
        return _unavailable(result)
    return {
        "success": True,
        "data": {"caption": result.content, "model": result.model, "type": result.kind.value},
    }


@router.post("/image-qa", response_model=None)
async def answer_image_question(
    body: ImageQuestionInput,
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
    store: MessageStore = Depends(get_message_store),  # noqa: B008
) -> dict[str, object] | JSONResponse:
    with request_context(request_kind="image_qa", session_id=body.session_id):
        context = await _session_context(store, body.session_id, IMAGE_QA_CONTEXT_LIMIT)
        result = await gateway.generate_multimodal(body.question, body.image_path, context)
    if not result.success:
        if result.error_kind is ErrorKind.NOT_FOUND:
            return JSONResponse(
                status_code=404, content={"success": False, "message": result.content}
            )
        return _unavailable(result)
    return {
        "success": True,
        "data": {
            "answer": result.content,
            "question": body.question,
            "model": result.model,
            "type": result.kind.value,
        },
    }


@router.post("/stream")
async def stream_response(
    body: StreamInput,
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
) -> StreamingResponse:
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    async def produce() -> GenerationResult:
        try:
            with request_context(request_kind="stream"):
                return await gateway.stream_text(body.message, body.image_path, queue.put_nowait)
        finally:
            queue.put_nowait(None)

    async def chunks() -> AsyncIterator[str]:
        task = asyncio.create_task(produce())
        sent_any = False
        try:
            while True:
                chunk = await queue.get()
                if chunk is None:
                    break
                sent_any = True
                yield chunk
            result = await task
            if not result.success and not sent_any:
                yield result.content
        finally:
            # Client went away before the end of the stream.
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    return StreamingResponse(
        chunks(),
        media_type="text/plain",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/transcribe", response_model=None)
async def transcribe_audio(
    body: TranscribeInput,
    cascade: TranscriptionCascade = Depends(get_cascade),  # noqa: B008
) -> dict[str, object] | JSONResponse:
    with request_context(request_kind="transcribe"):
        result = await cascade.transcribe(body.audio_path)
    if result.success:
        return result.to_dict()
    status_code = 404 if result.error_kind is ErrorKind.NOT_FOUND else 503
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.get("/status")
async def ai_status(
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
) -> dict[str, object]:
    return {"success": True, "data": {"is_ready": gateway.is_ready(), **gateway.get_status()}}
