"""Chat session message route: store the user's message and the AI reply."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from chatbridge.chat.pipeline import ChatPipeline
from chatbridge.chat.stores import StoredMessage
from chatbridge.routes.deps import get_pipeline

router = APIRouter(prefix="/sessions", tags=["api-chat"])


class SendMessageInput(BaseModel):
    content: str = ""
    image_path: str | None = None
    voice_path: str | None = None
    template_id: str | None = None


def _message_payload(message: StoredMessage) -> dict[str, object]:
    return {
        "id": message.id,
        "session_id": message.session_id,
        "content": message.content,
        "is_user_message": message.is_user_message,
        "message_type": message.message_type,
        "metadata": message.metadata,
        "created_at": message.created_at.isoformat(),
    }


@router.post("/{session_id}/messages", status_code=201)
async def send_message(
    session_id: str,
    body: SendMessageInput,
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> dict[str, object]:
    try:
        reply = await pipeline.send_message(
            session_id,
            body.content,
            image_path=body.image_path,
            voice_path=body.voice_path,
            template_id=body.template_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "success": True,
        "data": {
            "user_message": _message_payload(reply.user_message),
            "ai_message": _message_payload(reply.assistant_message),
            "ai_available": reply.result.success,
        },
    }
