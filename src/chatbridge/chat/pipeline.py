"""Chat message handling: transcription, context, templates and the AI reply."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from chatbridge.chat.stores import MessageStore, StoredMessage, TemplateStore
from chatbridge.logging import request_context
from chatbridge.providers.base import GenerationResult
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.transcription.cascade import TranscriptionCascade, TranscriptionResult

logger = logging.getLogger(__name__)

VOICE_PLACEHOLDER = "[Voice message - transcription unavailable]"


@dataclass(slots=True)
class ChatReply:
    user_message: StoredMessage
    assistant_message: StoredMessage
    result: GenerationResult
    transcription: TranscriptionResult | None = None


class ChatPipeline:
    def __init__(
        self,
        gateway: AIProviderGateway,
        cascade: TranscriptionCascade,
        *,
        messages: MessageStore,
        templates: TemplateStore,
    ) -> None:
        self.gateway = gateway
        self.cascade = cascade
        self.messages = messages
        self.templates = templates

    async def _resolve_template(self, template_id: str | None) -> str | None:
        if not template_id:
            return None
        template = await self.templates.find_template(template_id)
        if template is None:
            logger.warning("Prompt template %s not found; sending message untemplated", template_id)
            return None
        await self.templates.increment_usage(template_id)
        return template.template

    async def send_message(
        self,
        session_id: str,
        content: str = "",
        *,
        image_path: str | Path | None = None,
        voice_path: str | Path | None = None,
        template_id: str | None = None,
    ) -> ChatReply:
        """Store the user's message, ask the gateway, store and return the reply.

        Voice-only input is transcribed first. When transcription fails the
        stored user content is a placeholder and the exchange still goes on.
        Raises ValueError when there is nothing to send.
        """
        text = content.strip()
        if not text and not image_path and not voice_path:
            raise ValueError("message content is required")

        with request_context(session_id=session_id):
            message_type = "text"
            transcription: TranscriptionResult | None = None
            if image_path:
                message_type = "image"
            elif voice_path:
                message_type = "voice"
            if voice_path and not text:
                transcription = await self.cascade.transcribe(voice_path)
                if transcription.success and transcription.transcription:
                    text = transcription.transcription
                else:
                    logger.warning("Voice transcription failed: %s", transcription.error)
                    text = VOICE_PLACEHOLDER

            recent = await self.messages.find_recent_messages(
                session_id, self.gateway.composer.context_limit
            )
            context = self.gateway.composer.build_context(recent)

            user_metadata: dict[str, object] = {}
            if transcription is not None:
                user_metadata["transcription"] = transcription.to_dict()
            if template_id:
                user_metadata["template_id"] = template_id
            user_message = await self.messages.save_message(
                StoredMessage(
                    session_id=session_id,
                    content=text,
                    is_user_message=True,
                    message_type=message_type,
                    metadata=user_metadata,
                )
            )

            template_text = await self._resolve_template(template_id)
            started = time.monotonic()
            result = await self.gateway.generate_templated(text, template_text, image_path, context)
            processing_time_ms = int((time.monotonic() - started) * 1000)
            if not result.success:
                logger.warning("AI reply unavailable: %s", result.error)

            assistant_message = await self.messages.save_message(
                StoredMessage(
                    session_id=session_id,
                    content=result.content,
                    is_user_message=False,
                    metadata={
                        "ai_model": result.model,
                        "processing_time_ms": processing_time_ms if result.success else 0,
                        "type": result.kind.value,
                    },
                )
            )
        return ChatReply(
            user_message=user_message,
            assistant_message=assistant_message,
            result=result,
            transcription=transcription,
        )
