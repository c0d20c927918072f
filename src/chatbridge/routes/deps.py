"""Request-scoped accessors for the services built in the app lifespan."""

from fastapi import Request

from chatbridge.chat.pipeline import ChatPipeline
from chatbridge.chat.stores import MessageStore
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.transcription.cascade import TranscriptionCascade


def get_gateway(request: Request) -> AIProviderGateway:
    return request.app.state.gateway


def get_cascade(request: Request) -> TranscriptionCascade:
    return request.app.state.cascade


def get_message_store(request: Request) -> MessageStore:
    return request.app.state.messages


def get_pipeline(request: Request) -> ChatPipeline:
    return request.app.state.pipeline
