"""FastAPI entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbridge.chat.pipeline import ChatPipeline
from chatbridge.chat.stores import (
    InMemoryMessageStore,
    InMemoryTemplateStore,
    MessageStore,
    TemplateStore,
)
from chatbridge.config import get_settings, validate_settings_for_env
from chatbridge.logging import configure_logging
from chatbridge.prompts.defaults import default_templates
from chatbridge.providers.factory import build_gateway
from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.routes.api import router as api_router
from chatbridge.routes.health import router as health_router
from chatbridge.transcription.cascade import TranscriptionCascade
from chatbridge.transcription.factory import build_transcription_cascade

logger = logging.getLogger(__name__)


def create_app(
    *,
    gateway: AIProviderGateway | None = None,
    cascade: TranscriptionCascade | None = None,
    messages: MessageStore | None = None,
    templates: TemplateStore | None = None,
) -> FastAPI:
    """Build the app. Services left as None are built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        validate_settings_for_env(settings)
        configure_logging(settings.log_level)
        app.state.gateway = gateway if gateway is not None else build_gateway(settings)
        app.state.cascade = (
            cascade if cascade is not None else build_transcription_cascade(settings)
        )
        app.state.messages = messages if messages is not None else InMemoryMessageStore()
        app.state.templates = (
            templates if templates is not None else InMemoryTemplateStore(default_templates())
        )
        app.state.pipeline = ChatPipeline(
            app.state.gateway,
            app.state.cascade,
            messages=app.state.messages,
            templates=app.state.templates,
        )
        mode = await app.state.gateway.initialize()
        logger.info("AI gateway ready (mode=%s)", mode.value)
        yield

    app = FastAPI(title="Chatbridge AI Service", version="0.1.0", lifespan=lifespan)
    settings = get_settings()
    cors_origins = [item.strip() for item in settings.web_cors_origins.split(",") if item.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.include_router(health_router)
    app.include_router(api_router)
    return app


app = create_app()
