"""API v1 router aggregation."""

from fastapi import APIRouter

from chatbridge.routes.api import ai, chat

router = APIRouter(prefix="/api/v1", tags=["api"])
router.include_router(ai.router)
router.include_router(chat.router)
