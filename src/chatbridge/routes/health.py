"""Health and readiness routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chatbridge.providers.gateway import AIProviderGateway
from chatbridge.routes.deps import get_gateway

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/readyz")
async def readyz(
    gateway: AIProviderGateway = Depends(get_gateway),  # noqa: B008
) -> JSONResponse:
    status = gateway.get_status()
    ok = bool(status["available"])
    return JSONResponse(
        status_code=200 if ok else 503,
        content={"ok": ok, "status": "healthy" if ok else "unavailable", "data": status},
    )
