"""Endpoints de health check (liveness e readiness)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings.base import DEFAULT_SERVICE_NAME

if TYPE_CHECKING:
    from app.protocols import UpdateReceiverProtocol

router = APIRouter()


class HealthResponse(BaseModel):
    """Resposta do health check."""

    status: str
    service: str
    timestamp: str
    version: str = "1.0.0"


@dataclass(frozen=True, slots=True)
class ReceiverCheck:
    """Estado do receiver para o readiness."""

    status: Literal["ok", "failed"]
    mode: str | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"status": self.status, "mode": self.mode, "error": self.error}


def _is_shutting_down(request: Request) -> bool:
    return bool(getattr(request.app.state, "shutting_down", False))


def _service_name(request: Request) -> str:
    return getattr(request.app.state, "service_name", DEFAULT_SERVICE_NAME)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse | JSONResponse:
    """Liveness: 503 durante o drain de shutdown."""
    response = HealthResponse(
        status="shutting_down" if _is_shutting_down(request) else "healthy",
        service=_service_name(request),
        timestamp=datetime.now(UTC).isoformat(),
    )
    if _is_shutting_down(request):
        return JSONResponse(content=response.model_dump(), status_code=503)
    return response


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness: receiver saudável e fora de shutdown."""
    receiver_check = _check_receiver(getattr(request.app.state, "receiver", None))
    shutting_down = _is_shutting_down(request)
    ready = receiver_check.status == "ok" and not shutting_down

    payload = {
        "status": "ready" if ready else "not_ready",
        "shutting_down": shutting_down,
        "checks": {"receiver": receiver_check.as_dict()},
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return JSONResponse(content=payload, status_code=200 if ready else 503)


def _check_receiver(receiver: UpdateReceiverProtocol | None) -> ReceiverCheck:
    if receiver is None:
        return ReceiverCheck(status="failed", error="not_configured")
    mode = getattr(receiver, "mode", None)
    if not receiver.is_healthy():
        return ReceiverCheck(status="failed", mode=mode, error="unhealthy")
    return ReceiverCheck(status="ok", mode=mode)
