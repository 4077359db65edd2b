from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from liveboard.api.dependencies import get_container
from liveboard.core.container import ServiceContainer
from liveboard.core.errors import UpstreamUnavailableError

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers; touches no dependencies."""

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> JSONResponse:
    """Readiness check: verifies the backing store answers a ping.

    Returns 503 with ``status: unavailable`` when the store is down.
    """
    try:
        await container.store.ping()
    except UpstreamUnavailableError:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "store": container.store.backend_name},
        )

    return JSONResponse(
        content={
            "status": "ok",
            "store": container.store.backend_name,
            "events": container.bus.backend_name,
            "open_streams": container.streams.active_count,
        }
    )
