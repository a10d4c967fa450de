"""Health check and server clock endpoints."""

from fastapi import APIRouter

from lobbytracker import __version__
from lobbytracker.clock import now_millis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Return API health status and version."""
    return {
        "status": "ok",
        "version": __version__,
    }


@router.get("/ts")
async def server_timestamp() -> dict:
    """Server time in epoch milliseconds, the unit of snapshot timestamps."""
    return {"ts": now_millis()}
