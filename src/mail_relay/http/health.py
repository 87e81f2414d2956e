"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe endpoint.

    Returns 200 OK if the process is running.
    """
    return {"status": "ok", "check": "liveness"}


@router.get("/ready")
async def readiness() -> dict[str, str]:
    """Readiness probe endpoint.

    The relay holds no connections between requests, so it is ready as
    soon as it serves HTTP.
    """
    return {"status": "ok", "check": "readiness"}
