"""Health check endpoints."""

from fastapi import APIRouter

from chatgraph import __version__
from chatgraph.kernel.time import utc_now

router = APIRouter()

_startup_time = utc_now()


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if the service is running.
    """
    return {
        "status": "healthy",
        "service": "chatgraph",
        "version": __version__,
        "timestamp": utc_now().isoformat(),
        "uptime_seconds": (utc_now() - _startup_time).total_seconds(),
    }
