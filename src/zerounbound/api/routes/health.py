"""Health check endpoints."""

from fastapi import APIRouter, Request

from zerounbound import __version__
from zerounbound.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "zerounbound"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with session and configuration info."""
    settings = get_settings()
    session = getattr(request.app.state, "session", None)
    return {
        "status": "healthy",
        "service": "zerounbound",
        "version": __version__,
        "session": {
            "ready": bool(session and session.is_ready),
            "rpc_url": session.rpc_url if session else "",
        },
        "deploy_enabled": getattr(request.app.state, "pipeline", None) is not None,
        "config": settings.get_safe_dict(),
    }
