"""
Health and status endpoints
"""
from typing import Any

from fastapi import APIRouter

from api.config.settings import get_settings
from api.dependencies import get_gateway_status

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """Health check endpoint"""
    return {"message": "MIAW Chat Gateway API", "status": "running"}


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Detailed health check"""
    status = get_gateway_status()
    is_ready = status.get("initialized", False)
    return {
        "status": "healthy" if is_ready else "not_ready",
        "gateway_ready": is_ready,
        "configured": get_settings().messaging_configured,
        "active_sessions": status.get("active_sessions", 0),
        "details": status,
    }
