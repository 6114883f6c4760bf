"""API dependency injection utilities.

Provides FastAPI dependencies for the chat gateway and the caller's session id.
"""

import logging
from typing import Annotated, Any

from fastapi import Header, HTTPException

from gateway import ChatGateway
from gateway.exceptions import InvalidSessionError

logger = logging.getLogger(__name__)

# Global gateway - will be initialized in lifespan
_gateway: ChatGateway | None = None


def get_gateway() -> ChatGateway:
    """Dependency provider for ChatGateway instance."""
    if _gateway is None:
        raise HTTPException(
            status_code=503,
            detail="Gateway not initialized. Check the MIAW_* settings and restart.",
        )
    return _gateway


def get_session_id(
    x_session_id: Annotated[str | None, Header(alias="X-Session-Id")] = None,
) -> str:
    """Dependency provider for the opaque session id header."""
    if not x_session_id:
        msg = "Missing X-Session-Id header"
        raise InvalidSessionError(msg, error_code="SESSION_ID_MISSING")
    return x_session_id


def get_optional_session_id(
    x_session_id: Annotated[str | None, Header(alias="X-Session-Id")] = None,
) -> str:
    """Session id header for best-effort routes; empty when absent."""
    return x_session_id or ""


def get_gateway_status() -> dict[str, Any]:
    """Get gateway status for health checks."""
    if _gateway is None:
        return {"status": "not_initialized"}
    return _gateway.get_status()


# Functions for lifecycle management
def set_gateway(gateway: ChatGateway | None) -> None:
    """Set gateway instance during startup."""
    global _gateway
    _gateway = gateway


def get_gateway_internal() -> ChatGateway | None:
    """Get gateway instance (can be None)."""
    return _gateway
