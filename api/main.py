"""FastAPI Chat Gateway - Main Application
REST façade over the same operations the MCP server exposes as tools
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config.logging import configure_structured_logging, get_logger
from api.config.settings import get_settings
from api.lifecycle import lifespan
from api.routers.conversations import router as conversations_router
from api.routers.health import router as health_router
from gateway.exceptions import (
    ConfigurationError,
    GatewayBaseError,
    InvalidSessionError,
    MessageValidationError,
    RemoteServiceError,
)
from gateway.utils import mask_sensitive_keys

# Configure structured logging
settings = get_settings()
configure_structured_logging(
    level=settings.log_level,
    format_json=settings.log_format_json
)
logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[type[GatewayBaseError], int] = {
    InvalidSessionError: 401,
    MessageValidationError: 422,
    RemoteServiceError: 502,
    ConfigurationError: 503,
}

# Create FastAPI app with lifespan management
app = FastAPI(
    title="MIAW Chat Gateway API",
    description="Agent-facing gateway to a messaging-for-web chat service",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware for web frontends
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_code_for(exc: GatewayBaseError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_class):
            return status_code
    return 500


@app.exception_handler(GatewayBaseError)
async def gateway_error_handler(request: Request, exc: GatewayBaseError) -> JSONResponse:
    status_code = status_code_for(exc)
    body = {"error": True, **mask_sensitive_keys(exc.to_dict())}
    logger.warning(
        "Request failed",
        path=request.url.path,
        status_code=status_code,
        error_type=body["error_type"],
        error_code=exc.error_code,
    )
    return JSONResponse(status_code=status_code, content=body)


# Include routers
app.include_router(health_router)
app.include_router(conversations_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
