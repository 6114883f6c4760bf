"""API application lifecycle events.

Handles startup and shutdown for the gateway API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.config.settings import get_settings
from api.dependencies import get_gateway_internal, set_gateway
from gateway import ChatGateway
from gateway.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup
    logger.info("Starting chat gateway...")
    try:
        gateway = ChatGateway.from_settings(get_settings())
        set_gateway(gateway)
        logger.info("Chat gateway initialized successfully")
    except ConfigurationError as e:
        logger.error("Gateway configuration error: %s", e)
        raise

    yield

    # Shutdown
    logger.info("Shutting down chat gateway...")
    gateway = get_gateway_internal()
    if gateway:
        await gateway.cleanup()
        set_gateway(None)
    logger.info("Chat gateway shutdown complete")
