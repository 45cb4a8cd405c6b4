"""FastAPI application setup"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core import GatewayClient, load_config, validate_config
from ..models.config import AppConfig
from ..utils import logger
from .dispatcher import PreflightMiddleware, http_exception_handler
from .endpoints import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    config: AppConfig = app.state.config
    logger.info(
        "Agent proxy started",
        host=config.server.host,
        port=config.server.port,
        gateway=config.gateway.address,
        model=config.model.name,
    )

    yield

    # Close gateway HTTP client
    await app.state.gateway.close()

    logger.info("Agent proxy stopped")


def create_app(
    config: Optional[AppConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application

    Args:
        config: Configuration; loaded and validated from disk/env when omitted
        transport: Optional httpx transport for the gateway client

    Returns:
        Configured FastAPI app
    """
    if config is None:
        config = load_config()
        validate_config(config)

    app = FastAPI(
        title="Agent Proxy",
        description="OpenAI and Ollama compatible endpoints backed by an agent gateway",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.gateway = GatewayClient(config.gateway, transport=transport)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    # Added last so it runs first
    app.add_middleware(PreflightMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.include_router(router)

    return app
