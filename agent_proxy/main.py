"""Main application entry point"""

import uvicorn

from .api.app import create_app
from .core import load_config, validate_config
from .utils import setup_logging, logger

ENDPOINTS = [
    "/v1/chat/completions",
    "/v1/models",
    "/api/chat",
    "/api/tags",
    "/health",
]


def main():
    """Run the application"""
    config = load_config()
    validate_config(config)
    setup_logging(config.server.log_level)

    app = create_app(config)

    logger.info(
        "Agent proxy listening",
        host=config.server.host,
        port=config.server.port,
        gateway=config.gateway.address,
        model=config.model.name,
        endpoints=ENDPOINTS,
    )

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
