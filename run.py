"""Entry point for the Microjob Marketplace API.

Starts the FastAPI application with Uvicorn.  Host and port are read
from the ``HOST`` and ``PORT`` environment variables (defaults
``0.0.0.0`` and ``8000``); see ``microjob_api/app/core/config.py`` for
the remaining settings.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from microjob_api.app.core.config import settings
from microjob_api.app.main import app


async def run_api() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("API stopped")
