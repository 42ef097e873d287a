"""
Main entrypoint for the Microjob Marketplace API.

This module assembles the FastAPI application, sets up logging and
includes the API router.  ``create_app`` builds and configures the
app, which is then instantiated at module import time as ``app``, so
it can be served with uvicorn::

    uvicorn microjob_api.app.main:app --reload
"""

import logging
import sqlite3

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api.router import router as api_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Configures logging, mounts the API under ``/api``, registers the
    database error handler and applies migrations on startup.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(sqlite3.Error)
    async def database_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
        # The client only learns that something failed; details stay in the log.
        logging.getLogger(__name__).error(
            "Database error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        init_db()

    return app


app = create_app()
