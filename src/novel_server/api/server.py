"""
FastAPI backend server for the novel platform.

This module builds the FastAPI application:
- CORS middleware configured from ``config.security``
- A handler turning storage failures into 500 responses
- All API route endpoints

Run with ``novel-server run`` or ``uvicorn novel_server.api.server:app``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from novel_server import __version__
from novel_server.api.routes import register_routes
from novel_server.config import config
from novel_server.db.errors import DatabaseError

logger = logging.getLogger(__name__)


async def _database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal database error"})


def create_app() -> FastAPI:
    """Build a fully wired application instance."""
    docs = config.docs_should_be_enabled
    app = FastAPI(
        title="Novel Server",
        version=__version__,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_origins,
        allow_credentials=config.security.cors_allow_credentials,
        allow_methods=config.security.cors_allow_methods,
        allow_headers=config.security.cors_allow_headers,
    )

    app.add_exception_handler(DatabaseError, _database_error_handler)
    register_routes(app)
    return app


app = create_app()


def start_server(host: str | None = None, port: int | None = None) -> None:
    """Serve ``app`` with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.logging.level.lower(),
    )
