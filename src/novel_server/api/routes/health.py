"""Health and root endpoints.

Provides the root ``/`` endpoint (API identity and version) and the
``/health`` endpoint (liveness check including a database round-trip).
"""

from fastapi import APIRouter

from novel_server import __version__
from novel_server.db import database

router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    """Root endpoint showing API identity and current version."""
    return {"message": "Novel Server API", "version": __version__}


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    with database.connection_scope() as conn:
        conn.execute("SELECT 1").fetchone()
    return {"status": "ok"}
