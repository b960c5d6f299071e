"""
Route registration entry point for the FastAPI application.

Each concern lives in its own router module; ``register_routes`` wires them
onto an app.
"""

from fastapi import FastAPI

from novel_server.api.routes import catalog, coins, community, health, library, stats, users


def register_routes(app: FastAPI) -> None:
    """Register all API routes with the FastAPI app."""
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(catalog.router)
    app.include_router(community.router)
    app.include_router(coins.router)
    app.include_router(library.router)
    app.include_router(stats.router)
