"""
Route registration for the approval server.
"""

from fastapi import FastAPI

from . import approvals, discord, events, health, ws


def register_routes(app: FastAPI) -> None:
    """Register all routes with the FastAPI application."""
    app.include_router(health.router)
    app.include_router(approvals.router)
    app.include_router(events.router)
    app.include_router(discord.router)
    app.include_router(ws.router)
