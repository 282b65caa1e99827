"""
Approval server.

Hosts the broker behind a WebSocket endpoint for hook callers, plus HTTP
routes for health, manual decisions, the event stream and Discord
interactions.
"""

from .app import create_app
from .event_bus import SSEEventBus
from .runner import ApprovalServer

__all__ = ["create_app", "ApprovalServer", "SSEEventBus"]
