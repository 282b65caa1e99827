"""
FastAPI application setup.
"""

from fastapi import FastAPI

from core.approval import ApprovalBroker

from .event_bus import SSEEventBus
from .routes import register_routes


# =============================================================================
# Constants
# =============================================================================

API_TITLE = "Approval Server"
API_VERSION = "1.0.0"


# =============================================================================
# FastAPI App
# =============================================================================


def create_app(broker: ApprovalBroker, event_bus: SSEEventBus) -> FastAPI:
    """
    Build the approval server application.

    Args:
        broker: Broker holding pending approval requests
        event_bus: Bus the broker publishes to, streamed on ``/events``

    Returns:
        The configured FastAPI application
    """
    app = FastAPI(title=API_TITLE, version=API_VERSION)
    app.state.broker = broker
    app.state.event_bus = event_bus
    register_routes(app)
    return app
