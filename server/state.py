"""
Server-side state access.

The broker, channel and event bus are created by ``create_app``'s caller and
stored on ``app.state``; routes reach them through these dependencies.
"""

from fastapi import HTTPException
from fastapi.requests import HTTPConnection

from core.approval import ApprovalBroker, NotificationChannel

from .event_bus import SSEEventBus


def get_broker(connection: HTTPConnection) -> ApprovalBroker:
    """Get the broker owned by this app."""
    broker = getattr(connection.app.state, "broker", None)
    if broker is None:
        raise HTTPException(status_code=500, detail="Approval broker not initialized")
    return broker


def get_channel(connection: HTTPConnection) -> NotificationChannel:
    """Get the notification channel the broker presents requests on."""
    return get_broker(connection).channel


def get_event_bus(connection: HTTPConnection) -> SSEEventBus:
    """Get the event bus feeding ``/events``."""
    bus = getattr(connection.app.state, "event_bus", None)
    if bus is None:
        raise HTTPException(status_code=500, detail="Event bus not initialized")
    return bus
