"""
Core business logic package.

This package contains the transport-agnostic pieces of the approval gate: the
permission rule engine and the approval broker. The server package binds them
to WebSocket, HTTP and Discord.
"""

from .events import (
    APPROVAL_REQUESTED,
    APPROVAL_RESOLVED,
    Event,
    EventBus,
    NullEventBus,
    approval_requested,
    approval_resolved,
)
from .exceptions import ChannelDeliveryError, ConfigLoadError, CoreError, RuleParseError
from .utils import gen_id, now_ms

__all__ = [
    # Exceptions
    "CoreError",
    "ConfigLoadError",
    "RuleParseError",
    "ChannelDeliveryError",
    # Events
    "Event",
    "EventBus",
    "NullEventBus",
    "APPROVAL_REQUESTED",
    "APPROVAL_RESOLVED",
    "approval_requested",
    "approval_resolved",
    # Utils
    "gen_id",
    "now_ms",
]
