"""
Approval broker and notification channel contract.

Escalated tool calls wait in the broker until a notification channel reports a
human decision, the request times out, or the broker shuts down.
"""

from .broker import (
    DEFAULT_TIMEOUT_SECONDS,
    SHUTDOWN_MESSAGE,
    TIMEOUT_MESSAGE,
    ApprovalBroker,
    PendingEntry,
)
from .channel import (
    EDITABLE_FIELDS,
    BaseChannel,
    NotificationChannel,
    Resolver,
    approve,
    ask,
    build_edited_input,
    deny,
    describe_invocation,
    editable_value,
)
from .manual import ManualChannel
from .messages import ApprovalRequestMessage, ApprovalResponseMessage, parse_response

__all__ = [
    # Broker
    "ApprovalBroker",
    "PendingEntry",
    "DEFAULT_TIMEOUT_SECONDS",
    "TIMEOUT_MESSAGE",
    "SHUTDOWN_MESSAGE",
    # Channel contract
    "NotificationChannel",
    "BaseChannel",
    "ManualChannel",
    "Resolver",
    "EDITABLE_FIELDS",
    "editable_value",
    "build_edited_input",
    "describe_invocation",
    # Decision helpers
    "approve",
    "deny",
    "ask",
    # Wire messages
    "ApprovalRequestMessage",
    "ApprovalResponseMessage",
    "parse_response",
]
