"""
Approval events.

The broker publishes one event when a request starts waiting and one when it
is settled. Anything implementing ``EventBus`` can receive them; the server's
SSE bus streams them on ``/events`` for dashboards and tray apps.
"""

from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field

from .utils import now_ms

if TYPE_CHECKING:
    from core.permissions import ApprovalDecision, ApprovalRequest


APPROVAL_REQUESTED = "approval.requested"
APPROVAL_RESOLVED = "approval.resolved"


class Event(BaseModel):
    """Something that happened to an approval request."""

    type: str
    properties: dict[str, Any]
    timestamp: int = Field(default_factory=now_ms)


def approval_requested(request: "ApprovalRequest", timeout: float) -> Event:
    return Event(
        type=APPROVAL_REQUESTED,
        properties={"request": request.model_dump(mode="json"), "timeout": timeout},
    )


def approval_resolved(decision: "ApprovalDecision", waited_ms: int) -> Event:
    """Settled request; ``waited_ms`` is the time the caller spent waiting."""
    return Event(
        type=APPROVAL_RESOLVED,
        properties={"decision": decision.model_dump(mode="json"), "waited_ms": waited_ms},
    )


class EventBus(Protocol):
    """Receives approval events."""

    async def publish(self, event: Event) -> None:
        ...


class NullEventBus:
    """Discards events; used when nobody is listening."""

    async def publish(self, event: Event) -> None:
        pass
