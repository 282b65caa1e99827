"""Notification channel contract and helpers shared by channel implementations."""

import json
import logging
from typing import Any, Callable, Protocol

from core.permissions import ApprovalDecision, ApprovalRequest, Decision

logger = logging.getLogger(__name__)

# Called by a channel to deliver a human decision; returns False when the
# request is no longer pending.
Resolver = Callable[[str, ApprovalDecision], bool]

# The single input field a reviewer may edit, per tool
EDITABLE_FIELDS = {
    "Bash": "command",
    "Read": "file_path",
    "Write": "file_path",
    "Edit": "file_path",
    "WebFetch": "url",
}

EDITABLE_LABELS = {
    "command": "Command",
    "file_path": "File Path",
    "url": "URL",
}


class NotificationChannel(Protocol):
    """Presents approval requests to a human and reports decisions back."""

    name: str

    async def start(self) -> None:
        """Connect to the medium and validate configuration."""
        ...

    def bind(self, resolver: Resolver) -> None:
        """Register the callback that receives decisions."""
        ...

    async def notify(self, request: ApprovalRequest) -> None:
        """
        Present a request to a reviewer.

        Raises:
            ChannelDeliveryError: If the request could not be delivered
        """
        ...

    def dismiss(self, request_id: str) -> None:
        """The request was settled elsewhere (timeout, shutdown, disconnect)."""
        ...

    async def aclose(self) -> None:
        """Release any resources held by the channel."""
        ...


class BaseChannel:
    """
    Bookkeeping shared by channel implementations.

    Tracks which requests this channel has presented and makes sure each of
    them is decided at most once.
    """

    name = "base"

    def __init__(self) -> None:
        self._resolver: Resolver | None = None
        self._open: dict[str, ApprovalRequest] = {}

    def bind(self, resolver: Resolver) -> None:
        self._resolver = resolver

    async def start(self) -> None:
        pass

    def track(self, request: ApprovalRequest) -> None:
        self._open[request.request_id] = request

    def get_request(self, request_id: str) -> ApprovalRequest | None:
        return self._open.get(request_id)

    def dismiss(self, request_id: str) -> None:
        """Drop state for a request the broker no longer tracks."""
        self._open.pop(request_id, None)

    def decide(self, request_id: str, decision: ApprovalDecision) -> bool:
        """
        Deliver a decision for a request presented by this channel.

        Returns:
            True if the broker accepted the decision
        """
        if self._open.pop(request_id, None) is None:
            logger.warning("[%s] Ignoring decision for unknown request: %s", self.name, request_id)
            return False
        if self._resolver is None:
            logger.error("[%s] No resolver bound, dropping decision for %s", self.name, request_id)
            return False

        accepted = self._resolver(request_id, decision)
        if not accepted:
            logger.warning(
                "[%s] Could not respond to request %s - client may have disconnected",
                self.name,
                request_id,
            )
        return accepted

    async def aclose(self) -> None:
        self._open.clear()


def editable_value(tool_name: str, tool_input: dict[str, Any]) -> tuple[str, str]:
    """
    The label and current value a reviewer edits for this tool.

    Tools without a single editable field expose their whole input as JSON.
    """
    field = EDITABLE_FIELDS.get(tool_name)
    if field is None:
        return "Input (JSON)", json.dumps(tool_input, indent=2)
    value = tool_input.get(field)
    return EDITABLE_LABELS[field], "" if value is None else str(value)


def build_edited_input(
    tool_name: str, tool_input: dict[str, Any], edited: str
) -> dict[str, Any]:
    """
    Apply a reviewer's edit to a tool input.

    Replaces exactly one field (``command`` for Bash, ``file_path`` for
    Read/Write/Edit, ``url`` for WebFetch) and keeps every other field. For
    other tools ``edited`` is parsed as a JSON object replacing the whole
    input; if it doesn't parse the original input is kept.
    """
    field = EDITABLE_FIELDS.get(tool_name)
    if field is not None:
        return {**tool_input, field: edited}

    try:
        parsed = json.loads(edited)
    except json.JSONDecodeError:
        logger.warning("Edited input for %s is not valid JSON, keeping original", tool_name)
        return dict(tool_input)
    if not isinstance(parsed, dict):
        logger.warning("Edited input for %s is not a JSON object, keeping original", tool_name)
        return dict(tool_input)
    return parsed


def approve(request_id: str, updated_input: dict[str, Any] | None = None) -> ApprovalDecision:
    return ApprovalDecision(request_id=request_id, decision=Decision.ALLOW, updated_input=updated_input)


def deny(request_id: str, reason: str | None = None) -> ApprovalDecision:
    return ApprovalDecision(request_id=request_id, decision=Decision.DENY, message=reason or None)


def ask(request_id: str, message: str) -> ApprovalDecision:
    return ApprovalDecision(request_id=request_id, decision=Decision.ASK, message=message)


def describe_invocation(tool_name: str, tool_input: dict[str, Any]) -> str:
    """One-line summary of a tool call for logs and notifications."""
    if tool_name == "Bash":
        return f"Bash: `{tool_input.get('command') or '(empty)'}`"
    if tool_name in ("Edit", "Write", "Read"):
        return f"{tool_name}: `{tool_input.get('file_path') or '(unknown)'}`"
    if tool_name == "WebFetch":
        return f"WebFetch: `{tool_input.get('url') or '(unknown)'}`"
    if tool_name == "Task":
        return f"Task: {tool_input.get('description') or '(no description)'}"
    return f"{tool_name}: {json.dumps(tool_input)[:100]}"
