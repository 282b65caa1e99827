"""WebSocket client that asks the approval server for a decision."""

import asyncio
import logging
import uuid

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from core.approval import ApprovalRequestMessage, ask, parse_response
from core.permissions import ApprovalDecision, ToolInvocation

logger = logging.getLogger(__name__)

CLOSED_MESSAGE = "Connection closed unexpectedly"
TIMEOUT_MESSAGE = "Request timed out"


async def _exchange(url: str, message: ApprovalRequestMessage) -> ApprovalDecision:
    async with websockets.connect(url) as ws:
        await ws.send(message.to_json())
        logger.debug("[Hook] Sent approval request %s", message.request_id)

        async for raw in ws:
            response = parse_response(raw)
            if response is None:
                logger.warning("[Hook] Ignoring unparsable message from server")
                continue
            if response.request_id != message.request_id:
                logger.debug("[Hook] Ignoring response for %s", response.request_id)
                continue
            return response.to_decision()

    return ask(message.request_id, CLOSED_MESSAGE)


async def request_approval(
    invocation: ToolInvocation, url: str, timeout: float
) -> ApprovalDecision:
    """
    Send one approval request and wait for the matching response.

    Never raises: connection failures, unexpected closes and timeouts come
    back as an ``ask`` decision carrying a diagnostic message.

    Args:
        invocation: The tool call to approve
        url: Approval server WebSocket URL
        timeout: Seconds to wait for a decision

    Returns:
        The server's decision, or ``ask`` when none arrived
    """
    request_id = str(uuid.uuid4())
    message = ApprovalRequestMessage.from_invocation(request_id, invocation)

    try:
        return await asyncio.wait_for(_exchange(url, message), timeout)
    except asyncio.TimeoutError:
        logger.error("[Hook] %s after %.1fs", TIMEOUT_MESSAGE, timeout)
        return ask(request_id, TIMEOUT_MESSAGE)
    except ConnectionClosed:
        logger.error("[Hook] %s", CLOSED_MESSAGE)
        return ask(request_id, CLOSED_MESSAGE)
    except (OSError, WebSocketException) as e:
        logger.error("[Hook] WebSocket error: %s", e)
        return ask(request_id, f"WebSocket error: {e}")
