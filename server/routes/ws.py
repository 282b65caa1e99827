"""
WebSocket endpoint for hook clients.

Each connection may carry any number of concurrent ``approval_request``
messages. Each request is submitted to the broker in its own task; the answer
goes back as an ``approval_response`` echoing the client's ``requestId``. When
the connection drops, its outstanding requests are withdrawn from the broker.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from core.approval import (
    ApprovalBroker,
    ApprovalRequestMessage,
    ApprovalResponseMessage,
    ask,
    describe_invocation,
)

from ..state import get_broker

logger = logging.getLogger(__name__)

router = APIRouter()


class CallerConnection:
    """One hook client connection and the requests it is waiting on."""

    def __init__(self, websocket: WebSocket, broker: ApprovalBroker):
        self.websocket = websocket
        self.broker = broker
        self._tasks: set[asyncio.Task] = set()
        self._send_lock = asyncio.Lock()

    async def run(self) -> None:
        """Read messages until the client goes away."""
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                if raw:
                    self._dispatch(raw)
        except WebSocketDisconnect:
            pass
        finally:
            logger.info("[WebSocket] Client disconnected")
            await self._abandon()

    def _dispatch(self, raw: str) -> None:
        try:
            request = ApprovalRequestMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("[WebSocket] Ignoring invalid message: %s", e.errors()[0].get("msg"))
            return

        task = asyncio.create_task(self._handle(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, request: ApprovalRequestMessage) -> None:
        logger.info(
            "[WebSocket] Received approval request %s: %s",
            request.request_id,
            describe_invocation(request.tool_name, request.tool_input),
        )
        try:
            decision = await self.broker.submit(request.to_invocation())
        except Exception as e:
            logger.exception("[WebSocket] Approval request %s failed", request.request_id)
            decision = ask(request.request_id, f"Server error: {e}")
        response = ApprovalResponseMessage.from_decision(request.request_id, decision)
        await self._send(response)

    async def _send(self, response: ApprovalResponseMessage) -> None:
        async with self._send_lock:
            try:
                await self.websocket.send_text(response.to_json())
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.error("[WebSocket] Cannot send response for %s: %s", response.request_id, e)
                return
        logger.info(
            "[WebSocket] Sent response for %s: %s%s",
            response.request_id,
            response.decision.value,
            " (with updated input)" if response.updated_input else "",
        )

    async def _abandon(self) -> None:
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("[WebSocket] Cleaning up %d pending request(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@router.websocket("/")
async def approval_socket(websocket: WebSocket) -> None:
    """Accept a hook client and serve its approval requests."""
    broker = get_broker(websocket)
    await websocket.accept()
    logger.info("[WebSocket] Client connected")
    await CallerConnection(websocket, broker).run()
