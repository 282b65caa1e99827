"""Approval broker: correlates pending requests with out-of-band decisions."""

import asyncio
import logging
import threading
from dataclasses import dataclass, field

from core.events import Event, EventBus, NullEventBus, approval_requested, approval_resolved
from core.permissions import ApprovalDecision, ApprovalRequest, ToolInvocation
from core.utils import gen_id, now_ms

from .channel import NotificationChannel, ask

logger = logging.getLogger(__name__)

# Timeout for approval requests (10 minutes)
DEFAULT_TIMEOUT_SECONDS = 600.0

TIMEOUT_MESSAGE = "Request timed out"
SHUTDOWN_MESSAGE = "Server shutting down"


@dataclass
class PendingEntry:
    """One outstanding request, its deadline timer and its delivery slot."""

    request: ApprovalRequest
    future: asyncio.Future
    loop: asyncio.AbstractEventLoop
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def fulfill(self, decision: ApprovalDecision) -> None:
        """Deliver ``decision`` on the entry's event loop, from any thread."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self.loop:
            self._fulfill(decision)
        else:
            self.loop.call_soon_threadsafe(self._fulfill, decision)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()

    def _fulfill(self, decision: ApprovalDecision) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_result(decision)


class ApprovalBroker:
    """
    Broker between callers waiting for a decision and a notification channel.

    Every request is settled exactly once: by a human decision, its deadline,
    a notification failure or broker shutdown, whichever comes first. All
    paths pop the entry from the pending map before delivering, so a second
    trigger finds nothing and becomes a no-op.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        event_bus: EventBus | None = None,
    ):
        """
        Initialize the broker.

        Args:
            channel: Channel that presents requests to a reviewer
            timeout: Default seconds to wait for a decision
            event_bus: Event bus for publishing request/decision events
        """
        self.channel = channel
        self.timeout = timeout
        self.event_bus = event_bus or NullEventBus()
        self._pending: dict[str, PendingEntry] = {}
        self._lock = threading.Lock()
        self._stopped = False
        channel.bind(self.resolve)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def get_pending_request(self, request_id: str) -> ApprovalRequest | None:
        entry = self._pending.get(request_id)
        return entry.request if entry else None

    def pending_requests(self) -> list[ApprovalRequest]:
        """Snapshot of outstanding requests, oldest first."""
        with self._lock:
            entries = list(self._pending.values())
        return sorted((e.request for e in entries), key=lambda r: r.created_at)

    async def submit(
        self, invocation: ToolInvocation, timeout: float | None = None
    ) -> ApprovalDecision:
        """
        Ask a human to approve an invocation and wait for the answer.

        Never raises for timeouts or channel failures; those come back as an
        ``ask`` decision with an explanatory message. Cancelling the calling
        task discards the request.

        Args:
            invocation: The tool call awaiting approval
            timeout: Seconds to wait, defaults to the broker timeout

        Returns:
            The decision for this request
        """
        loop = asyncio.get_running_loop()
        wait = self.timeout if timeout is None else timeout
        request = ApprovalRequest(request_id=self._new_request_id(), invocation=invocation)
        request_id = request.request_id

        entry = PendingEntry(request=request, future=loop.create_future(), loop=loop)
        with self._lock:
            if self._stopped:
                logger.warning("Rejecting request for %s: broker stopped", invocation.tool_name)
                return ask(request_id, SHUTDOWN_MESSAGE)
            self._pending[request_id] = entry
        entry.timer = loop.call_later(wait, self._expire, request_id)

        logger.info("Approval request %s: %s (timeout %.1fs)", request_id, invocation.tool_name, wait)

        notify_task: asyncio.Task | None = None
        try:
            await self._publish(approval_requested(request, wait))
            # Delivery must not delay the deadline or stop()
            notify_task = asyncio.create_task(self._notify(request))
            decision = await entry.future
        finally:
            if notify_task is not None and not notify_task.done():
                notify_task.cancel()
            self._discard(request_id)

        await self._publish(approval_resolved(decision, now_ms() - request.created_at))
        return decision

    def resolve(self, request_id: str, decision: ApprovalDecision) -> bool:
        """
        Deliver a decision to the caller waiting on ``request_id``.

        Safe to call from any task or thread.

        Args:
            request_id: The request being answered
            decision: The decision to deliver

        Returns:
            True if the request was pending, False if it was unknown or
            already settled
        """
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is None:
            logger.warning("No pending request found: %s", request_id)
            return False

        if decision.request_id != request_id:
            decision = decision.model_copy(update={"request_id": request_id})
        entry.fulfill(decision)
        logger.info("Resolved %s: %s", request_id, decision.decision.value)
        return True

    def stop(self) -> int:
        """
        Settle every outstanding request with ``ask`` and stop accepting new ones.

        Returns:
            Number of requests that were outstanding
        """
        with self._lock:
            self._stopped = True
            entries = list(self._pending.values())
            self._pending.clear()

        for entry in entries:
            entry.fulfill(ask(entry.request.request_id, SHUTDOWN_MESSAGE))
        if entries:
            logger.info("Answered %d pending request(s) before shutdown", len(entries))
        return len(entries)

    async def _notify(self, request: ApprovalRequest) -> None:
        request_id = request.request_id
        try:
            await self.channel.notify(request)
        except Exception as e:
            logger.error("Failed to deliver approval request %s: %s", request_id, e)
            self.resolve(request_id, ask(request_id, f"Failed to deliver notification: {e}"))

    def _expire(self, request_id: str) -> None:
        if self.resolve(request_id, ask(request_id, TIMEOUT_MESSAGE)):
            logger.warning("Approval request timed out: %s", request_id)

    def _discard(self, request_id: str) -> None:
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.cancel_timer()
            logger.info("Discarded pending request %s: caller went away", request_id)
        self.channel.dismiss(request_id)

    def _new_request_id(self) -> str:
        while True:
            request_id = gen_id("apr_")
            if request_id not in self._pending:
                return request_id

    async def _publish(self, event: Event) -> None:
        try:
            await self.event_bus.publish(event)
        except Exception:
            logger.exception("Failed to publish %s event", event.type)
