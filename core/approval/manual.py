"""Channel for reviewers who answer through the server's HTTP API."""

import logging

from core.permissions import ApprovalRequest

from .channel import BaseChannel, describe_invocation

logger = logging.getLogger(__name__)


class ManualChannel(BaseChannel):
    """
    Logs each request and waits for ``POST /approvals/{request_id}``.

    Used when no chat platform is configured; a dashboard or a script reads
    ``GET /approvals`` and posts decisions back.
    """

    name = "manual"

    async def notify(self, request: ApprovalRequest) -> None:
        self.track(request)
        invocation = request.invocation
        logger.info(
            "[Manual] Awaiting decision for %s: %s (POST /approvals/%s)",
            request.request_id,
            describe_invocation(invocation.tool_name, invocation.tool_input),
            request.request_id,
        )
