"""
Approval server entry point.
"""
import asyncio
import logging
import sys

from pydantic import ValidationError

from config.settings import ServerSettings
from core.approval import ManualChannel, NotificationChannel
from core.exceptions import ChannelDeliveryError
from server import ApprovalServer
from server.discord import DiscordChannel
from server.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_channel(settings: ServerSettings) -> NotificationChannel:
    """Discord when it is configured, otherwise decisions come over HTTP."""
    if settings.discord is not None:
        return DiscordChannel(settings.discord)
    logger.warning("Discord not configured, using manual approvals (POST /approvals/{id})")
    return ManualChannel()


async def serve(settings: ServerSettings) -> None:
    """Run the approval server until it is told to exit."""
    server = ApprovalServer(settings, build_channel(settings))
    await server.start()

    logger.info("Approval server ready")
    logger.info("  WebSocket: ws://%s:%d", settings.host, server.port)
    logger.info("  Channel: %s", server.channel.name)
    logger.info("  Timeout: %.0fs", settings.timeout_seconds)

    await server.wait_closed()


def main() -> None:
    """Start the approval server."""
    setup_logging()
    try:
        settings = ServerSettings.from_env()
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)
    setup_logging(settings.log_level)

    try:
        asyncio.run(serve(settings))
    except ChannelDeliveryError as e:
        logger.error("Failed to start notification channel: %s", e)
        sys.exit(1)
    except OSError as e:
        logger.error("Failed to start server on port %d: %s", settings.port, e)
        sys.exit(1)
    logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
