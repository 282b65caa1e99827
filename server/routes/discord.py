"""
Discord interactions webhook.
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from core.approval import NotificationChannel

from ..discord import DiscordChannel
from ..state import get_channel

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/discord/interactions")
async def discord_interactions(
    request: Request,
    x_signature_ed25519: str = Header(default=""),
    x_signature_timestamp: str = Header(default=""),
    channel: NotificationChannel = Depends(get_channel),
) -> dict:
    """
    Receive button clicks and modal submissions from Discord.

    Returns:
        The interaction callback Discord should apply
    """
    if not isinstance(channel, DiscordChannel):
        raise HTTPException(status_code=404, detail="Discord channel not configured")

    body = await request.body()
    if not channel.verify_signature(body, x_signature_ed25519, x_signature_timestamp):
        logger.warning("[Discord] Rejected interaction with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid request signature")

    try:
        interaction = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(interaction, dict):
        raise HTTPException(status_code=400, detail="Invalid interaction payload")

    return channel.handle_interaction(interaction)
