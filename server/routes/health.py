"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends

from core.approval import ApprovalBroker

from ..state import get_broker


router = APIRouter()


@router.get("/health")
async def health(broker: ApprovalBroker = Depends(get_broker)) -> dict:
    """Health check endpoint."""
    return {
        "status": "stopping" if broker.stopped else "ok",
        "pending": broker.pending_count,
        "channel": broker.channel.name,
    }
