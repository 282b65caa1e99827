"""Pending approval endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from core.approval import ApprovalBroker

from ..requests.decision_request import DecisionRequest
from ..state import get_broker

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/approvals")
async def list_approvals(broker: ApprovalBroker = Depends(get_broker)) -> list[dict]:
    """
    List requests waiting for a decision.

    Returns:
        Pending approval requests, oldest first
    """
    return [request.model_dump(mode="json") for request in broker.pending_requests()]


@router.get("/approvals/{request_id}")
async def get_approval(request_id: str, broker: ApprovalBroker = Depends(get_broker)) -> dict:
    """Get one pending request."""
    request = broker.get_pending_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail=f"No pending request: {request_id}")
    return request.model_dump(mode="json")


@router.post("/approvals/{request_id}")
async def decide_approval(
    request_id: str,
    body: DecisionRequest,
    broker: ApprovalBroker = Depends(get_broker),
) -> dict:
    """
    Answer a pending request.

    Args:
        request_id: The broker's request id
        body: The reviewer's decision

    Returns:
        Success confirmation
    """
    if not broker.resolve(request_id, body.to_decision(request_id)):
        raise HTTPException(status_code=404, detail=f"No pending request: {request_id}")

    logger.info("Decision for %s via HTTP: %s", request_id, body.decision.value)
    return {"success": True}
