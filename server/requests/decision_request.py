"""Decision request model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.permissions import ApprovalDecision, Decision


class DecisionRequest(BaseModel):
    """A reviewer's decision posted to ``/approvals/{request_id}``."""

    model_config = ConfigDict(populate_by_name=True)

    decision: Decision = Field(description="allow, deny or ask")
    updated_input: dict[str, Any] | None = Field(
        default=None,
        alias="updatedInput",
        description="Replacement tool input (only meaningful with allow)",
    )
    message: str | None = Field(
        default=None,
        description="Reason shown to the agent",
    )

    def to_decision(self, request_id: str) -> ApprovalDecision:
        return ApprovalDecision(
            request_id=request_id,
            decision=self.decision,
            updated_input=self.updated_input,
            message=self.message,
        )
