"""WebSocket wire messages exchanged between the hook and the approval server."""

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.permissions import ApprovalDecision, Decision, ToolInvocation
from core.utils import now_ms


class ApprovalRequestMessage(BaseModel):
    """``approval_request``: sent by the hook, one per escalated tool call."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["approval_request"] = "approval_request"
    request_id: str = Field(alias="requestId", min_length=1)
    tool_name: str = Field(alias="toolName")
    tool_input: dict[str, Any] = Field(default_factory=dict, alias="toolInput")
    cwd: str = ""
    session_id: str = Field(default="", alias="sessionId")
    timestamp: int = Field(default_factory=now_ms)

    @classmethod
    def from_invocation(cls, request_id: str, invocation: ToolInvocation) -> "ApprovalRequestMessage":
        return cls(
            request_id=request_id,
            tool_name=invocation.tool_name,
            tool_input=invocation.tool_input,
            cwd=invocation.cwd,
            session_id=invocation.session_id,
        )

    def to_invocation(self) -> ToolInvocation:
        return ToolInvocation(
            tool_name=self.tool_name,
            tool_input=self.tool_input,
            cwd=self.cwd,
            session_id=self.session_id,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ApprovalResponseMessage(BaseModel):
    """``approval_response``: the server's answer, echoing the hook's requestId."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["approval_response"] = "approval_response"
    request_id: str = Field(alias="requestId")
    decision: Decision
    updated_input: dict[str, Any] | None = Field(default=None, alias="updatedInput")
    message: str | None = None

    @classmethod
    def from_decision(cls, request_id: str, decision: ApprovalDecision) -> "ApprovalResponseMessage":
        return cls(
            request_id=request_id,
            decision=decision.decision,
            updated_input=decision.updated_input,
            message=decision.message,
        )

    def to_decision(self) -> ApprovalDecision:
        return ApprovalDecision(
            request_id=self.request_id,
            decision=self.decision,
            updated_input=self.updated_input,
            message=self.message,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def parse_response(raw: str | bytes) -> ApprovalResponseMessage | None:
    """Parse an ``approval_response``; anything else yields None."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or data.get("type") != "approval_response":
        return None
    try:
        return ApprovalResponseMessage.model_validate(data)
    except ValidationError:
        return None
