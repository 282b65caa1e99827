"""Permission system models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.utils import now_ms


class Decision(str, Enum):
    """Verdict for a tool invocation."""

    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


class PermissionRule(BaseModel):
    """A single parsed rule literal such as ``Bash(git:*)``."""

    model_config = ConfigDict(frozen=True)

    tool: str
    pattern: str = "*"


class RuleSet(BaseModel):
    """Merged allow/deny/ask rules for one decision call."""

    model_config = ConfigDict(frozen=True)

    allow: tuple[PermissionRule, ...] = ()
    deny: tuple[PermissionRule, ...] = ()
    ask: tuple[PermissionRule, ...] = ()

    def extend(self, other: "RuleSet") -> "RuleSet":
        """Return a new RuleSet with ``other``'s rules appended after ours."""
        return RuleSet(
            allow=self.allow + other.allow,
            deny=self.deny + other.deny,
            ask=self.ask + other.ask,
        )


class ToolInvocation(BaseModel):
    """A single tool call the agent wants to make."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    tool_input: dict[str, Any] = Field(default_factory=dict)
    cwd: str
    session_id: str = ""


class ApprovalRequest(BaseModel):
    """A pending escalation awaiting a human decision."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    invocation: ToolInvocation
    created_at: int = Field(default_factory=now_ms)


class ApprovalDecision(BaseModel):
    """The answer delivered for one approval request."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    decision: Decision
    updated_input: dict[str, Any] | None = None
    message: str | None = None
