"""Hook stdin/stdout payloads."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from core.permissions import ApprovalDecision, Decision, ToolInvocation

HOOK_EVENT_NAME = "PermissionRequest"


class HookInput(BaseModel):
    """Payload the agent writes to the hook's stdin."""

    session_id: str
    cwd: str
    hook_event_name: str
    tool_name: str
    tool_input: dict[str, Any]
    transcript_path: str | None = None
    permission_mode: str | None = None

    def to_invocation(self) -> ToolInvocation:
        return ToolInvocation(
            tool_name=self.tool_name,
            tool_input=self.tool_input,
            cwd=self.cwd,
            session_id=self.session_id,
        )


class HookDecision(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    behavior: Decision
    updated_input: dict[str, Any] | None = Field(default=None, alias="updatedInput")
    message: str | None = None


class HookSpecificOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hook_event_name: Literal["PermissionRequest"] = Field(
        default=HOOK_EVENT_NAME, alias="hookEventName"
    )
    decision: HookDecision


class HookOutput(BaseModel):
    """The single JSON object the hook prints to stdout."""

    model_config = ConfigDict(populate_by_name=True)

    hook_specific_output: HookSpecificOutput = Field(alias="hookSpecificOutput")

    @classmethod
    def create(
        cls,
        decision: Decision,
        message: str | None = None,
        updated_input: dict[str, Any] | None = None,
    ) -> "HookOutput":
        return cls(
            hook_specific_output=HookSpecificOutput(
                decision=HookDecision(
                    behavior=decision,
                    updated_input=updated_input,
                    message=message,
                )
            )
        )

    @classmethod
    def from_decision(cls, decision: ApprovalDecision) -> "HookOutput":
        return cls.create(decision.decision, decision.message, decision.updated_input)

    @property
    def behavior(self) -> Decision:
        return self.hook_specific_output.decision.behavior

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
