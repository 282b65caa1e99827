"""
Permission rule engine.

Classifies a tool invocation as allow, deny or ask against merged
allow/deny/ask rule lists.
"""

from .checker import (
    DEFAULT_ALLOWED_TOOLS,
    check_invocation,
    check_permission,
    is_within_project,
    matches_any_rule,
)
from .dangerous import dangerous_command_warning
from .models import (
    ApprovalDecision,
    ApprovalRequest,
    Decision,
    PermissionRule,
    RuleSet,
    ToolInvocation,
)
from .patterns import glob_to_regex, match_pattern, parse_rule

__all__ = [
    # Models
    "Decision",
    "PermissionRule",
    "RuleSet",
    "ToolInvocation",
    "ApprovalRequest",
    "ApprovalDecision",
    # Functions
    "parse_rule",
    "glob_to_regex",
    "match_pattern",
    "matches_any_rule",
    "is_within_project",
    "check_permission",
    "check_invocation",
    "dangerous_command_warning",
    # Constants
    "DEFAULT_ALLOWED_TOOLS",
]
