"""Rule engine: classify a tool invocation as allow, deny or ask."""

import logging
import os
from typing import Any, Sequence

from .models import Decision, PermissionRule, RuleSet, ToolInvocation
from .patterns import match_pattern

logger = logging.getLogger(__name__)

# Read-only or otherwise safe tools that never need approval
DEFAULT_ALLOWED_TOOLS = frozenset(
    {
        "Read",
        "Glob",
        "Grep",
        "Task",
        "WebSearch",
        "TodoRead",
        "TodoWrite",
        "AskUserQuestion",
    }
)

# Tools auto-allowed when they only touch files inside the project
PROJECT_FILE_TOOLS = frozenset({"Edit", "Write"})


def matches_any_rule(
    tool_name: str,
    tool_input: dict[str, Any],
    rules: Sequence[PermissionRule],
) -> PermissionRule | None:
    """
    Find the first rule in ``rules`` that applies to the invocation.

    Returns:
        The matching rule, or None
    """
    for rule in rules:
        if rule.tool == tool_name and match_pattern(tool_name, tool_input, rule.pattern):
            return rule
    return None


def is_within_project(file_path: str, cwd: str) -> bool:
    """Check whether ``file_path`` is ``cwd`` itself or strictly under it."""
    root = os.path.normpath(cwd)
    target = os.path.normpath(os.path.join(root, file_path))
    if target == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return target.startswith(prefix)


def should_auto_allow_file_operation(
    tool_name: str, tool_input: dict[str, Any], cwd: str
) -> bool:
    """Edit/Write inside the working directory are allowed without asking."""
    if tool_name not in PROJECT_FILE_TOOLS:
        return False
    file_path = tool_input.get("file_path")
    if not isinstance(file_path, str) or not file_path or not cwd:
        return False
    return is_within_project(file_path, cwd)


def check_permission(
    tool_name: str,
    tool_input: dict[str, Any],
    cwd: str,
    rules: RuleSet,
) -> Decision:
    """
    Check permissions for a tool call.

    Precedence: deny rules, allow rules, ask rules, default-allowed tools,
    project-local Edit/Write, and finally ask.

    Args:
        tool_name: Name of the tool being invoked
        tool_input: The tool's input parameters
        cwd: The agent's working directory
        rules: Merged rules for this call

    Returns:
        The decision for this invocation
    """
    rule = matches_any_rule(tool_name, tool_input, rules.deny)
    if rule is not None:
        logger.debug("%s denied by rule %s(%s)", tool_name, rule.tool, rule.pattern)
        return Decision.DENY

    rule = matches_any_rule(tool_name, tool_input, rules.allow)
    if rule is not None:
        logger.debug("%s allowed by rule %s(%s)", tool_name, rule.tool, rule.pattern)
        return Decision.ALLOW

    rule = matches_any_rule(tool_name, tool_input, rules.ask)
    if rule is not None:
        logger.debug("%s needs approval by rule %s(%s)", tool_name, rule.tool, rule.pattern)
        return Decision.ASK

    if tool_name in DEFAULT_ALLOWED_TOOLS:
        return Decision.ALLOW

    if should_auto_allow_file_operation(tool_name, tool_input, cwd):
        return Decision.ALLOW

    return Decision.ASK


def check_invocation(invocation: ToolInvocation, rules: RuleSet) -> Decision:
    """Convenience wrapper around :func:`check_permission`."""
    return check_permission(invocation.tool_name, invocation.tool_input, invocation.cwd, rules)
