"""Rule literal parsing and per-tool pattern matching."""

import re
from typing import Any
from urllib.parse import urlsplit

from core.exceptions import RuleParseError

from .models import PermissionRule

WILDCARD = "*"

FILE_TOOLS = frozenset({"Read", "Write", "Edit"})

_RULE_RE = re.compile(r"^(\w+)\((.+)\)$", re.DOTALL)
_BARE_RE = re.compile(r"^\w+$")


def parse_rule(literal: Any) -> PermissionRule:
    """
    Parse a rule literal.

    ``Bash(git:*)`` becomes tool ``Bash`` with pattern ``git:*``; a bare name
    like ``WebSearch`` becomes tool ``WebSearch`` with pattern ``*``.

    Raises:
        RuleParseError: If the literal matches neither form
    """
    if not isinstance(literal, str):
        raise RuleParseError(literal)

    literal = literal.strip()
    match = _RULE_RE.match(literal)
    if match:
        return PermissionRule(tool=match.group(1), pattern=match.group(2))
    if _BARE_RE.match(literal):
        return PermissionRule(tool=literal, pattern=WILDCARD)
    raise RuleParseError(literal)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Compile a file path glob into an anchored regex.

    ``**`` matches any sequence including ``/``; a lone ``*`` matches any
    sequence without ``/``. Everything else is matched literally.
    """
    parts = []
    for i, chunk in enumerate(pattern.split("**")):
        if i:
            parts.append(".*")
        parts.append("[^/]*".join(re.escape(piece) for piece in chunk.split("*")))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


def match_bash(pattern: str, command: str) -> bool:
    """Match ``prefix:*`` by prefix, anything else exactly."""
    if pattern.endswith(":*"):
        return command.startswith(pattern[:-2])
    return command == pattern


def match_file_path(pattern: str, file_path: str) -> bool:
    """Match ``**`` globs, trailing-``*`` prefixes, or exact paths."""
    if "**" in pattern:
        return glob_to_regex(pattern).match(file_path) is not None
    if pattern.endswith("*"):
        return file_path.startswith(pattern[:-1])
    return file_path == pattern


def match_url(pattern: str, url: str) -> bool:
    """Match ``domain:<host>`` against the URL hostname, anything else exactly."""
    if pattern.startswith("domain:"):
        domain = pattern[len("domain:"):].lower()
        try:
            hostname = urlsplit(url).hostname
        except ValueError:
            return False
        if not hostname:
            return False
        return hostname == domain or hostname.endswith("." + domain)
    return url == pattern


def _field(tool_input: dict[str, Any], name: str) -> str:
    value = tool_input.get(name)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def match_pattern(tool_name: str, tool_input: dict[str, Any], pattern: str) -> bool:
    """
    Check if a tool input matches a rule pattern for the given tool.

    Args:
        tool_name: The tool being invoked
        tool_input: The tool's input parameters
        pattern: The rule pattern (already stripped of ``Tool(...)``)

    Returns:
        True if the pattern applies to this invocation
    """
    if pattern == WILDCARD:
        return True

    if tool_name == "Bash":
        return match_bash(pattern, _field(tool_input, "command"))
    if tool_name in FILE_TOOLS:
        return match_file_path(pattern, _field(tool_input, "file_path"))
    if tool_name == "WebFetch":
        return match_url(pattern, _field(tool_input, "url"))

    return False
