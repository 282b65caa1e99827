"""
Core domain exceptions.

These exceptions are transport-agnostic. None of them ever reaches the agent
that asked for a decision: the broker and the hook turn each of them into an
``ask`` decision with an explanatory message.
"""


class CoreError(Exception):
    """Base exception for all core errors."""

    pass


class ConfigLoadError(CoreError):
    """Raised when a settings layer exists but cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load settings from {path}: {reason}")


class RuleParseError(CoreError):
    """Raised when a permission rule literal does not match the rule grammar."""

    def __init__(self, literal: object):
        self.literal = literal
        super().__init__(f"Invalid permission rule: {literal!r}")


class ChannelDeliveryError(CoreError):
    """Raised when a notification channel fails to present a request."""

    pass
