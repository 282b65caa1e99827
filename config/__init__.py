"""
Configuration module for the approval gate.

Exports settings models and the permission rule loader.
"""

from .loader import (
    load_rule_set,
    merge_rule_sets,
    parse_rules,
    read_settings_file,
    rules_from_settings,
    settings_paths,
)
from .settings import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_WS_URL,
    DiscordSettings,
    HookSettings,
    ServerSettings,
)

__all__ = [
    # Constants
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_WS_URL",
    # Settings models
    "ServerSettings",
    "HookSettings",
    "DiscordSettings",
    # Loader functions
    "settings_paths",
    "read_settings_file",
    "parse_rules",
    "rules_from_settings",
    "merge_rule_sets",
    "load_rule_set",
]
