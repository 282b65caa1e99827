"""Settings layer loading and rule merging."""

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from core.exceptions import ConfigLoadError, RuleParseError
from core.permissions import PermissionRule, RuleSet, parse_rule

logger = logging.getLogger(__name__)

SETTINGS_DIR = ".claude"
SETTINGS_FILENAME = "settings.json"
LOCAL_SETTINGS_FILENAME = "settings.local.json"

RULE_LISTS = ("allow", "deny", "ask")


def settings_paths(cwd: str | Path, home: str | Path | None = None) -> list[Path]:
    """
    Settings files in precedence order.

    1. Global: ~/.claude/settings.json
    2. Global local override: ~/.claude/settings.local.json
    3. Project: <cwd>/.claude/settings.json
    4. Project local override: <cwd>/.claude/settings.local.json
    """
    home_dir = Path(home) if home is not None else Path.home()
    project_dir = Path(cwd)
    return [
        home_dir / SETTINGS_DIR / SETTINGS_FILENAME,
        home_dir / SETTINGS_DIR / LOCAL_SETTINGS_FILENAME,
        project_dir / SETTINGS_DIR / SETTINGS_FILENAME,
        project_dir / SETTINGS_DIR / LOCAL_SETTINGS_FILENAME,
    ]


def read_settings_file(path: Path) -> dict[str, Any] | None:
    """
    Load a settings file from the given path.

    Args:
        path: Path to the settings file

    Returns:
        Parsed settings dictionary or None if the file doesn't exist

    Raises:
        ConfigLoadError: If the file exists but cannot be read or parsed
    """
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        raise ConfigLoadError(str(path), str(e)) from e

    if not isinstance(data, dict):
        raise ConfigLoadError(str(path), "top-level value is not an object")
    return data


def parse_rules(literals: Iterable[Any], source: str = "") -> tuple[PermissionRule, ...]:
    """Parse rule literals, skipping the ones that don't match the grammar."""
    rules = []
    for literal in literals:
        try:
            rules.append(parse_rule(literal))
        except RuleParseError as e:
            logger.warning("Skipping rule in %s: %s", source or "settings", e)
    return tuple(rules)


def rules_from_settings(settings: dict[str, Any] | None, source: str = "") -> RuleSet:
    """
    Extract the ``permissions`` rule lists from one settings layer.

    Args:
        settings: Parsed settings dictionary (None contributes nothing)
        source: Where the settings came from, for log messages

    Returns:
        RuleSet holding this layer's rules
    """
    if not settings:
        return RuleSet()

    permissions = settings.get("permissions")
    if permissions is None:
        return RuleSet()
    if not isinstance(permissions, dict):
        logger.warning("Ignoring non-object 'permissions' in %s", source or "settings")
        return RuleSet()

    lists: dict[str, tuple[PermissionRule, ...]] = {}
    for name in RULE_LISTS:
        literals = permissions.get(name)
        if literals is None:
            continue
        if not isinstance(literals, list):
            logger.warning("Ignoring non-list 'permissions.%s' in %s", name, source or "settings")
            continue
        lists[name] = parse_rules(literals, source)

    return RuleSet(**lists)


def merge_rule_sets(*layers: RuleSet) -> RuleSet:
    """
    Merge rule sets in order.

    Rules accumulate: every later layer's lists are appended to the earlier
    ones, nothing is replaced.
    """
    merged = RuleSet()
    for layer in layers:
        merged = merged.extend(layer)
    return merged


def load_rule_set(cwd: str | Path, home: str | Path | None = None) -> RuleSet:
    """
    Load and merge permission rules from all settings layers.

    Missing or broken layers contribute no rules.

    Args:
        cwd: Project working directory
        home: Home directory (defaults to the current user's)

    Returns:
        The merged RuleSet for one decision call
    """
    layers = []
    for path in settings_paths(cwd, home):
        try:
            settings = read_settings_file(path)
        except ConfigLoadError as e:
            logger.warning("%s", e)
            continue
        if settings is None:
            logger.debug("No settings at %s", path)
            continue
        layers.append(rules_from_settings(settings, str(path)))

    return merge_rule_sets(*layers)
