"""
Hook entry point.

Always exits 0 and always prints exactly one JSON object; anything that goes
wrong falls back to ``ask`` so the agent shows its normal prompt.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from config.loader import load_rule_set
from config.settings import HookSettings
from core.permissions import Decision, check_invocation

from .client import request_approval
from .logging_config import setup_hook_logging
from .models import HookInput, HookOutput

logger = logging.getLogger(__name__)

DENIED_BY_RULES = "Denied by permission rules"


def fallback_to_ask(reason: str) -> HookOutput:
    logger.error("[Hook] %s", reason)
    return HookOutput.create(Decision.ASK, reason)


async def run_hook(
    raw: str, settings: HookSettings, home: str | Path | None = None
) -> HookOutput:
    """
    Decide one hook invocation.

    Args:
        raw: The hook payload read from stdin
        settings: WebSocket URL and timeout
        home: Home directory for the global settings layers (tests)

    Returns:
        The output to print
    """
    try:
        if not raw.strip():
            return fallback_to_ask("No input received")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return fallback_to_ask("Invalid JSON input")

        try:
            hook_input = HookInput.model_validate(data)
        except ValidationError:
            return fallback_to_ask("Invalid hook input format")

        invocation = hook_input.to_invocation()
        rules = load_rule_set(hook_input.cwd, home=home)
        decision = check_invocation(invocation, rules)

        if decision == Decision.ALLOW:
            logger.info("[Hook] %s allowed by rules", invocation.tool_name)
            return HookOutput.create(Decision.ALLOW)
        if decision == Decision.DENY:
            logger.info("[Hook] %s denied by rules", invocation.tool_name)
            return HookOutput.create(Decision.DENY, DENIED_BY_RULES)

        approval = await request_approval(invocation, settings.ws_url, settings.timeout_seconds)
        return HookOutput.from_decision(approval)
    except Exception as e:
        logger.exception("[Hook] Unexpected error")
        return HookOutput.create(Decision.ASK, f"Unexpected error: {e}")


def main() -> None:
    """Read the hook payload from stdin and print the decision."""
    setup_hook_logging()
    settings = HookSettings.from_env()

    try:
        raw = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as e:
        output = fallback_to_ask(f"Unexpected error: {e}")
    else:
        output = asyncio.run(run_hook(raw, settings))

    print(output.to_json(), flush=True)


if __name__ == "__main__":
    main()
