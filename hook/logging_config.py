"""Logging setup for one hook invocation.

The hook's stdout is the decision itself, so records go to stderr where the
agent shows them next to its own prompt. Must not import the ``server``
package.
"""

import logging
import os
import sys
from typing import Optional

HOOK_FORMAT = "approval-hook %(levelname)s: %(message)s"

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_HOOK_LOG_LEVEL = "WARNING"


def setup_hook_logging(level: Optional[str] = None) -> None:
    """Write warnings and errors to stderr unless LOG_LEVEL asks for more."""
    level_name = (level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_HOOK_LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=log_level, format=HOOK_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("websockets").setLevel(max(logging.WARNING, log_level))
