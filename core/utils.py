"""ID generation utility."""

import secrets
import time


def gen_id(prefix: str) -> str:
    """Generate opaque ids such as apr_xxx for approval requests."""
    return f"{prefix}{secrets.token_urlsafe(16)}"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
