"""
Permission hook invoked by the coding agent before each tool call.

Reads one hook payload from stdin, applies the local permission rules and,
when a human has to decide, asks the approval server over WebSocket.
"""

from .client import request_approval
from .main import main, run_hook
from .models import HookInput, HookOutput

__all__ = ["HookInput", "HookOutput", "request_approval", "run_hook", "main"]
