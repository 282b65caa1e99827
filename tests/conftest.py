"""
Shared pytest fixtures for all tests.
"""
import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, Iterator

import pytest

from core.approval import ApprovalBroker, BaseChannel
from core.permissions import ApprovalRequest, ToolInvocation


class RecordingChannel(BaseChannel):
    """Channel that keeps every request it is asked to present."""

    name = "recording"

    def __init__(self, fail: Exception | None = None):
        super().__init__()
        self.fail = fail
        self.requests: list[ApprovalRequest] = []
        self.dismissed: list[str] = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def notify(self, request: ApprovalRequest) -> None:
        if self.fail is not None:
            raise self.fail
        self.track(request)
        self.requests.append(request)

    def dismiss(self, request_id: str) -> None:
        self.dismissed.append(request_id)
        super().dismiss(request_id)

    async def aclose(self) -> None:
        self.closed = True
        await super().aclose()

    async def next_request(self, index: int = 0, timeout: float = 2.0) -> ApprovalRequest:
        """Wait until at least ``index + 1`` requests have been presented."""
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.requests) <= index:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("request was never presented")
            await asyncio.sleep(0.005)
        return self.requests[index]


class RecordingEventBus:
    """EventBus that keeps published events."""

    def __init__(self):
        self.events = []

    async def publish(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def home_dir(temp_dir: Path) -> Path:
    """Fake home directory holding the global settings layers."""
    path = temp_dir / "home"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Fake project directory holding the project settings layers."""
    path = temp_dir / "project"
    path.mkdir()
    return path


def write_settings(root: Path, permissions: Any, filename: str = "settings.json") -> Path:
    """Write ``{"permissions": permissions}`` under ``root/.claude``."""
    settings_dir = root / ".claude"
    settings_dir.mkdir(exist_ok=True)
    path = settings_dir / filename
    path.write_text(json.dumps({"permissions": permissions}))
    return path


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def broker(channel: RecordingChannel, event_bus: RecordingEventBus) -> ApprovalBroker:
    return ApprovalBroker(channel, timeout=5.0, event_bus=event_bus)


@pytest.fixture
def bash_invocation(project_dir: Path) -> ToolInvocation:
    return ToolInvocation(
        tool_name="Bash",
        tool_input={"command": "git status"},
        cwd=str(project_dir),
        session_id="session-1",
    )
