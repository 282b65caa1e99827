"""
Approval server lifecycle.

``ApprovalServer`` builds a fresh broker and listening socket on every start,
so it can be started again after a stop. Stopping answers every pending
request with ``ask`` before the listener and its connections are closed.
"""

import asyncio
import logging
import socket

import uvicorn

from config.settings import ServerSettings
from core.approval import ApprovalBroker, NotificationChannel

from .app import create_app
from .event_bus import SSEEventBus

logger = logging.getLogger(__name__)

# Time handlers get to flush shutdown answers before connections close
SHUTDOWN_GRACE_SECONDS = 0.2


class _UvicornServer(uvicorn.Server):
    """uvicorn server whose exit signals drain the broker before exiting."""

    def __init__(self, config: uvicorn.Config, owner: "ApprovalServer"):
        super().__init__(config)
        self._owner = owner

    def handle_exit(self, sig, frame) -> None:
        if self._owner.stopping:
            # Second signal: stop waiting for connections
            self.force_exit = True
            self.should_exit = True
            return
        self._owner.request_stop()


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind the listening socket.

    Raises:
        OSError: If the address is unavailable
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class ApprovalServer:
    """
    Start/stop wrapper around the approval broker and its HTTP/WebSocket app.

    Example:
        server = ApprovalServer(settings, channel)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(self, settings: ServerSettings, channel: NotificationChannel):
        self.settings = settings
        self.channel = channel
        self.event_bus = SSEEventBus()
        self.broker: ApprovalBroker | None = None
        self._server: _UvicornServer | None = None
        self._socket: socket.socket | None = None
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopping: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return (
            self._server is not None
            and self._server.started
            and self._task is not None
            and not self._task.done()
        )

    @property
    def stopping(self) -> bool:
        return self._stopping is not None

    @property
    def port(self) -> int:
        """The bound port (useful when configured with port 0)."""
        if self._socket is None:
            return self.settings.port
        return self._socket.getsockname()[1]

    async def start(self) -> None:
        """
        Connect the channel, bind the listener and start serving.

        Raises:
            OSError: If the port cannot be bound
            ChannelDeliveryError: If the channel cannot be reached
            RuntimeError: If the server is already running
        """
        if self._task is not None:
            raise RuntimeError("Approval server already started")

        self._loop = asyncio.get_running_loop()
        try:
            await self.channel.start()
            self._socket = bind_socket(self.settings.host, self.settings.port)
        except Exception:
            await self.channel.aclose()
            raise

        self.broker = ApprovalBroker(
            self.channel,
            timeout=self.settings.timeout_seconds,
            event_bus=self.event_bus,
        )
        app = create_app(self.broker, self.event_bus)

        config = uvicorn.Config(app, log_config=None, lifespan="off")
        self._server = _UvicornServer(config, self)
        self._task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        while not self._server.started:
            if self._task.done():
                await self.wait_closed()
                raise RuntimeError("Approval server exited during startup")
            await asyncio.sleep(0.01)

        logger.info("[WebSocket] Server listening on port %d", self.port)

    def request_stop(self) -> None:
        """Begin a graceful stop from any thread (used by signal handlers)."""
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._begin_stop)

    async def stop(self) -> None:
        """Answer pending requests, then close the listener and the channel."""
        if self._task is None:
            return
        await self._begin_stop()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until the server has shut down and release its resources."""
        if self._task is None:
            return
        try:
            await self._task
        finally:
            if self._socket is not None:
                self._socket.close()
            await self.channel.aclose()
            self._task = None
            self._server = None
            self._socket = None
            self._stopping = None
            logger.info("[WebSocket] Server closed")

    def _begin_stop(self) -> asyncio.Task:
        if self._stopping is None:
            self._stopping = asyncio.ensure_future(self._drain())
        return self._stopping

    async def _drain(self) -> None:
        if self.broker is not None and self.broker.stop():
            await asyncio.sleep(SHUTDOWN_GRACE_SECONDS)
        if self._server is not None:
            self._server.should_exit = True
