"""Pytest configuration and fixtures."""

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest

from code_runner.application.services.session_manager import ExecutionSessionManager
from code_runner.domain.errors import TransportError
from code_runner.domain.ports import (
    IBatchExecutionPort,
    ICapabilityPort,
    IInteractiveConnection,
    IInteractiveTransportPort,
)
from code_runner.domain.value_objects import (
    BatchResult,
    Capabilities,
    ExecutionMode,
    InboundFrame,
    RunRequest,
)
from code_runner.infrastructure.config import Settings
from code_runner.infrastructure.websocket.frames import decode_frame


PISTON_WS_URL = "ws://piston.test/api/v2/connect"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "contract: wire-level tests of HTTP adapters and endpoints")
    config.addinivalue_line("markers", "integration: tests against a real local server")


class FakeConnection(IInteractiveConnection):
    """In-memory interactive connection fed by the test."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.sent: List[Dict[str, Any]] = []
        self.fail_on_send: Optional[str] = None
        self._queue: "asyncio.Queue[Optional[InboundFrame]]" = asyncio.Queue()
        self._closed = False

    def push(self, **payload) -> None:
        """Deliver an inbound frame as the sandbox would send it."""
        self._queue.put_nowait(decode_frame(json.dumps(payload)))

    def hang_up(self) -> None:
        """End the frame stream as if the peer closed the socket."""
        self._queue.put_nowait(None)

    async def send(self, frame: Dict[str, Any]) -> None:
        if self._closed:
            raise TransportError("WebSocket connection is closed")
        if self.fail_on_send and frame.get("type") == self.fail_on_send:
            raise TransportError(f"Failed to send {frame['type']} frame: broken pipe")
        self.sent.append(frame)

    async def frames(self) -> AsyncIterator[InboundFrame]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed


class FakeTransport(IInteractiveTransportPort):
    """Hands out FakeConnections and records what was open at connect time."""

    def __init__(self, connect_error: Optional[TransportError] = None):
        self.connect_error = connect_error
        self.connections: List[FakeConnection] = []
        self.urls: List[str] = []
        self.closed_before_connect: List[List[bool]] = []
        self.closed = False

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]

    async def connect(self, url: str, session_id: str) -> FakeConnection:
        self.urls.append(url)
        self.closed_before_connect.append([c.closed for c in self.connections])
        if self.connect_error is not None:
            raise self.connect_error
        connection = FakeConnection(session_id)
        self.connections.append(connection)
        return connection

    async def close(self) -> None:
        self.closed = True


class FakeCapabilityPort(ICapabilityPort):
    def __init__(self, interactive_url: Optional[str] = None, error: Optional[Exception] = None):
        self.interactive_url = interactive_url
        self.error = error
        self.calls = 0

    async def probe(self) -> Capabilities:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return Capabilities(interactive_url=self.interactive_url)


class FakeBatchPort(IBatchExecutionPort):
    def __init__(self, result: Optional[BatchResult] = None, error: Optional[Exception] = None):
        self.result = result or BatchResult(stdout="", stderr="", error="", exit_code=0)
        self.error = error
        self.requests: List[RunRequest] = []
        self.timeouts: List[Optional[float]] = []
        self.closed = False

    async def execute(self, request: RunRequest, timeout: Optional[float] = None) -> BatchResult:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self) -> None:
        self.closed = True


async def settle(rounds: int = 10) -> None:
    """Let background reader tasks process queued frames."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment, with the watchdog disabled."""
    return Settings(_env_file=None, run_timeout_seconds=0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def batch_port() -> FakeBatchPort:
    return FakeBatchPort()


@pytest.fixture
def interactive_manager(settings, transport, batch_port) -> ExecutionSessionManager:
    """Manager whose probe announces an interactive sandbox."""
    return ExecutionSessionManager(
        capability_port=FakeCapabilityPort(interactive_url=PISTON_WS_URL),
        batch_port=batch_port,
        transport_port=transport,
        settings=settings,
    )


@pytest.fixture
def batch_manager(settings, transport, batch_port) -> ExecutionSessionManager:
    """Manager fixed to batch mode."""
    return ExecutionSessionManager(
        capability_port=FakeCapabilityPort(),
        batch_port=batch_port,
        transport_port=transport,
        settings=settings,
        mode=ExecutionMode.BATCH,
    )
