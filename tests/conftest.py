import asyncio
import json

import pytest
import yaml

from streamglow.core.config import SystemConfig
from streamglow.devices.facade import DeviceFacade
from streamglow.devices.mock import MockBackend

_CLOSE = object()


class FakeWebSocket:
    """Scripted websocket: yields queued frames, ends on close or sentinel

    Exception instances pushed as frames are raised from iteration.
    """

    def __init__(self, frames=(), hold_open=False):
        self.sent = []
        self.closed = False
        self._frames = asyncio.Queue()
        for frame in frames:
            self._frames.put_nowait(frame)
        if not hold_open:
            self._frames.put_nowait(_CLOSE)

    def push(self, frame):
        self._frames.put_nowait(frame)

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True
        self._frames.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._frames.get()
        if frame is _CLOSE:
            raise StopAsyncIteration
        if isinstance(frame, Exception):
            raise frame
        return frame

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False


class FakeConnect:
    """Stand-in for ``websockets.connect`` handing out scripted sockets

    Once the script runs out every attempt is refused.
    """

    def __init__(self, *sockets):
        self.sockets = list(sockets)
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        if not self.sockets:
            raise OSError("connection refused")
        socket = self.sockets.pop(0)
        if isinstance(socket, Exception):
            raise socket
        return socket


class RecordingObservers:
    """Collects what would be broadcast to dashboards"""

    def __init__(self):
        self.updates = []
        self.payloads = []
        self.active_connections = set()

    async def broadcast_update(self, frame):
        self.updates.append(frame)

    async def broadcast_payload(self, payload):
        self.payloads.append(payload)


@pytest.fixture
def strip():
    return MockBackend("strip")


@pytest.fixture
def panel():
    return MockBackend("panel", supports_color=False)


@pytest.fixture
def facade(strip, panel):
    return DeviceFacade(strip=strip, panel=panel)


@pytest.fixture
def emitted():
    """List collecting emitted commands, with ``emit`` as its coroutine"""

    class Emitted(list):
        async def emit(self, command):
            self.append(command)

    return Emitted()


@pytest.fixture
def observers():
    return RecordingObservers()


@pytest.fixture
def wait_until():
    """Poll a predicate inside the running loop"""

    async def wait(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return wait


@pytest.fixture
def offline_config():
    """Mock devices, no feeds, no startup delays"""
    config = SystemConfig.create_default()
    config.devices.backend = "mock"
    config.telemetry.enabled = False
    config.pubsub.enabled = False
    config.donations.enabled = False
    config.effects.power_delay_ms = 0
    config.effects.goal_delay_ms = 0
    config.effects.strobe_ms = 50
    config.effects.demo_ms = 50
    return config


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary config file for testing"""
    config_path = tmp_path / "streamglow.yaml"
    with open(config_path, "w") as f:
        yaml.dump(
            {
                "devices": {"backend": "mock", "strip_host": "10.0.0.50"},
                "pubsub": {"channel_id": "12345"},
                "effects": {"strobe_ms": 1500},
            },
            f,
        )
    return config_path
