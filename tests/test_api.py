"""Tests for API endpoints."""

import time

import pytest
from fastapi.testclient import TestClient

from streamglow.api.app import init_app
from streamglow.api.control import normalize_panel_command, normalize_strip_command
from streamglow.api.models import LightCommand
from streamglow.common.colors import COLORS
from streamglow.core.commands import CommandKind, DeviceSelector
from streamglow.core.websocket_manager import WebSocketManager


def eventually(predicate, timeout=2.0):
    """Wait for the app's event loop to process routed commands"""
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached in time"
        time.sleep(0.01)


@pytest.fixture
def client(offline_config, tmp_path):
    offline_config.api.song_file = str(tmp_path / "song.txt")
    app = init_app(offline_config)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def controller(client):
    return client.app.state.system_controller


@pytest.fixture
def strip(controller):
    return controller.facade.backend(DeviceSelector.STRIP)


@pytest.fixture
def panel(controller):
    return controller.facade.backend(DeviceSelector.PANEL)


def light(command=None, **levels):
    data = dict(levels)
    if command is not None:
        data["command"] = command
    return {"data": data}


class TestRequestNormalization:
    """Request bodies become commands"""

    def test_strip_color(self):
        [command] = normalize_strip_command("!Orange", 3000)
        assert command.kind is CommandKind.AMBIENT_COLOR
        assert command.payload.state.name == "orange"

    def test_strip_power(self):
        [command] = normalize_strip_command("setoff", 3000)
        assert command.kind is CommandKind.POWER
        assert command.device is DeviceSelector.STRIP
        assert not command.payload.on

    def test_strip_strobes(self):
        [disco] = normalize_strip_command("disco", 3000)
        assert disco.payload.effect.pattern_id == "whitestrobe"
        [green] = normalize_strip_command("greenstrobe", 1500)
        assert green.payload.effect.pattern_id == "greenstrobe"
        assert green.payload.effect.duration_ms == 1500
        [blue] = normalize_strip_command("!BlueStrobe", 3000)
        assert blue.kind is CommandKind.TRANSIENT_EFFECT
        assert blue.payload.effect.pattern_id == "bluestrobe"

    def test_strip_unknown(self):
        assert normalize_strip_command("rainbow", 3000) == []

    def test_panel_commands(self):
        commands = normalize_panel_command(
            LightCommand(command="light_on", brightness=30, temperature=200)
        )
        assert [c.kind for c in commands] == [
            CommandKind.POWER,
            CommandKind.BRIGHTNESS,
            CommandKind.TEMPERATURE,
        ]
        assert all(c.device is DeviceSelector.PANEL for c in commands)

    def test_panel_unknown(self):
        assert normalize_panel_command(LightCommand(command="dim")) == []
        assert normalize_panel_command(LightCommand()) == []


class TestAPIEndpoints:
    """REST API endpoints"""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["running"]

    def test_startup_applies_defaults(self, strip, panel):
        eventually(lambda: strip.operations("color") == [COLORS["purple"]])
        eventually(lambda: panel.operations("power") == [True])

    def test_strip_color(self, client, strip):
        response = client.post("/lights/rgbstrip", json=light("!Red"))
        assert response.status_code == 200
        assert response.json()["status"] == "success"
        eventually(lambda: COLORS["red"] in strip.operations("color"))

    def test_strip_unknown_command(self, client):
        response = client.post("/lights/rgbstrip", json=light("rainbow"))
        assert response.status_code == 422

    def test_strip_empty_command(self, client):
        response = client.post("/lights/rgbstrip", json=light("   "))
        assert response.status_code == 422

    def test_strip_power(self, client, strip):
        response = client.post("/lights/rgbstrip", json=light("setoff"))
        assert response.status_code == 200
        eventually(lambda: False in strip.operations("power"))

    def test_disco(self, client, strip):
        response = client.post("/lights/rgbstrip", json=light("disco"))
        assert response.status_code == 200
        eventually(lambda: "whitestrobe" in strip.operations("pattern"))

    def test_keylight(self, client, panel):
        response = client.post("/lights/keylight", json=light("light_off"))
        assert response.status_code == 200
        response = client.post("/lights/keylight", json=light(brightness=30))
        assert response.status_code == 200
        eventually(lambda: panel.operations("brightness") == [30])
        assert False in panel.operations("power")

    def test_keylight_invalid(self, client):
        assert client.post("/lights/keylight", json=light("dim")).status_code == 422
        assert (
            client.post("/lights/keylight", json=light(temperature=100)).status_code
            == 422
        )

    @pytest.mark.parametrize("method", ["get", "post"])
    def test_new_follower(self, client, strip, method):
        response = getattr(client, method)("/newfollow")
        assert response.status_code == 200
        eventually(lambda: "purplestrobe" in strip.operations("pattern"))

    def test_prize_update_reaches_observers(self, client):
        with client.websocket_connect("/ws") as ws:
            response = client.post(
                "/prizeupdate",
                json={
                    "type": "donation",
                    "data": {"from": "amy", "place": "first", "amount": 3},
                },
            )
            assert response.status_code == 200
            message = ws.receive_json()
            while message["type"] == "heartbeat":
                message = ws.receive_json()

        assert message == {
            "type": "payload",
            "payload": {
                "type": "donation",
                "data": {"from": "amy", "place": "first", "amount": 3.0},
            },
        }

    def test_prize_update_validation(self, client):
        response = client.post(
            "/prizeupdate", json={"data": {"place": "fourth", "amount": 3}}
        )
        assert response.status_code == 422

    def test_song(self, client, controller):
        eventually(lambda: controller.is_running)
        response = client.get("/song")
        assert response.status_code == 404

        with open(controller.config.api.song_file, "w", encoding="utf-8") as f:
            f.write("Artist - Title")
        response = client.get("/song")
        assert response.status_code == 200
        assert response.text == "Artist - Title"

    def test_state(self, client):
        response = client.get("/state")
        assert response.status_code == 200
        state = response.json()
        assert state["running"]
        assert state["adapters"] == {}
        assert set(state["devices"]) == {"strip", "panel"}
        assert state["router"]["default_device"] == "strip"

    def test_websocket_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "ping"})
            message = ws.receive_json()
            while message.get("type") == "heartbeat":
                message = ws.receive_json()
            assert message["type"] == "pong"


class TestAuthentication:
    """Shared-secret header check"""

    @pytest.fixture
    def secured(self, offline_config):
        offline_config.api.auth_token = "secret"
        with TestClient(init_app(offline_config)) as client:
            yield client

    def test_missing_token(self, secured):
        response = secured.post("/lights/rgbstrip", json=light("red"))
        assert response.status_code == 401

    def test_valid_token(self, secured):
        response = secured.post(
            "/lights/rgbstrip", json=light("red"), headers={"Authorization": "secret"}
        )
        assert response.status_code == 200

    def test_health_is_open(self, secured):
        assert secured.get("/health").status_code == 200


class Observer:
    def __init__(self, broken=False):
        self.messages = []
        self.broken = broken
        self.closed = False

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.broken:
            raise ConnectionResetError("gone")
        self.messages.append(message)

    async def close(self):
        self.closed = True


class TestObserverManager:
    """Dashboard fan-out"""

    @pytest.mark.asyncio
    async def test_broadcast_drops_failed_observers(self):
        manager = WebSocketManager()
        healthy, broken = Observer(), Observer(broken=True)
        await manager.connect(healthy)
        await manager.connect(broken)

        await manager.broadcast_update("frame")
        assert healthy.messages == [{"type": "update", "data": "frame"}]
        assert manager.count == 1

    @pytest.mark.asyncio
    async def test_heartbeat_and_stop(self, wait_until):
        manager = WebSocketManager(heartbeat_interval=0.01)
        observer = Observer()
        await manager.connect(observer)
        await manager.start()
        await wait_until(lambda: len(observer.messages) >= 2)
        await manager.stop()

        assert observer.messages[0] == {"type": "heartbeat"}
        assert observer.closed
        assert manager.count == 0
