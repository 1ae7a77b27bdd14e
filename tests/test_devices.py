"""Tests for device backends and the facade."""

import asyncio
import json

import httpx
import pytest

from streamglow.common.colors import COLORS, PATTERNS, Color
from streamglow.common.exceptions import DeviceError, UnsupportedOperation
from streamglow.core.commands import DeviceSelector
from streamglow.core.config import DeviceConfig
from streamglow.devices.facade import DeviceFacade, create_facade
from streamglow.devices.mock import MockBackend
from streamglow.devices.panel import DEFAULT_SETTINGS, KeyLightPanel
from streamglow.devices.strip import (
    MagicHomeStrip,
    checksum,
    color_frame,
    pattern_frame,
    power_frame,
    speed_to_delay,
)


class TestStripFrames:
    """Wire frames for the RGB strip"""

    def test_power_frames(self):
        assert power_frame(True) == bytes([0x71, 0x23, 0x0F, 0xA3])
        assert power_frame(False) == bytes([0x71, 0x24, 0x0F, 0xA4])

    def test_color_frame(self):
        assert color_frame(COLORS["red"]) == bytes(
            [0x31, 0xFF, 0x00, 0x00, 0x00, 0x00, 0xF0, 0x0F, 0x2F]
        )

    def test_color_frame_applies_brightness(self):
        data = color_frame(Color(200, 100, 0, 0))
        assert data[1:4] == bytes([0, 0, 0])

    def test_checksum_wraps(self):
        assert checksum([0xFF, 0x02]) == 0x01

    def test_speed_to_delay(self):
        assert speed_to_delay(100) == 0x01
        assert speed_to_delay(0) == 0x1F
        assert speed_to_delay(150) == 0x01

    def test_pattern_frame_layout(self):
        pattern = PATTERNS["synthwave"]
        data = pattern_frame(pattern, pattern.speed)
        assert len(data) == 70
        assert data[0] == 0x51
        assert data[1:5] == bytes([255, 35, 0, 0])
        assert data[5:9] == bytes([255, 0, 255, 0])
        # Unused slots carry the filler color
        assert data[9:13] == bytes([1, 2, 3, 0])
        assert data[65] == speed_to_delay(70)
        assert data[66] == 0x3A
        assert data[67:69] == bytes([0xFF, 0x0F])
        assert data[69] == checksum(list(data[:69]))

    def test_strobe_transition_byte(self):
        data = pattern_frame(PATTERNS["whitestrobe"], 100)
        assert data[66] == 0x3C


class TestMagicHomeStrip:
    """Strip backend against a local TCP server"""

    @pytest.mark.asyncio
    async def test_commands_reach_the_controller(self, wait_until):
        received = []

        async def handle(reader, writer):
            data = await reader.read(128)
            received.append(data)
            if data[:1] == b"\x71":
                writer.write(b"\x81\x23\x00")
                await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        strip = MagicHomeStrip("127.0.0.1", port, timeout=1.0)
        try:
            await strip.set_power(True)
            await strip.set_color(COLORS["blue"])
            await wait_until(lambda: len(received) == 2)
        finally:
            server.close()
            await server.wait_closed()

        assert received[0] == power_frame(True)
        assert received[1] == color_frame(COLORS["blue"])
        state = strip.get_state()
        assert state["is_on"]
        assert state["color"] == [0, 0, 255, 255]

    @pytest.mark.asyncio
    async def test_unreachable_strip_raises(self):
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        strip = MagicHomeStrip("127.0.0.1", port, timeout=0.5)
        with pytest.raises(DeviceError):
            await strip.set_color(COLORS["red"])
        assert strip.get_state()["error_count"] == 1

    @pytest.mark.asyncio
    async def test_temperature_unsupported(self):
        strip = MagicHomeStrip("127.0.0.1")
        with pytest.raises(UnsupportedOperation):
            await strip.set_temperature(200)

    @pytest.mark.asyncio
    async def test_brightness_needs_color(self):
        strip = MagicHomeStrip("127.0.0.1")
        with pytest.raises(DeviceError):
            await strip.set_brightness(50)


def panel_with(handler):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://panel"
    )
    return KeyLightPanel("http://panel", client=client)


class TestKeyLightPanel:
    """Panel backend over a mocked HTTP transport"""

    @pytest.mark.asyncio
    async def test_power_and_levels(self):
        requests = []

        def handler(request):
            requests.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"numberOfLights": 1, "lights": []})

        panel = panel_with(handler)
        await panel.set_power(True)
        await panel.set_brightness(20)
        await panel.set_temperature(213)
        await panel.close()

        assert requests == [
            ("PUT", "/elgato/lights", {"numberOfLights": 1, "lights": [{"on": 1}]}),
            (
                "PUT",
                "/elgato/lights",
                {"numberOfLights": 1, "lights": [{"brightness": 20}]},
            ),
            (
                "PUT",
                "/elgato/lights",
                {"numberOfLights": 1, "lights": [{"temperature": 213}]},
            ),
        ]
        state = panel.get_state()
        assert state["brightness"] == 20
        assert state["temperature"] == 213

    @pytest.mark.asyncio
    async def test_http_error_raises_device_error(self):
        panel = panel_with(lambda request: httpx.Response(500))
        with pytest.raises(DeviceError):
            await panel.set_power(False)

    @pytest.mark.asyncio
    async def test_reset_settings(self):
        bodies = []

        def handler(request):
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200)

        panel = panel_with(handler)
        await panel.reset_settings()
        assert bodies == [("/elgato/lights/settings", DEFAULT_SETTINGS)]

    @pytest.mark.asyncio
    async def test_accessory_info(self):
        panel = panel_with(
            lambda request: httpx.Response(200, json={"productName": "Elgato Key Light"})
        )
        info = await panel.accessory_info()
        assert info["productName"] == "Elgato Key Light"

    @pytest.mark.asyncio
    async def test_no_color_channel(self):
        panel = panel_with(lambda request: httpx.Response(200))
        with pytest.raises(UnsupportedOperation):
            await panel.set_color(COLORS["red"])


class TestDeviceFacade:
    """Failures become False and never propagate"""

    @pytest.mark.asyncio
    async def test_failure_on_one_device_still_reaches_other(self, panel):
        strip = MockBackend("strip", fail_on={"power"})
        facade = DeviceFacade(strip, panel)
        ok = await facade.set_power(DeviceSelector.BOTH, False)
        assert not ok
        assert panel.operations("power") == [False]
        assert strip.get_state()["error_count"] == 1

    @pytest.mark.asyncio
    async def test_unsupported_operation_returns_false(self, facade, panel):
        assert not await facade.set_color(DeviceSelector.PANEL, COLORS["red"])
        assert panel.calls == []

    @pytest.mark.asyncio
    async def test_pattern_uses_pattern_speed(self, facade, strip):
        assert await facade.set_pattern(DeviceSelector.STRIP, PATTERNS["aquatic"])
        assert strip.operations("pattern") == ["aquatic"]

    def test_create_mock_facade(self):
        facade = create_facade(DeviceConfig(backend="mock"))
        state = facade.get_state()
        assert state["strip"]["is_mock"]
        assert state["panel"]["is_mock"]

    def test_create_live_facade(self):
        facade = create_facade(DeviceConfig(strip_host="10.1.1.1"))
        assert isinstance(facade.backend(DeviceSelector.STRIP), MagicHomeStrip)
        assert isinstance(facade.backend(DeviceSelector.PANEL), KeyLightPanel)
