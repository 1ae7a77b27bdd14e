import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..adapters import DonationAdapter, PubSubAdapter, SourceAdapter, TelemetryAdapter
from ..devices.facade import DeviceFacade, create_facade
from ..services.ledger import PrizeLedger
from .commands import (
    Command,
    CommandKind,
    DeviceSelector,
    PowerPayload,
    SourcePriority,
    ambient_command,
)
from .config import SystemConfig
from .router import CommandRouter
from .sequencer import EffectSequencer
from .state import ScoreTracker
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


class SystemController:
    """Builds and runs the orchestrator: devices, router, adapters, observers"""

    def __init__(
        self,
        config: SystemConfig,
        facade: Optional[DeviceFacade] = None,
        ledger: Optional[PrizeLedger] = None,
        start_adapters: bool = True,
    ):
        self.config = config
        self.facade = facade or create_facade(config.devices)
        self.observers = WebSocketManager()
        if ledger is None and config.ledger.enabled:
            ledger = PrizeLedger(
                config.ledger.url, config.ledger.auth_token, config.ledger.timeout
            )
        self.ledger = ledger

        self.sequencer = EffectSequencer(
            self.facade, power_delay=config.effects.power_delay_ms / 1000
        )
        self.scores = ScoreTracker()
        self.router = CommandRouter(
            self.sequencer,
            scores=self.scores,
            effects=config.effects,
            observers=self.observers,
            ledger=self.ledger,
        )

        self.start_adapters = start_adapters
        self.adapters: List[SourceAdapter] = self._build_adapters()
        self.shutdown_event = asyncio.Event()
        self._started = False

    def _build_adapters(self) -> List[SourceAdapter]:
        cfg = self.config
        adapters: List[SourceAdapter] = []
        if cfg.telemetry.enabled:
            adapters.append(
                TelemetryAdapter(
                    cfg.telemetry.url,
                    self.router.route,
                    reconnect_delay=cfg.telemetry.reconnect_delay,
                    observers=self.observers,
                )
            )
        if cfg.pubsub.enabled:
            adapters.append(
                PubSubAdapter(
                    cfg.pubsub.url,
                    self.router.route,
                    channel_id=cfg.pubsub.channel_id,
                    auth_token=cfg.pubsub.auth_token,
                    reconnect_delay=cfg.pubsub.reconnect_delay,
                    heartbeat_interval=cfg.pubsub.heartbeat_interval,
                    subscribe_delay=cfg.pubsub.subscribe_delay,
                    strobe_ms=cfg.effects.strobe_ms,
                )
            )
        if cfg.donations.enabled:
            adapters.append(
                DonationAdapter(
                    cfg.donations.url,
                    self.router.route,
                    token=cfg.donations.token,
                    reconnect_delay=cfg.donations.reconnect_delay,
                )
            )
        return adapters

    @property
    def is_running(self) -> bool:
        return self._started and not self.shutdown_event.is_set()

    async def start(self) -> None:
        """Start the router, apply default lighting and connect feeds"""
        if self._started:
            return
        logger.info("Starting system controller")
        try:
            await self.observers.start()
            await self.router.start()

            # Default lighting: panel on, strip at the stream color
            await self.router.route(
                Command(
                    CommandKind.POWER,
                    PowerPayload(True),
                    device=DeviceSelector.PANEL,
                    priority=SourcePriority.SYSTEM,
                )
            )
            await self.router.route(
                ambient_command(self.router.stream_ambient, DeviceSelector.STRIP)
            )

            if self.start_adapters:
                for adapter in self.adapters:
                    await adapter.start()
            self._started = True
            logger.info("System controller started")
        except Exception as e:
            logger.error(f"Failed to start system: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop adapters, the router and release devices"""
        if self.shutdown_event.is_set():
            return
        logger.info("Stopping system controller")
        self.shutdown_event.set()

        for adapter in self.adapters:
            try:
                await adapter.stop()
            except Exception as e:
                logger.error(f"Error stopping {adapter.name}: {e}")
        await self.router.stop()
        await self.observers.stop()
        await self.facade.close()
        if self.ledger is not None:
            await self.ledger.close()
        logger.info("System controller stopped")

    def get_state(self) -> Dict[str, Any]:
        """Get current system state"""
        return {
            "running": self.is_running,
            "router": self.router.snapshot(),
            "adapters": {a.name: a.get_state() for a in self.adapters},
            "devices": self.facade.get_state(),
            "observers": self.observers.count,
        }
