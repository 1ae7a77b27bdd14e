"""Single serialization point for every command in the process."""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from ..common.exceptions import CommandError, StreamglowError
from .commands import (
    Command,
    CommandKind,
    DeviceSelector,
    SourcePriority,
    TransientEffect,
)
from .config import EffectConfig
from .sequencer import EffectSequencer
from .state import AmbientState, ScoreTracker

logger = logging.getLogger(__name__)

# Ambient color for the leading team, None meaning a tie
LEADER_AMBIENT = {None: "white", 0: "blue", 1: "orange"}
TEAM_STROBE = {0: "blue", 1: "orange"}
VIEWER_PRIORITIES = (SourcePriority.VIEWER, SourcePriority.REQUEST)


class CommandRouter:
    """Receives commands from all sources and applies them one at a time

    ``route`` enqueues; a single consumer task calls ``dispatch`` in arrival
    order so ambient, score and effect state never interleave.
    """

    def __init__(
        self,
        sequencer: EffectSequencer,
        scores: Optional[ScoreTracker] = None,
        effects: Optional[EffectConfig] = None,
        observers=None,
        ledger=None,
    ):
        self.sequencer = sequencer
        self.sequencer.dispatch = self.route
        self.scores = scores or ScoreTracker()
        self.effects = effects or EffectConfig()
        self.observers = observers
        self.ledger = ledger

        self.default_device = DeviceSelector.STRIP
        self.stream_ambient = AmbientState.named(self.effects.default_stream_color)
        self.game_ambient = AmbientState.named("white")
        self._last_ambient_ts: Dict[DeviceSelector, float] = {}

        self.queue: "asyncio.Queue[Command]" = asyncio.Queue()
        self.processed = 0
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None

        self._handlers: Dict[CommandKind, Callable[[Command], Awaitable[None]]] = {
            CommandKind.AMBIENT_COLOR: self._handle_ambient,
            CommandKind.TRANSIENT_EFFECT: self._handle_transient,
            CommandKind.POWER: self._handle_power,
            CommandKind.BRIGHTNESS: self._handle_brightness,
            CommandKind.TEMPERATURE: self._handle_temperature,
            CommandKind.DEVICE_SELECTOR: self._handle_selector,
            CommandKind.SCORE_UPDATE: self._handle_score,
            CommandKind.GOAL_SCORED: self._handle_goal,
            CommandKind.MATCH_LIFECYCLE: self._handle_match,
            CommandKind.DEMOLITION: self._handle_demolition,
            CommandKind.PRIZE_UPDATE: self._handle_prize,
        }
        missing = set(CommandKind) - set(self._handlers)
        if missing:
            raise CommandError(
                f"No handler for {', '.join(sorted(k.name for k in missing))}"
            )

    # Queue

    async def route(self, command: Command) -> None:
        """Enqueue a command for the consumer"""
        await self.queue.put(command)
        logger.debug(f"Enqueued {command.describe()}")

    async def start(self) -> None:
        """Start command processing"""
        if self._running:
            return
        self._running = True
        self._processor_task = asyncio.create_task(
            self._process_commands(), name="command_router"
        )
        logger.info("Command router started")

    async def stop(self) -> None:
        """Stop command processing and drop running effects"""
        self._running = False
        if self._processor_task:
            self._processor_task.cancel()
            try:
                await self._processor_task
            except asyncio.CancelledError:
                pass
            self._processor_task = None
        await self.sequencer.cancel_all()
        logger.info("Command router stopped")

    async def join(self) -> None:
        """Wait until every enqueued command has been processed"""
        await self.queue.join()

    async def _process_commands(self) -> None:
        while self._running:
            command = await self.queue.get()
            try:
                await self.dispatch(command)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Command {command.describe()} failed: {e}")
            finally:
                self.queue.task_done()

    async def dispatch(self, command: Command) -> None:
        """Apply one command; call only from the consumer or in tests"""
        handler = self._handlers.get(command.kind)
        if handler is None:
            raise CommandError(f"Unroutable command kind {command.kind}")
        await handler(command)
        self.processed += 1

    def _target(self, command: Command) -> DeviceSelector:
        return command.device or self.default_device

    def _is_stale(self, device: DeviceSelector, timestamp: float) -> bool:
        """Older than the last ambient write to any targeted device"""
        return any(
            timestamp < self._last_ambient_ts.get(d, 0.0) for d in device.targets
        )

    def _mark_ambient(self, device: DeviceSelector, timestamp: float) -> None:
        for d in device.targets:
            self._last_ambient_ts[d] = max(self._last_ambient_ts.get(d, 0.0), timestamp)

    # Handlers

    async def _handle_ambient(self, command: Command) -> None:
        device = self._target(command)
        state = command.payload.state
        if self._is_stale(device, command.timestamp):
            logger.info(f"Dropping stale ambient {state.name} from {command.source}")
            return
        self._mark_ambient(device, command.timestamp)
        if command.payload.stream:
            self.stream_ambient = state
        await self.sequencer.set_ambient(device, state)

    async def _handle_transient(self, command: Command) -> None:
        effect: TransientEffect = command.payload.effect
        # Viewer and request strobes return to the stream color
        if effect.revert_target is None and command.priority in VIEWER_PRIORITIES:
            effect = dataclasses.replace(effect, revert_target=self.stream_ambient)
        await self.sequencer.play_transient(self._target(command), effect)

    async def _handle_power(self, command: Command) -> None:
        await self.sequencer.set_power(self._target(command), command.payload.on)

    async def _handle_brightness(self, command: Command) -> None:
        await self.sequencer.set_brightness(self._target(command), command.payload.value)

    async def _handle_temperature(self, command: Command) -> None:
        await self.sequencer.set_temperature(
            self._target(command), command.payload.value
        )

    async def _handle_selector(self, command: Command) -> None:
        self.default_device = command.payload.device
        logger.info(f"Default device -> {self.default_device.value}")

    async def _handle_score(self, command: Command) -> None:
        p = command.payload
        self.scores.update(p.team_a_name, p.team_a_score, p.team_b_name, p.team_b_score)

    async def _handle_goal(self, command: Command) -> None:
        team = command.payload.team
        score = self.scores.state
        logger.info(f"Goal scored by {command.payload.scorer or 'unknown'} (team {team})")
        logger.info(f"Team A: '{score.team_a_name}' Score: {score.team_a_score}")
        logger.info(f"Team B: '{score.team_b_name}' Score: {score.team_b_score}")

        ambient = AmbientState.named(LEADER_AMBIENT[self.scores.leader()])
        self.game_ambient = ambient
        if self._is_stale(DeviceSelector.STRIP, command.timestamp):
            # The strobe still plays, reverting to the newer ambient
            logger.info("Goal older than the last ambient write, ambient kept")
            revert = None
        else:
            self._mark_ambient(DeviceSelector.STRIP, command.timestamp)
            await self.sequencer.set_ambient(DeviceSelector.STRIP, ambient)
            revert = ambient
        await asyncio.sleep(self.effects.goal_delay_ms / 1000)

        strobe = TransientEffect.strobe(
            TEAM_STROBE.get(team, "white"),
            self.effects.strobe_ms,
            revert_target=revert,
        )
        ok = False
        try:
            ok = await self.sequencer.play_transient(DeviceSelector.STRIP, strobe)
        except Exception as e:
            logger.error(f"Goal strobe raised: {e}")
        if ok:
            return

        logger.warning("Goal strobe failed, falling back to white strobe")
        white = AmbientState.named("white")
        fallback = TransientEffect.strobe(
            "white", self.effects.strobe_ms, revert_target=white if revert else None
        )
        await self.sequencer.play_transient(DeviceSelector.STRIP, fallback)

    async def _handle_match(self, command: Command) -> None:
        if self._is_stale(DeviceSelector.BOTH, command.timestamp):
            logger.info(f"Dropping stale match {command.payload.event} event")
            return
        logger.info(f"Match {command.payload.event}: default white set")
        white = AmbientState.named("white")
        self.game_ambient = white
        self._mark_ambient(DeviceSelector.BOTH, command.timestamp)
        await self.sequencer.force_ambient(DeviceSelector.BOTH, white)

    async def _handle_demolition(self, command: Command) -> None:
        p = command.payload
        logger.info(f"{p.victim or 'unknown'} demolished by {p.attacker or 'unknown'}")
        effect = TransientEffect.demo(
            self.effects.demo_ms,
            revert_target=self.sequencer.ambient(DeviceSelector.STRIP),
        )
        await self.sequencer.play_transient(DeviceSelector.STRIP, effect)

    async def _handle_prize(self, command: Command) -> None:
        p = command.payload
        if self.observers is not None:
            await self.observers.broadcast_payload(p.to_message())
        if not p.record:
            return
        if self.ledger is None:
            logger.warning(f"No ledger configured, {p.place} donation not recorded")
            return
        try:
            await self.ledger.add(p.place, p.amount)
        except (StreamglowError, ValueError) as e:
            logger.error(f"Prize pool update failed: {e}")

    # State

    def snapshot(self) -> Dict[str, Any]:
        return {
            "default_device": self.default_device.value,
            "stream_ambient": self.stream_ambient.to_dict(),
            "game_ambient": self.game_ambient.to_dict(),
            "score": self.scores.get_state(),
            "devices": self.sequencer.get_state(),
            "queued": self.queue.qsize(),
            "processed": self.processed,
            "timestamp": time.time(),
        }
