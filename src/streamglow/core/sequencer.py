"""Ambient state and transient effect sequencing per device."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

from ..common.colors import PATTERNS
from ..devices.facade import DeviceFacade
from .commands import Command, DeviceSelector, TransientEffect
from .state import AmbientState

logger = logging.getLogger(__name__)

STRIP = DeviceSelector.STRIP
PANEL = DeviceSelector.PANEL
DEVICES = (STRIP, PANEL)


@dataclass(eq=False)
class ActiveEffect:
    """A transient effect occupying one or more device slots"""

    effect: TransientEffect
    target: DeviceSelector
    devices: FrozenSet[DeviceSelector]
    # Ambient versions when the effect started, to detect newer ambient writes
    ambient_versions: Dict[DeviceSelector, int]
    started: float = field(default_factory=time.time)
    task: Optional[asyncio.Task] = None

    @property
    def remaining_ms(self) -> float:
        elapsed = (time.time() - self.started) * 1000
        return max(0.0, self.effect.duration_ms - elapsed)


class EffectSequencer:
    """Owns ambient state and the transient-effect slot of each device

    All mutating calls are serialized by one lock, which expiry timers also
    take before reverting. Chained commands are handed to ``dispatch`` after
    the lock is released.
    """

    def __init__(
        self,
        facade: DeviceFacade,
        power_delay: float = 0.1,
        dispatch: Optional[Callable[[Command], Awaitable[Any]]] = None,
    ):
        self.facade = facade
        self.power_delay = power_delay
        self.dispatch = dispatch
        self._lock = asyncio.Lock()
        self._ambient: Dict[DeviceSelector, AmbientState] = {
            device: AmbientState() for device in DEVICES
        }
        self._ambient_version: Dict[DeviceSelector, int] = {d: 0 for d in DEVICES}
        # Last ambient actually pushed to each device, None after an effect
        self._applied: Dict[DeviceSelector, Optional[AmbientState]] = {
            d: None for d in DEVICES
        }
        self._slots: Dict[DeviceSelector, ActiveEffect] = {}

    # Queries

    def ambient(self, device: DeviceSelector) -> AmbientState:
        return self._ambient[device]

    def active_effect(self, device: DeviceSelector) -> Optional[TransientEffect]:
        active = self._slots.get(device)
        return active.effect if active else None

    def is_busy(self, device: DeviceSelector) -> bool:
        return device in self._slots

    # Ambient

    async def set_ambient(
        self, device: DeviceSelector, state: AmbientState, apply: bool = True
    ) -> bool:
        """Record ambient state and apply it where no effect is running

        Re-applying the ambient a device already shows makes no device call.
        """
        async with self._lock:
            ok = True
            for target in device.targets:
                self._record_ambient(target, state)
                if apply and target not in self._slots:
                    ok = await self._apply(target, state) and ok
            return ok

    async def force_ambient(self, device: DeviceSelector, state: AmbientState) -> bool:
        """Cancel running effects on the device(s) and apply ambient now"""
        async with self._lock:
            for target in device.targets:
                active = self._slots.get(target)
                if active:
                    self._release(active)
                    logger.info(f"{target.value}: {active.effect.pattern_id} preempted")
            ok = True
            for target in device.targets:
                self._record_ambient(target, state)
                ok = await self._apply(target, state, force=True) and ok
            return ok

    def _record_ambient(self, device: DeviceSelector, state: AmbientState) -> None:
        if self._ambient[device] != state:
            logger.debug(f"{device.value}: ambient -> {state.name}")
        self._ambient[device] = state
        self._ambient_version[device] += 1

    async def _apply(
        self, device: DeviceSelector, state: AmbientState, force: bool = False
    ) -> bool:
        if not force and self._applied[device] == state:
            logger.debug(f"{device.value}: ambient {state.name} already applied")
            return True

        if device is PANEL:
            ok = await self.facade.set_power(PANEL, state.power)
        elif state.pattern is not None:
            ok = await self.facade.set_pattern(STRIP, state.pattern)
        else:
            ok = await self.facade.set_color(STRIP, state.color)

        self._applied[device] = state if ok else None
        return ok

    # Direct device settings

    async def set_power(self, device: DeviceSelector, on: bool) -> bool:
        async with self._lock:
            ok = True
            for target in device.targets:
                if target is PANEL:
                    current = self._ambient[PANEL]
                    self._record_ambient(
                        PANEL,
                        AmbientState(current.color, current.pattern_id, on, current.name),
                    )
                    if PANEL in self._slots:
                        continue
                    ok = await self._apply(PANEL, self._ambient[PANEL]) and ok
                else:
                    ok = await self._power_strip(on) and ok
                    self._applied[STRIP] = None
            return ok

    async def set_brightness(self, device: DeviceSelector, value: int) -> bool:
        async with self._lock:
            return await self.facade.set_brightness(device, value)

    async def set_temperature(self, device: DeviceSelector, value: int) -> bool:
        async with self._lock:
            return await self.facade.set_temperature(device, value)

    async def _power_strip(self, on: bool) -> bool:
        ok = await self.facade.set_power(STRIP, on)
        # Compensating delay: the strip's reply can arrive truncated right
        # after a power transition, so the next command waits a little.
        await asyncio.sleep(self.power_delay)
        return ok

    # Transient effects

    async def play_transient(
        self, device: DeviceSelector, effect: TransientEffect
    ) -> bool:
        """Start an effect, preempting any effect on the same device(s)

        Returns whether the entry device calls succeeded. On failure no
        expiry timer is armed and the devices are returned to ambient.
        """
        async with self._lock:
            devices = set(device.targets)
            if effect.panel_off:
                devices.add(PANEL)

            preempted = {self._slots[d] for d in devices if d in self._slots}
            for active in preempted:
                self._release(active)
                logger.info(
                    f"{active.target.value}: {active.effect.pattern_id} "
                    f"preempted by {effect.pattern_id}"
                )
                # Devices of the old effect the new one does not cover
                for orphan in active.devices - devices:
                    await self._apply(orphan, self._ambient[orphan], force=True)

            active = ActiveEffect(
                effect=effect,
                target=device,
                devices=frozenset(devices),
                ambient_versions={d: self._ambient_version[d] for d in devices},
            )
            for d in devices:
                self._slots[d] = active
                self._applied[d] = None

            ok = await self._enter(active)
            if not ok:
                logger.warning(f"{device.value}: {effect.pattern_id} entry failed")
                self._release(active)
                for d in active.devices:
                    await self._apply(d, self._ambient[d], force=True)
                return False

            active.task = asyncio.create_task(
                self._expire(active), name=f"expire-{effect.pattern_id}"
            )
            logger.info(
                f"{device.value}: {effect.pattern_id} for {effect.duration_ms}ms"
            )
            return True

    async def _enter(self, active: ActiveEffect) -> bool:
        effect = active.effect
        if effect.panel_off:
            await self.facade.set_power(PANEL, False)
        if STRIP not in active.devices:
            return True

        if effect.flash_color is not None:
            return await self.facade.set_color(STRIP, effect.flash_color)

        pattern = PATTERNS.get(effect.pattern_id)
        if pattern is None:
            logger.error(f"Unknown effect pattern: {effect.pattern_id}")
            return False
        # The strip only accepts a custom pattern once it has powered down
        if not await self._power_strip(False):
            return False
        return await self.facade.set_pattern(STRIP, pattern)

    async def _expire(self, active: ActiveEffect) -> None:
        await asyncio.sleep(active.effect.duration_ms / 1000)
        async with self._lock:
            if not self._owns_slots(active):
                return
            self._release(active, cancel_task=False)
            revert = active.effect.revert_target
            for device in sorted(active.devices, key=lambda d: d is PANEL):
                target = self._ambient[device]
                newer = self._ambient_version[device] != active.ambient_versions[device]
                if revert is not None and device in active.target.targets and not newer:
                    self._record_ambient(device, revert)
                    target = revert
                await self._apply(device, target, force=True)
            logger.info(f"{active.target.value}: {active.effect.pattern_id} expired")

        chained = active.effect.chained_command
        if chained is not None:
            if self.dispatch is None:
                logger.warning(f"No dispatcher for chained {chained.describe()}")
            else:
                await self.dispatch(chained)

    def _owns_slots(self, active: ActiveEffect) -> bool:
        return all(self._slots.get(d) is active for d in active.devices)

    def _release(self, active: ActiveEffect, cancel_task: bool = True) -> None:
        for device in active.devices:
            if self._slots.get(device) is active:
                del self._slots[device]
        if cancel_task and active.task is not None and not active.task.done():
            active.task.cancel()

    async def cancel_all(self) -> None:
        """Drop every running effect without reverting"""
        async with self._lock:
            for active in set(self._slots.values()):
                self._release(active)
        await asyncio.sleep(0)

    def get_state(self) -> Dict[str, Any]:
        state = {}
        for device in DEVICES:
            active = self._slots.get(device)
            state[device.value] = {
                "ambient": self._ambient[device].to_dict(),
                "effect": {
                    "pattern": active.effect.pattern_id,
                    "remaining_ms": round(active.remaining_ms),
                }
                if active
                else None,
            }
        return state
