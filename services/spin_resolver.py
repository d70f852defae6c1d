"""Spin lifecycle: rotation bounds, timed animation and the one-shot winner."""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from core import get_logger
from core.constants import (
    EasingDefaults,
    IdleRotationDefaults,
    RiggingStatus,
    SpinDefaults,
    SpinMode,
    SpinState,
)
from core.exceptions import InvalidSpinRequestError
from services.entry_registry import Entry, EntryRegistry, IdentityTarget
from services.rigging import RiggingOutcome, SpinConfig
from services.wheel_geometry import (
    closest_slice_index,
    normalize_angle,
    random_end_rotation,
    rigged_end_rotation,
    slice_index_at,
)

logger = get_logger(__name__)

Clock = Callable[[], float]


def ease_power_friction(
    t: float,
    split: float = EasingDefaults.ACCELERATION_SHARE,
    p1: int = EasingDefaults.ACCELERATION_POWER,
    p2: int = EasingDefaults.DECELERATION_POWER,
) -> float:
    """Cubic acceleration then quintic deceleration, velocity-continuous at ``split``."""
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    decel_share = (p1 * (1 - split)) / (p2 * split + p1 * (1 - split))
    k = (1 - decel_share) / split ** p1
    a = decel_share / (1 - split) ** p2
    if t < split:
        return k * t ** p1
    return 1 - a * (1 - t) ** p2


@dataclass(frozen=True, slots=True)
class SpinWinner:
    index: int
    display_name: str
    ticket_number: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "displayName": self.display_name,
            "ticketNumber": self.ticket_number,
        }


@dataclass(slots=True)
class SpinRecord:
    """One triggered spin. ``winner`` is written exactly once, at completion."""

    spin_number: int
    mode: SpinMode
    rotation_start: float
    rotation_end: float
    duration_ms: int
    started_at: float
    rigging_status: RiggingStatus = RiggingStatus.NOT_RIGGED
    rigged_target: Optional[IdentityTarget] = None
    target_index: Optional[int] = None
    adjustment: Optional[float] = None
    used_fallback: bool = False
    winner: Optional[SpinWinner] = None
    entries: List[Entry] = field(default_factory=list, repr=False)

    @property
    def rigging_hit(self) -> bool:
        return self.rigging_status is RiggingStatus.HIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spinNumber": self.spin_number,
            "mode": self.mode.value,
            "riggedTarget": self.rigged_target.to_dict() if self.rigged_target else None,
            "rotationStart": self.rotation_start,
            "rotationEnd": self.rotation_end,
            "durationMs": self.duration_ms,
            "riggingStatus": self.rigging_status.value,
            "usedFallback": self.used_fallback,
            "winner": self.winner.to_dict() if self.winner else None,
        }


class SpinResolver:
    """Owns the live rotation scalar and the IDLE/SPINNING/COMPLETED machine.

    Time comes from an injected clock (seconds) and randomness from an
    injected ``random.Random`` so every path can be driven deterministically.
    """

    def __init__(
        self,
        duration_ms: int = SpinDefaults.DURATION_MS,
        rng: Optional[random.Random] = None,
        clock: Clock = time.monotonic,
        on_complete: Optional[Callable[[SpinRecord], None]] = None,
        rotation: float = 0.0,
    ) -> None:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        self.duration_ms = duration_ms
        self.rng = rng or random.SystemRandom()
        self.clock = clock
        self.on_complete = on_complete
        self.rotation = rotation
        self.state = SpinState.IDLE
        self.current: Optional[SpinRecord] = None
        self.winner_pending = False
        self._completed = False
        self._idle_anchor: Optional[float] = None

    @property
    def is_spinning(self) -> bool:
        return self.state is SpinState.SPINNING

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def request_spin(
        self,
        registry: EntryRegistry,
        spin_number: int,
        config: Optional[SpinConfig] = None,
        rigging: Optional[RiggingOutcome] = None,
        now: Optional[float] = None,
    ) -> SpinRecord:
        """Start a spin and compute its rotation bounds up front.

        Raises InvalidSpinRequestError with nothing changed when the wheel is
        already spinning or has no entries.
        """
        if self.state is SpinState.SPINNING:
            raise InvalidSpinRequestError("The wheel is already spinning")
        if len(registry) == 0:
            raise InvalidSpinRequestError("Cannot spin a wheel with no entries")

        rigging = rigging or RiggingOutcome.not_rigged()
        entries = registry.entries
        start = self.rotation
        spread = SpinDefaults.MAX_ROTATIONS - SpinDefaults.MIN_ROTATIONS
        spins = SpinDefaults.MIN_ROTATIONS + self.rng.random() * spread

        adjustment: Optional[float] = None
        target_index = rigging.target_index
        if target_index is not None and target_index < len(entries):
            end, adjustment = rigged_end_rotation(start, spins, target_index, len(entries))
        else:
            target_index = None
            end = random_end_rotation(start, spins, self.rng.random() * 360.0)

        mode = config.mode if config is not None else SpinMode.RANDOM
        record = SpinRecord(
            spin_number=spin_number,
            mode=mode,
            rotation_start=start,
            rotation_end=end,
            duration_ms=self.duration_ms,
            started_at=self._now(now),
            rigging_status=rigging.status,
            rigged_target=config.target if config is not None and config.is_rigged else None,
            target_index=target_index,
            adjustment=adjustment,
            used_fallback=rigging.used_fallback,
            entries=entries,
        )

        self.current = record
        self.state = SpinState.SPINNING
        self.winner_pending = False
        self._completed = False
        self._idle_anchor = None
        logger.info(
            f"Spin {spin_number} started ({mode.value}, {rigging.status.value}): "
            f"{start:.2f} -> {end:.2f} over {self.duration_ms}ms"
        )
        return record

    def progress(self, now: Optional[float] = None) -> float:
        if self.current is None:
            return 0.0
        elapsed_ms = (self._now(now) - self.current.started_at) * 1000.0
        return max(0.0, min(elapsed_ms / self.current.duration_ms, 1.0))

    def tick(self, now: Optional[float] = None) -> float:
        """Advance the spin animation and return the live rotation."""
        if self.state is not SpinState.SPINNING or self.current is None:
            return self.rotation

        now = self._now(now)
        progress = self.progress(now)
        if progress >= 1.0:
            self.finalize(now)
            return self.rotation

        record = self.current
        eased = ease_power_friction(progress)
        self.rotation = record.rotation_start + (record.rotation_end - record.rotation_start) * eased
        return self.rotation

    def finalize(self, now: Optional[float] = None) -> Optional[SpinRecord]:
        """Complete the current spin once its duration has elapsed.

        Returns the record the first time only; later calls, and calls before
        the duration is up, return None and change nothing.
        """
        if self._completed or self.state is not SpinState.SPINNING or self.current is None:
            return None
        if self.progress(now) < 1.0:
            return None

        self._completed = True
        record = self.current
        self.rotation = record.rotation_end
        record.winner = self._compute_winner(record)
        self.state = SpinState.COMPLETED
        self.winner_pending = True

        logger.info(
            f"Spin {record.spin_number} completed: winner #{record.winner.index} "
            f"{record.winner.display_name!r} ({record.rigging_status.value})"
        )
        if self.on_complete is not None:
            try:
                self.on_complete(record)
            except Exception as e:
                logger.error(f"Spin completion callback failed: {e}", exc_info=True)
        return record

    def _compute_winner(self, record: SpinRecord) -> SpinWinner:
        count = len(record.entries)
        try:
            index = slice_index_at(record.rotation_end, count)
            if record.target_index is not None and index != record.target_index:
                logger.warning(
                    f"Pointer reads slice {index} but spin {record.spin_number} "
                    f"targeted {record.target_index}; using the target"
                )
                index = record.target_index
        except Exception as e:
            logger.error(f"Winner lookup failed, using the closest slice centre: {e}", exc_info=True)
            index = closest_slice_index(record.rotation_end, count)

        entry = record.entries[index]
        return SpinWinner(index=index, display_name=entry.display_name, ticket_number=entry.ticket_number)

    def dismiss_winner(self, now: Optional[float] = None) -> None:
        """Close the pending winner and let idle rotation resume."""
        if self.state is SpinState.SPINNING:
            return
        self.winner_pending = False
        self.state = SpinState.IDLE
        self._idle_anchor = self._now(now)

    def idle_tick(self, steps: int = 1) -> float:
        """Advance the slow idle rotation by ``steps`` frames."""
        if self.state is SpinState.SPINNING or self.winner_pending:
            return self.rotation
        self.rotation = normalize_angle(
            self.rotation + IdleRotationDefaults.DEGREES_PER_STEP * steps
        )
        return self.rotation

    def sample(self, now: Optional[float] = None) -> float:
        """Live rotation at ``now``, for renderers polling at any cadence."""
        now = self._now(now)
        if self.state is SpinState.SPINNING:
            return self.tick(now)
        if self.winner_pending or self._idle_anchor is None:
            self._idle_anchor = now
            return self.rotation

        step_s = IdleRotationDefaults.STEP_MS / 1000.0
        steps = int((now - self._idle_anchor) // step_s)
        if steps > 0:
            self.idle_tick(steps)
            self._idle_anchor += steps * step_s
        return self.rotation


class SpinAnimator:
    """Drives a resolver's spin on the event loop, one frame at a time."""

    def __init__(self, resolver: SpinResolver, frame_ms: int = SpinDefaults.FRAME_MS) -> None:
        self.resolver = resolver
        self.frame_s = frame_ms / 1000.0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> None:
        while self.resolver.is_spinning:
            self.resolver.tick()
            if not self.resolver.is_spinning:
                break
            await asyncio.sleep(self.frame_s)

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
