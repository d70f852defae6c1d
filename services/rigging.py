"""Per-spin outcome configuration and reconciliation against the live entry list."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

import aiohttp

from core import get_logger
from core.constants import ResolutionStatus, RiggingStatus, SpinMode
from core.exceptions import RiggingConfigError
from services.entry_registry import EntryRegistry, IdentityTarget, Resolution
from utils.validators import clean_text, normalize_name, normalize_spin_number

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SpinConfig:
    """Mode and optional target configured for one spin number."""

    spin_number: int
    mode: SpinMode = SpinMode.RANDOM
    target: Optional[IdentityTarget] = None

    @property
    def is_rigged(self) -> bool:
        return self.mode is SpinMode.FIXED and self.target is not None and not self.target.is_empty

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spinNumber": self.spin_number,
            "mode": self.mode.value,
            "target": self.target.to_dict() if self.target else None,
        }


def target_identity_key(target: IdentityTarget) -> Optional[str]:
    """Key used to stop one entry being the target of two spins."""
    if target.ticket:
        return f"ticket:{target.ticket}"
    name = normalize_name(target.display_name)
    return f"name:{name}" if name else None


def validate_assignment(
    spin_number: Any,
    target: IdentityTarget,
    spin_count: int,
    existing: Iterable[SpinConfig],
) -> int:
    """Check that ``target`` may be rigged for ``spin_number``.

    Returns the normalized spin number. Raises RiggingConfigError for spins
    that already happened, empty targets and entries already rigged for a
    different spin.
    """
    number = normalize_spin_number(spin_number)
    if number <= spin_count:
        raise RiggingConfigError(
            f"Spin {number} has already been completed; only spins after {spin_count} can be configured"
        )
    if target.is_empty:
        raise RiggingConfigError("A fixed spin needs a ticket number or display name")

    key = target_identity_key(target)
    for config in existing:
        if config.spin_number == number or config.target is None:
            continue
        if target_identity_key(config.target) == key:
            raise RiggingConfigError(
                f"This entry is already selected as the winner for spin {config.spin_number}"
            )
    return number


def resolve_target(registry: EntryRegistry, target: IdentityTarget) -> Resolution:
    """Resolve a configured target against the current entries.

    Ticket first and authoritative, even when the configured name has gone
    stale. Without a ticket, only a name that occurs exactly once resolves.
    """
    return registry.find_index_by_identity(target)


@dataclass(frozen=True, slots=True)
class RiggingOutcome:
    status: RiggingStatus
    resolution: Optional[Resolution] = None
    used_fallback: bool = False

    @property
    def target_index(self) -> Optional[int]:
        if self.resolution is not None and self.resolution.ok:
            return self.resolution.index
        return None

    @classmethod
    def not_rigged(cls) -> "RiggingOutcome":
        return cls(RiggingStatus.NOT_RIGGED)

    @classmethod
    def from_resolution(cls, resolution: Resolution, used_fallback: bool = False) -> "RiggingOutcome":
        if resolution.ok:
            status = RiggingStatus.HIT
        elif resolution.status is ResolutionStatus.AMBIGUOUS:
            status = RiggingStatus.MISSED_AMBIGUOUS
        else:
            status = RiggingStatus.MISSED_NOT_FOUND
        return cls(status, resolution, used_fallback)


class RiggingFallback(Protocol):
    """External source asked once when local resolution fails."""

    async def lookup(
        self, wheel_id: str, spin_number: int, target: IdentityTarget
    ) -> Optional[IdentityTarget]:
        ...


class HttpRiggingFallback:
    """Ask a remote service which entry should win a spin.

    The service receives ``{wheelId, spinNumber, target}`` as JSON and answers
    ``{"winner": "<ticket or name>"}``. Failures are logged and treated as no
    answer.
    """

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def lookup(
        self, wheel_id: str, spin_number: int, target: IdentityTarget
    ) -> Optional[IdentityTarget]:
        payload = {"wheelId": wheel_id, "spinNumber": spin_number, "target": target.to_dict()}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=payload) as response:
                    if response.status != 200:
                        logger.warning(f"Rigging fallback answered HTTP {response.status}")
                        return None
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Rigging fallback unavailable: {e}")
            return None

        winner = clean_text(data.get("winner")) if isinstance(data, Mapping) else ""
        if not winner:
            return None
        return IdentityTarget(ticket_number=winner)


class RiggingReconciler:
    """Turn a spin's configuration into a target index, or a recorded miss."""

    def __init__(self, fallback: Optional[RiggingFallback] = None) -> None:
        self.fallback = fallback

    async def reconcile(
        self,
        registry: EntryRegistry,
        config: Optional[SpinConfig],
        wheel_id: str = "",
    ) -> RiggingOutcome:
        if config is None or not config.is_rigged:
            return RiggingOutcome.not_rigged()

        resolution = resolve_target(registry, config.target)
        if resolution.ok:
            logger.info(f"Spin {config.spin_number} rigged to index {resolution.index}")
            return RiggingOutcome.from_resolution(resolution)

        if self.fallback is not None:
            retried = await self._retry_with_fallback(registry, config, wheel_id)
            if retried is not None:
                return retried

        logger.warning(
            f"Spin {config.spin_number} rigging missed ({resolution.status.value}): {resolution.reason}"
        )
        return RiggingOutcome.from_resolution(resolution)

    async def _retry_with_fallback(
        self, registry: EntryRegistry, config: SpinConfig, wheel_id: str
    ) -> Optional[RiggingOutcome]:
        try:
            answer = await self.fallback.lookup(wheel_id, config.spin_number, config.target)
        except Exception as e:
            logger.error(f"Rigging fallback failed: {e}")
            return None
        if answer is None or answer.is_empty:
            return None

        # The answer is a bare value: try it as a ticket, then as a unique name
        resolution = resolve_target(registry, answer)
        if not resolution.ok and answer.ticket:
            resolution = resolve_target(registry, IdentityTarget(display_name=answer.ticket))
        if not resolution.ok:
            return None

        logger.info(f"Spin {config.spin_number} rigged to index {resolution.index} via fallback")
        return RiggingOutcome.from_resolution(resolution, used_fallback=True)
