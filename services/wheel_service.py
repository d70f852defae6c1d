"""Wheel orchestration: snapshots, spins, rigging configuration and winners.

All methods run on the main asyncio loop. Flask handlers reach them through
``services.async_runner.run_coroutine_sync``.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from core import get_logger
from core.constants import SpinDefaults, SpinMode, WheelDefaults
from core.exceptions import (
    EntryNotFoundError,
    InvalidSpinRequestError,
    RiggingConfigError,
    ValidationError,
    WheelNotFoundError,
)
from database.models import SpinConfigRow, WheelRow
from database.repositories import (
    RemovedEntryRepository,
    SpinConfigRepository,
    WheelRepository,
    WinnerRepository,
    clear_wheel_state,
    utc_now,
)
from services.entry_registry import Entry, EntryRegistry, IdentityTarget, entries_from_rows
from services.events import EventBus, WinnerRemovedEvent
from services.rigging import (
    RiggingReconciler,
    SpinConfig,
    validate_assignment,
)
from services.spin_resolver import SpinAnimator, SpinRecord, SpinResolver
from utils.validators import (
    clean_text,
    normalize_spin_number,
    normalize_ticket,
    validate_wheel_id,
)

logger = get_logger(__name__)


def spin_config_from_row(row: SpinConfigRow) -> SpinConfig:
    target = None
    if row.target_ticket or row.target_name:
        target = IdentityTarget(ticket_number=row.target_ticket, display_name=row.target_name)
    return SpinConfig(spin_number=row.spin_number, mode=SpinMode(row.mode), target=target)


def parse_mode(value: Any) -> SpinMode:
    try:
        return SpinMode(clean_text(value).lower())
    except ValueError as e:
        raise ValidationError(f"Mode must be 'random' or 'fixed', got {value!r}") from e


def entries_from_payload(values: Any) -> List[Entry]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValidationError("entries must be a list")
    entries = []
    for position, value in enumerate(values):
        if isinstance(value, str) and not value.strip():
            continue
        entries.append(Entry.from_payload(value, position))
    return entries


@dataclass
class WheelSession:
    """In-memory state of one wheel while the server runs."""

    wheel_id: str
    registry: EntryRegistry
    resolver: SpinResolver
    animator: SpinAnimator
    settings: Dict[str, Any]
    spin_count: int
    created_at: str
    updated_at: str
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_record: Optional[SpinRecord] = None
    persist_task: Optional[asyncio.Task] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "wheelId": self.wheel_id,
            "entries": [entry.to_dict() for entry in self.registry.entries],
            **self.registry.maps.to_dict(),
            "settings": dict(self.settings),
            "spinCount": self.spin_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class WheelService:
    """Entry point for everything the web layer does with wheels."""

    def __init__(
        self,
        default_wheel_id: str = WheelDefaults.WHEEL_ID,
        duration_ms: int = SpinDefaults.DURATION_MS,
        frame_ms: int = SpinDefaults.FRAME_MS,
        reconciler: Optional[RiggingReconciler] = None,
        events: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
        clock=time.monotonic,
    ) -> None:
        self.default_wheel_id = default_wheel_id
        self.duration_ms = duration_ms
        self.frame_ms = frame_ms
        self.reconciler = reconciler or RiggingReconciler()
        self.events = events or EventBus()
        self.rng = rng
        self.clock = clock
        self._sessions: Dict[str, WheelSession] = {}
        # Guards loading and replacing sessions, never held across a spin
        self._load_lock = asyncio.Lock()
        self.events.subscribe(WinnerRemovedEvent, self._record_removed_winner)

    # Sessions

    def _new_session(self, row: WheelRow) -> WheelSession:
        registry = EntryRegistry(entries_from_payload(row.entries))
        resolver = SpinResolver(duration_ms=self.duration_ms, rng=self.rng, clock=self.clock)
        session = WheelSession(
            wheel_id=row.wheel_id,
            registry=registry,
            resolver=resolver,
            animator=SpinAnimator(resolver, frame_ms=self.frame_ms),
            settings=dict(row.settings),
            spin_count=row.spin_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        resolver.on_complete = lambda record: self._on_spin_complete(session, record)
        return session

    async def _load_session(self, wheel_id: str) -> WheelSession:
        wheel_id = validate_wheel_id(wheel_id)
        session = self._sessions.get(wheel_id)
        if session is not None:
            return session

        async with self._load_lock:
            # Another caller may have loaded it while we waited
            session = self._sessions.get(wheel_id)
            if session is not None:
                return session

            row = await WheelRepository.get(wheel_id)
            if row is None and wheel_id == self.default_wheel_id:
                entries = [Entry(name).to_dict() for name in WheelDefaults.ENTRIES]
                await WheelRepository.upsert(wheel_id, entries, {}, spin_count=0)
                row = await WheelRepository.get(wheel_id)
                logger.info(f"Created default wheel {wheel_id!r}")
            if row is None:
                raise WheelNotFoundError(f"Wheel {wheel_id!r} not found")

            session = self._new_session(row)
            self._sessions[wheel_id] = session
            return session

    async def _persist_snapshot(self, session: WheelSession) -> None:
        entries = [entry.to_dict() for entry in session.registry.entries]
        await WheelRepository.upsert(session.wheel_id, entries, session.settings)
        session.updated_at = utc_now()

    async def shutdown(self) -> None:
        for session in self._sessions.values():
            await session.animator.stop()
            if session.persist_task is not None:
                await asyncio.gather(session.persist_task, return_exceptions=True)
        self._sessions.clear()

    # Snapshots

    async def get_snapshot(self, wheel_id: str) -> Dict[str, Any]:
        wheel_id = validate_wheel_id(wheel_id)
        session = self._sessions.get(wheel_id)
        if session is None and wheel_id == self.default_wheel_id:
            session = await self._load_session(wheel_id)
        if session is not None:
            return session.snapshot()
        row = await WheelRepository.get(wheel_id)
        if row is None:
            raise WheelNotFoundError(f"Wheel {wheel_id!r} not found")
        return self._new_session(row).snapshot()

    async def save_snapshot(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Create or replace a wheel document. Identity maps are always rebuilt."""
        wheel_id = validate_wheel_id(payload.get("wheelId"))
        entries = entries_from_payload(payload.get("entries"))
        settings = self._settings_from_payload(payload)
        spin_count = self._optional_spin_count(payload)
        registry = EntryRegistry(entries)
        stored = [entry.to_dict() for entry in registry.entries]

        async with self._load_lock:
            session = self._sessions.get(wheel_id)
            if session is None:
                await WheelRepository.upsert(wheel_id, stored, settings, spin_count=spin_count)
            else:
                async with session.lock:
                    if session.resolver.is_spinning:
                        raise InvalidSpinRequestError(
                            "Cannot replace entries while the wheel is spinning"
                        )
                    await WheelRepository.upsert(wheel_id, stored, settings, spin_count=spin_count)
                    session.registry.rebuild(registry.entries)
                    session.settings = settings
                    row = await WheelRepository.get(wheel_id)
                    session.spin_count = row.spin_count
                    session.updated_at = row.updated_at

        logger.info(f"Saved wheel {wheel_id!r} with {len(registry)} entries")
        if session is not None:
            return session.snapshot()
        return await self.get_snapshot(wheel_id)

    async def update_snapshot(self, wheel_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Partial update of an existing wheel."""
        session = await self._load_existing(wheel_id)
        entries = entries_from_payload(payload.get("entries")) if "entries" in payload else None
        settings = self._settings_from_payload(payload) if "settings" in payload else None
        spin_count = self._optional_spin_count(payload)

        async with session.lock:
            if entries is not None:
                if session.resolver.is_spinning:
                    raise InvalidSpinRequestError("Cannot replace entries while the wheel is spinning")
                session.registry.rebuild(entries)
            if settings is not None:
                session.settings = settings
            if spin_count is not None:
                session.spin_count = spin_count
                await WheelRepository.set_spin_count(session.wheel_id, spin_count)
            await self._persist_snapshot(session)
        return session.snapshot()

    @staticmethod
    def _settings_from_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
        settings = payload.get("settings") or {}
        if not isinstance(settings, Mapping):
            raise ValidationError("settings must be an object")
        return dict(settings)

    async def _load_existing(self, wheel_id: str) -> WheelSession:
        wheel_id = validate_wheel_id(wheel_id)
        if (
            wheel_id != self.default_wheel_id
            and wheel_id not in self._sessions
            and await WheelRepository.get(wheel_id) is None
        ):
            raise WheelNotFoundError(f"Wheel {wheel_id!r} not found")
        return await self._load_session(wheel_id)

    @staticmethod
    def _optional_spin_count(payload: Mapping[str, Any]) -> Optional[int]:
        value = payload.get("spinCount")
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError("spinCount must be a non-negative integer")
        return value

    async def delete_wheel(self, wheel_id: str) -> Dict[str, Any]:
        """Forget a wheel document and everything recorded for it."""
        wheel_id = validate_wheel_id(wheel_id)
        async with self._load_lock:
            session = self._sessions.pop(wheel_id, None)
            if session is not None:
                await session.animator.stop()
            await clear_wheel_state(wheel_id, keep_wheel=False)
        logger.info(f"Deleted wheel {wheel_id!r}")
        return {"success": True, "message": "Wheel reset successfully"}

    # Spins

    async def start_spin(self, wheel_id: str) -> SpinRecord:
        session = await self._load_session(wheel_id)
        async with session.lock:
            if session.resolver.is_spinning:
                raise InvalidSpinRequestError("The wheel is already spinning")
            if len(session.registry) == 0:
                raise InvalidSpinRequestError("Cannot spin a wheel with no entries")

            spin_number = session.spin_count + 1
            # Read once; later edits do not affect this spin
            row = await SpinConfigRepository.get(session.wheel_id, spin_number)
            config = spin_config_from_row(row) if row else None
            outcome = await self.reconciler.reconcile(session.registry, config, session.wheel_id)

            record = session.resolver.request_spin(
                session.registry, spin_number, config=config, rigging=outcome
            )
            session.last_record = record
            session.animator.start()
            return record

    def _on_spin_complete(self, session: WheelSession, record: SpinRecord) -> None:
        session.spin_count = max(session.spin_count, record.spin_number)
        session.persist_task = asyncio.get_running_loop().create_task(
            self._persist_winner(session, record)
        )

    async def _persist_winner(self, session: WheelSession, record: SpinRecord) -> None:
        winner = record.winner
        try:
            await WinnerRepository.record_spin(
                session.wheel_id,
                record.spin_number,
                winner.index,
                winner.display_name,
                winner.ticket_number,
                record.rotation_start,
                record.rotation_end,
                record.rigging_status.value,
            )
        except Exception as e:
            logger.error(f"Failed to store winner of spin {record.spin_number}: {e}", exc_info=True)

    async def rotation(self, wheel_id: str) -> Dict[str, Any]:
        session = await self._load_session(wheel_id)
        resolver = session.resolver
        rotation = resolver.sample()
        record = session.last_record
        return {
            "wheelId": session.wheel_id,
            "rotation": rotation,
            "state": resolver.state.value,
            "progress": resolver.progress() if resolver.is_spinning else None,
            "winnerPending": resolver.winner_pending,
            "spinCount": session.spin_count,
            "spin": record.to_dict() if record is not None else None,
        }

    async def complete_spin(self, wheel_id: str) -> SpinRecord:
        """Finalize the running spin; repeated calls return the same record."""
        session = await self._load_session(wheel_id)
        resolver = session.resolver
        resolver.finalize()
        if resolver.is_spinning:
            raise InvalidSpinRequestError("The spin is still in progress")
        if session.last_record is None or session.last_record.winner is None:
            raise InvalidSpinRequestError("No spin to complete")
        await self._flush(session)
        return session.last_record

    async def wait_for_spin(self, wheel_id: str) -> Optional[SpinRecord]:
        session = await self._load_session(wheel_id)
        await session.animator.wait()
        await self._flush(session)
        return session.last_record

    async def _flush(self, session: WheelSession) -> None:
        if session.persist_task is not None:
            await session.persist_task

    async def dismiss_winner(self, wheel_id: str) -> Dict[str, Any]:
        session = await self._load_session(wheel_id)
        session.resolver.dismiss_winner()
        return await self.rotation(wheel_id)

    async def remove_winner(self, wheel_id: str) -> Entry:
        """Take the pending winner off the wheel and announce it.

        By ticket when the winner has one, otherwise only if its name is
        unique on the wheel.
        """
        session = await self._load_session(wheel_id)
        async with session.lock:
            record = session.last_record
            if record is None or record.winner is None or not session.resolver.winner_pending:
                raise EntryNotFoundError("There is no winner to remove")
            if session.resolver.is_spinning:
                raise InvalidSpinRequestError("Cannot remove entries while the wheel is spinning")

            winner = record.winner
            removed = session.registry.remove_entry(winner.display_name, winner.ticket_number)
            await self._persist_snapshot(session)
            session.resolver.dismiss_winner()
        await self.events.publish(
            WinnerRemovedEvent(session.wheel_id, removed.display_name, removed.ticket_number)
        )
        return removed

    # Admin

    async def _record_removed_winner(self, event: WinnerRemovedEvent) -> None:
        # Ticket-only entries display their ticket as the name; the ticket still counts here
        ticket = normalize_ticket(event.ticket_number)
        if ticket is None:
            logger.info(f"Removal of {event.display_name!r} has no ticket; ledger unchanged")
            return
        await RemovedEntryRepository.add(event.wheel_id, event.display_name, ticket)
        cleared = await SpinConfigRepository.clear_targets_with_ticket(event.wheel_id, ticket)
        if cleared:
            logger.info(f"Cleared {cleared} rigged spin(s) targeting ticket {ticket}")

    async def list_spin_configs(self, wheel_id: str) -> List[SpinConfig]:
        session = await self._load_existing(wheel_id)
        rows = await SpinConfigRepository.list_for_wheel(session.wheel_id)
        return [spin_config_from_row(row) for row in rows]

    async def set_spin_modes(self, wheel_id: str, modes: Mapping[Any, Any]) -> List[SpinConfig]:
        session = await self._load_existing(wheel_id)
        parsed = {normalize_spin_number(k): parse_mode(v) for k, v in modes.items()}
        for number in parsed:
            if number <= session.spin_count:
                raise RiggingConfigError(f"Spin {number} has already been completed")
        for number, mode in sorted(parsed.items()):
            await SpinConfigRepository.set_mode(session.wheel_id, number, mode.value)
        return await self.list_spin_configs(wheel_id)

    async def set_rigged_winner(
        self, wheel_id: str, spin_number: Any, target: IdentityTarget
    ) -> SpinConfig:
        """Configure ``target`` as the winner of a future spin and switch it to fixed."""
        session = await self._load_existing(wheel_id)
        if target.is_empty:
            raise RiggingConfigError("A fixed spin needs a ticket number or display name")
        resolution = session.registry.find_index_by_identity(target)
        if not resolution.ok:
            raise RiggingConfigError(resolution.reason)
        entry = session.registry[resolution.index]
        ticket = target.ticket or (entry.ticket_number if entry.has_ticket else None)
        stored = IdentityTarget(ticket, entry.display_name)

        existing = await self.list_spin_configs(wheel_id)
        number = validate_assignment(spin_number, stored, session.spin_count, existing)

        await SpinConfigRepository.upsert(
            session.wheel_id, number, SpinMode.FIXED.value, ticket, entry.display_name
        )
        logger.info(f"Spin {number} of {session.wheel_id!r} set to land on {entry.display_name!r}")
        return SpinConfig(number, SpinMode.FIXED, stored)

    async def clear_rigged_winner(self, wheel_id: str, spin_number: Any) -> bool:
        session = await self._load_existing(wheel_id)
        number = normalize_spin_number(spin_number)
        return await SpinConfigRepository.clear_target(session.wheel_id, number)

    async def import_entries(self, wheel_id: str, rows: Iterable[Any]) -> Dict[str, Any]:
        """Replace the wheel's entries from imported rows."""
        session = await self._load_session(wheel_id)
        async with session.lock:
            if session.resolver.is_spinning:
                raise InvalidSpinRequestError("Cannot replace entries while the wheel is spinning")
            removed = await RemovedEntryRepository.tickets(session.wheel_id)
            session.registry.rebuild(entries_from_rows(rows, removed_tickets=removed))
            await self._persist_snapshot(session)
        logger.info(f"Imported {len(session.registry)} entries into {session.wheel_id!r}")
        return session.snapshot()

    async def remove_entry(
        self, wheel_id: str, ticket_number: Any = None, display_name: Any = None
    ) -> Entry:
        session = await self._load_existing(wheel_id)
        async with session.lock:
            if session.resolver.is_spinning:
                raise InvalidSpinRequestError("Cannot remove entries while the wheel is spinning")
            removed = session.registry.remove_entry(display_name, ticket_number)
            await self._persist_snapshot(session)
        await self.events.publish(
            WinnerRemovedEvent(session.wheel_id, removed.display_name, removed.ticket_number)
        )
        return removed

    async def list_winners(self, wheel_id: str) -> List[Dict[str, Any]]:
        session = await self._load_existing(wheel_id)
        return [row.to_dict() for row in await WinnerRepository.list_for_wheel(session.wheel_id)]

    async def clear_winners(self, wheel_id: str) -> int:
        """Forget the winners list; the spin counter and configuration stay."""
        session = await self._load_existing(wheel_id)
        cleared = await WinnerRepository.clear(session.wheel_id)
        logger.info(f"Cleared {cleared} winner(s) of {session.wheel_id!r}")
        return cleared

    async def list_removed_entries(self, wheel_id: str) -> List[Dict[str, Any]]:
        session = await self._load_existing(wheel_id)
        rows = await RemovedEntryRepository.list_for_wheel(session.wheel_id)
        return [row.to_dict() for row in rows]

    async def reset_all(self, wheel_id: str) -> Dict[str, Any]:
        """Clear winners, spin configuration and removed entries; keep the entries."""
        session = await self._load_existing(wheel_id)
        async with session.lock:
            if session.resolver.is_spinning:
                raise InvalidSpinRequestError("Cannot reset while the wheel is spinning")
            await clear_wheel_state(session.wheel_id, keep_wheel=True)
            session.spin_count = 0
            session.last_record = None
            session.resolver.dismiss_winner()
        logger.info(f"Reset all bookkeeping for {session.wheel_id!r}")
        return session.snapshot()


_wheel_service: Optional[WheelService] = None


def init_wheel_service(**kwargs: Any) -> WheelService:
    global _wheel_service
    _wheel_service = WheelService(**kwargs)
    return _wheel_service


def get_wheel_service() -> WheelService:
    if _wheel_service is None:
        raise RuntimeError("Wheel service not initialized")
    return _wheel_service
