"""Database access layer helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from database.base_repository import BaseRepository
from database.models import RemovedEntryRow, SpinConfigRow, WheelRow, WinnerRow


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WheelRepository(BaseRepository):
    """One stored snapshot per wheel id; saves are last-write-wins."""

    @staticmethod
    def _to_row(row: Sequence[Any]) -> WheelRow:
        return WheelRow(
            wheel_id=row[0],
            entries=json.loads(row[1] or "[]"),
            settings=json.loads(row[2] or "{}"),
            spin_count=int(row[3] or 0),
            created_at=row[4],
            updated_at=row[5],
        )

    @staticmethod
    async def get(wheel_id: str) -> Optional[WheelRow]:
        row = await BaseRepository.fetch_one(
            """
            SELECT wheel_id, entries_json, settings_json, spin_count, created_at, updated_at
            FROM wheels WHERE wheel_id=?
            """,
            (wheel_id,)
        )
        return WheelRepository._to_row(row) if row else None

    @staticmethod
    async def upsert(
        wheel_id: str,
        entries: List[Dict[str, Any]],
        settings: Dict[str, Any],
        spin_count: Optional[int] = None,
    ) -> None:
        """Insert or replace a snapshot, keeping created_at on updates.

        ``spin_count`` None keeps the stored counter.
        """
        now = utc_now()
        await BaseRepository.execute(
            """
            INSERT INTO wheels (wheel_id, entries_json, settings_json, spin_count, created_at, updated_at)
            VALUES (?, ?, ?, COALESCE(?, 0), ?, ?)
            ON CONFLICT(wheel_id) DO UPDATE SET
                entries_json=excluded.entries_json,
                settings_json=excluded.settings_json,
                spin_count=COALESCE(?, wheels.spin_count),
                updated_at=excluded.updated_at
            """,
            (
                wheel_id,
                json.dumps(entries, ensure_ascii=False),
                json.dumps(settings, ensure_ascii=False),
                spin_count,
                now,
                now,
                spin_count,
            )
        )

    @staticmethod
    async def set_spin_count(wheel_id: str, spin_count: int) -> None:
        await BaseRepository.execute(
            "UPDATE wheels SET spin_count=?, updated_at=? WHERE wheel_id=?",
            (spin_count, utc_now(), wheel_id)
        )

    @staticmethod
    async def delete(wheel_id: str) -> bool:
        deleted = await BaseRepository.execute("DELETE FROM wheels WHERE wheel_id=?", (wheel_id,))
        return deleted > 0


class SpinConfigRepository(BaseRepository):
    """Per-spin mode and rigged target."""

    @staticmethod
    def _to_row(row: Sequence[Any]) -> SpinConfigRow:
        return SpinConfigRow(
            wheel_id=row[0],
            spin_number=int(row[1]),
            mode=row[2],
            target_ticket=row[3],
            target_name=row[4],
            updated_at=row[5],
        )

    @staticmethod
    async def list_for_wheel(wheel_id: str) -> List[SpinConfigRow]:
        rows = await BaseRepository.fetch_all(
            """
            SELECT wheel_id, spin_number, mode, target_ticket, target_name, updated_at
            FROM spin_configs WHERE wheel_id=? ORDER BY spin_number
            """,
            (wheel_id,)
        )
        return [SpinConfigRepository._to_row(row) for row in rows]

    @staticmethod
    async def get(wheel_id: str, spin_number: int) -> Optional[SpinConfigRow]:
        row = await BaseRepository.fetch_one(
            """
            SELECT wheel_id, spin_number, mode, target_ticket, target_name, updated_at
            FROM spin_configs WHERE wheel_id=? AND spin_number=?
            """,
            (wheel_id, spin_number)
        )
        return SpinConfigRepository._to_row(row) if row else None

    @staticmethod
    async def upsert(
        wheel_id: str,
        spin_number: int,
        mode: str,
        target_ticket: Optional[str],
        target_name: Optional[str],
    ) -> None:
        await BaseRepository.execute(
            """
            INSERT INTO spin_configs (wheel_id, spin_number, mode, target_ticket, target_name, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(wheel_id, spin_number) DO UPDATE SET
                mode=excluded.mode,
                target_ticket=excluded.target_ticket,
                target_name=excluded.target_name,
                updated_at=excluded.updated_at
            """,
            (wheel_id, spin_number, mode, target_ticket, target_name, utc_now())
        )

    @staticmethod
    async def set_mode(wheel_id: str, spin_number: int, mode: str) -> None:
        """Change only the mode, keeping any stored target."""
        await BaseRepository.execute(
            """
            INSERT INTO spin_configs (wheel_id, spin_number, mode, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(wheel_id, spin_number) DO UPDATE SET
                mode=excluded.mode,
                updated_at=excluded.updated_at
            """,
            (wheel_id, spin_number, mode, utc_now())
        )

    @staticmethod
    async def clear_target(wheel_id: str, spin_number: int) -> bool:
        cleared = await BaseRepository.execute(
            """
            UPDATE spin_configs SET target_ticket=NULL, target_name=NULL, updated_at=?
            WHERE wheel_id=? AND spin_number=?
            """,
            (utc_now(), wheel_id, spin_number)
        )
        return cleared > 0

    @staticmethod
    async def clear_targets_with_ticket(wheel_id: str, ticket: str) -> int:
        return await BaseRepository.execute(
            """
            UPDATE spin_configs SET target_ticket=NULL, target_name=NULL, updated_at=?
            WHERE wheel_id=? AND target_ticket=?
            """,
            (utc_now(), wheel_id, ticket)
        )


class WinnerRepository(BaseRepository):
    """Completed spins, in spin order."""

    @staticmethod
    async def record_spin(
        wheel_id: str,
        spin_number: int,
        entry_index: int,
        display_name: str,
        ticket_number: Optional[str],
        rotation_start: float,
        rotation_end: float,
        rigging_status: str,
    ) -> None:
        """Store the winner and advance the wheel's spin counter atomically."""
        now = utc_now()
        await BaseRepository.transaction([
            (
                """
                INSERT INTO winners (
                    wheel_id, spin_number, entry_index, display_name, ticket_number,
                    rotation_start, rotation_end, rigging_status, won_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(wheel_id, spin_number) DO NOTHING
                """,
                (
                    wheel_id, spin_number, entry_index, display_name, ticket_number,
                    rotation_start, rotation_end, rigging_status, now,
                ),
            ),
            (
                "UPDATE wheels SET spin_count=MAX(spin_count, ?), updated_at=? WHERE wheel_id=?",
                (spin_number, now, wheel_id),
            ),
        ])

    @staticmethod
    async def list_for_wheel(wheel_id: str) -> List[WinnerRow]:
        rows = await BaseRepository.fetch_all(
            """
            SELECT id, wheel_id, spin_number, entry_index, display_name, ticket_number,
                   rotation_start, rotation_end, rigging_status, won_at
            FROM winners WHERE wheel_id=? ORDER BY spin_number
            """,
            (wheel_id,)
        )
        return [WinnerRow(*row) for row in rows]

    @staticmethod
    async def clear(wheel_id: str) -> int:
        return await BaseRepository.execute("DELETE FROM winners WHERE wheel_id=?", (wheel_id,))


class RemovedEntryRepository(BaseRepository):
    """Tickets taken off a wheel; imports skip them."""

    @staticmethod
    async def add(wheel_id: str, display_name: str, ticket_number: str) -> None:
        await BaseRepository.execute(
            """
            INSERT INTO removed_entries (wheel_id, display_name, ticket_number, removed_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(wheel_id, ticket_number) DO NOTHING
            """,
            (wheel_id, display_name, ticket_number, utc_now())
        )

    @staticmethod
    async def list_for_wheel(wheel_id: str) -> List[RemovedEntryRow]:
        rows = await BaseRepository.fetch_all(
            """
            SELECT wheel_id, display_name, ticket_number, removed_at
            FROM removed_entries WHERE wheel_id=? ORDER BY id
            """,
            (wheel_id,)
        )
        return [RemovedEntryRow(*row) for row in rows]

    @staticmethod
    async def tickets(wheel_id: str) -> List[str]:
        return await BaseRepository.fetch_column(
            "SELECT ticket_number FROM removed_entries WHERE wheel_id=?",
            (wheel_id,)
        )


async def clear_wheel_state(wheel_id: str, keep_wheel: bool = True) -> None:
    """Drop winners, spin configs and removed entries; reset or delete the wheel."""
    statements = [
        ("DELETE FROM winners WHERE wheel_id=?", (wheel_id,)),
        ("DELETE FROM spin_configs WHERE wheel_id=?", (wheel_id,)),
        ("DELETE FROM removed_entries WHERE wheel_id=?", (wheel_id,)),
    ]
    if keep_wheel:
        statements.append(
            ("UPDATE wheels SET spin_count=0, updated_at=? WHERE wheel_id=?", (utc_now(), wheel_id))
        )
    else:
        statements.append(("DELETE FROM wheels WHERE wheel_id=?", (wheel_id,)))
    await BaseRepository.transaction(statements)
