"""Database schema migrations."""

from __future__ import annotations

from core import get_logger

from .connection import OptimizedSQLitePool

logger = get_logger(__name__)


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS wheels (
        wheel_id TEXT PRIMARY KEY,
        entries_json TEXT NOT NULL DEFAULT '[]',
        settings_json TEXT NOT NULL DEFAULT '{}',
        spin_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS spin_configs (
        wheel_id TEXT NOT NULL,
        spin_number INTEGER NOT NULL,
        mode TEXT NOT NULL DEFAULT 'random',
        target_ticket TEXT,
        target_name TEXT,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (wheel_id, spin_number)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_spin_configs_ticket ON spin_configs(wheel_id, target_ticket);",
    """
    CREATE TABLE IF NOT EXISTS winners (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        wheel_id TEXT NOT NULL,
        spin_number INTEGER NOT NULL,
        entry_index INTEGER NOT NULL,
        display_name TEXT NOT NULL,
        ticket_number TEXT,
        rotation_start REAL NOT NULL,
        rotation_end REAL NOT NULL,
        rigging_status TEXT NOT NULL,
        won_at TEXT NOT NULL,
        UNIQUE (wheel_id, spin_number)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_winners_wheel ON winners(wheel_id, spin_number);",
    """
    CREATE TABLE IF NOT EXISTS removed_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        wheel_id TEXT NOT NULL,
        display_name TEXT NOT NULL,
        ticket_number TEXT NOT NULL,
        removed_at TEXT NOT NULL,
        UNIQUE (wheel_id, ticket_number)
    );
    """,
)


async def run_migrations(pool: OptimizedSQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.rollback()
            raise
        await conn.commit()
    logger.info(f"Applied {len(SCHEMA_SQL)} schema statements")
