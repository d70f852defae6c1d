"""Base repository pattern for database operations."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import aiosqlite

from core.exceptions import RepositoryError
from database.connection import get_db_pool

Statement = Tuple[str, Sequence[Any]]


class BaseRepository:
    """Shared query helpers; every helper borrows one pooled connection."""

    @staticmethod
    async def execute(query: str, params: Sequence[Any] = ()) -> int:
        """Execute a write and return the affected row count."""
        pool = get_db_pool()
        async with pool.connection() as conn:
            try:
                cursor = await conn.execute(query, params)
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise RepositoryError(f"Write failed: {e}") from e
            return cursor.rowcount

    @staticmethod
    async def fetch_one(query: str, params: Sequence[Any] = ()) -> Optional[Tuple]:
        pool = get_db_pool()
        async with pool.connection() as conn:
            try:
                cursor = await conn.execute(query, params)
                return await cursor.fetchone()
            except aiosqlite.Error as e:
                raise RepositoryError(f"Query failed: {e}") from e

    @staticmethod
    async def fetch_all(query: str, params: Sequence[Any] = ()) -> List[Tuple]:
        pool = get_db_pool()
        async with pool.connection() as conn:
            try:
                cursor = await conn.execute(query, params)
                return list(await cursor.fetchall())
            except aiosqlite.Error as e:
                raise RepositoryError(f"Query failed: {e}") from e

    @staticmethod
    async def fetch_value(query: str, params: Sequence[Any] = ()) -> Optional[Any]:
        """Fetch a single value from a single row."""
        row = await BaseRepository.fetch_one(query, params)
        return row[0] if row else None

    @staticmethod
    async def fetch_column(query: str, params: Sequence[Any] = ()) -> List[Any]:
        """Fetch first column from all rows."""
        rows = await BaseRepository.fetch_all(query, params)
        return [row[0] for row in rows]

    @staticmethod
    async def transaction(statements: Sequence[Statement]) -> None:
        """Run several writes atomically."""
        pool = get_db_pool()
        async with pool.connection() as conn:
            await conn.execute("BEGIN")
            try:
                for query, params in statements:
                    await conn.execute(query, params)
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise RepositoryError(f"Transaction failed: {e}") from e
