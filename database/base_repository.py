"""Base repository pattern for database operations."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

import aiosqlite

from core.exceptions import (
    ConflictActiveAllotmentError,
    ConflictError,
    DatabaseError,
    DuplicateLotteryNumberError,
    StoreUnavailableError,
)
from core.logger import get_logger
from database.connection import get_db_pool
from database.query import to_db_value

logger = get_logger(__name__)

T = TypeVar('T')

# Substrings of sqlite constraint messages and the conflict they signal
_CONSTRAINT_ERRORS: Tuple[Tuple[str, Type[ConflictError], str], ...] = (
    ("ticket_sales.lottery_number", DuplicateLotteryNumberError, "Lottery number already exists"),
    ("diary_allotments.diary_id", ConflictActiveAllotmentError, "Diary already allotted"),
)


def translate_integrity_error(exc: aiosqlite.IntegrityError) -> ConflictError:
    """Map a store constraint violation to a domain conflict."""
    message = str(exc)
    for marker, error_cls, text in _CONSTRAINT_ERRORS:
        if marker in message:
            return error_cls(text)
    if "FOREIGN KEY" in message:
        return ConflictError("Record is referenced by other records")
    return ConflictError(message)


def _bind(params: Sequence[Any]) -> Tuple[Any, ...]:
    return tuple(to_db_value(value) for value in params)


class BaseRepository:
    """Base repository with common database operations.

    Every call runs under the pool's store timeout. Timeouts and operational
    failures surface as ``StoreUnavailableError``; constraint violations as
    ``ConflictError`` subclasses.
    """

    @staticmethod
    async def run(operation: Callable[[aiosqlite.Connection], Awaitable[T]]) -> T:
        """Run ``operation`` on a pooled connection with error translation."""
        pool = get_db_pool()

        async def _call() -> T:
            async with pool.connection() as conn:
                return await operation(conn)

        try:
            return await asyncio.wait_for(_call(), timeout=pool.store_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Store call timed out after %.1fs", pool.store_timeout)
            raise StoreUnavailableError("Record store timed out") from exc
        except aiosqlite.IntegrityError as exc:
            conflict = translate_integrity_error(exc)
            logger.warning("Store rejected write: %s", conflict)
            raise conflict from exc
        except aiosqlite.OperationalError as exc:
            logger.warning("Store unavailable: %s", exc)
            raise StoreUnavailableError(f"Record store unavailable: {exc}") from exc
        except aiosqlite.DatabaseError as exc:
            raise DatabaseError(str(exc)) from exc

    @staticmethod
    async def execute(query: str, params: Sequence[Any] = ()) -> int:
        """Execute a write and return the affected row count."""
        async def _op(conn: aiosqlite.Connection) -> int:
            cursor = await conn.execute(query, _bind(params))
            await conn.commit()
            return cursor.rowcount

        return await BaseRepository.run(_op)

    @staticmethod
    async def insert(query: str, params: Sequence[Any] = ()) -> int:
        """Execute an INSERT and return the new row id."""
        async def _op(conn: aiosqlite.Connection) -> int:
            cursor = await conn.execute(query, _bind(params))
            await conn.commit()
            return cursor.lastrowid

        return await BaseRepository.run(_op)

    @staticmethod
    async def execute_many(query: str, params: Sequence[Sequence[Any]]) -> None:
        """Execute a query multiple times with different parameters."""
        async def _op(conn: aiosqlite.Connection) -> None:
            await conn.executemany(query, [_bind(row) for row in params])
            await conn.commit()

        await BaseRepository.run(_op)

    @staticmethod
    async def fetch_one(query: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        """Fetch a single row."""
        async def _op(conn: aiosqlite.Connection) -> Optional[aiosqlite.Row]:
            cursor = await conn.execute(query, _bind(params))
            return await cursor.fetchone()

        return await BaseRepository.run(_op)

    @staticmethod
    async def fetch_all(query: str, params: Sequence[Any] = ()) -> List[aiosqlite.Row]:
        """Fetch all rows."""
        async def _op(conn: aiosqlite.Connection) -> List[aiosqlite.Row]:
            cursor = await conn.execute(query, _bind(params))
            return list(await cursor.fetchall())

        return await BaseRepository.run(_op)

    @staticmethod
    async def fetch_value(query: str, params: Sequence[Any] = ()) -> Optional[Any]:
        """Fetch a single value from a single row."""
        row = await BaseRepository.fetch_one(query, params)
        return row[0] if row else None

    @staticmethod
    def build_update(table: str, row_id: int, fields: Dict[str, Any]) -> Tuple[str, List[Any]]:
        """Build an UPDATE statement for the given columns."""
        assignments = ", ".join(f"{column}=?" for column in fields)
        query = f"UPDATE {table} SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=?"
        return query, [*fields.values(), row_id]
