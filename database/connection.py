"""Pooled aiosqlite connections for the ledger store."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

import aiosqlite

from core.constants import DatabaseDefaults
from core.exceptions import ConnectionPoolError
from core.logger import get_logger

logger = get_logger(__name__)


def _casefold(value: Optional[str]) -> Optional[str]:
    return None if value is None else str(value).casefold()


class SQLitePool:
    """Fixed-size pool of aiosqlite connections.

    Connections are handed out one request at a time; a caller waiting for a
    free connection is woken when another caller releases one.
    """

    def __init__(
        self,
        database_path: str,
        pool_size: int = DatabaseDefaults.POOL_SIZE,
        busy_timeout_ms: int = DatabaseDefaults.BUSY_TIMEOUT,
        store_timeout: float = DatabaseDefaults.STORE_TIMEOUT,
    ) -> None:
        self.database_path = Path(database_path)
        self.pool_size = pool_size
        self.busy_timeout_ms = busy_timeout_ms
        self.store_timeout = store_timeout
        self._all: List[aiosqlite.Connection] = []
        self._idle: List[aiosqlite.Connection] = []
        self._available: Optional[asyncio.Condition] = None
        self._initialized = False

    async def init_pool(self) -> None:
        if self._initialized:
            return

        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._available = asyncio.Condition()

        for _ in range(self.pool_size):
            conn = await aiosqlite.connect(self.database_path.as_posix())
            conn.row_factory = aiosqlite.Row
            await self._apply_pragma(conn)
            self._all.append(conn)
            self._idle.append(conn)

        self._initialized = True
        logger.debug("Opened %d connections to %s", self.pool_size, self.database_path)

    async def close(self) -> None:
        for conn in self._all:
            await conn.close()
        self._all.clear()
        self._idle.clear()
        self._initialized = False

    async def _apply_pragma(self, conn: aiosqlite.Connection) -> None:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute("PRAGMA temp_store=MEMORY")
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")
        # SQLite LOWER() only folds ASCII letters
        await conn.create_function("casefold", 1, _casefold, deterministic=True)

    async def _acquire(self) -> aiosqlite.Connection:
        assert self._available is not None
        async with self._available:
            await self._available.wait_for(lambda: bool(self._idle))
            return self._idle.pop()

    async def _release(self, conn: aiosqlite.Connection) -> None:
        assert self._available is not None
        async with self._available:
            self._idle.append(conn)
            self._available.notify()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        if not self._initialized:
            await self.init_pool()
        conn = await self._acquire()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                await conn.rollback()
            await self._release(conn)


_db_pool: Optional[SQLitePool] = None


def get_db_pool() -> SQLitePool:
    if _db_pool is None:
        raise ConnectionPoolError("Database pool not initialized")
    return _db_pool


async def init_db_pool(
    database_path: str,
    pool_size: int = DatabaseDefaults.POOL_SIZE,
    busy_timeout_ms: int = DatabaseDefaults.BUSY_TIMEOUT,
    store_timeout: float = DatabaseDefaults.STORE_TIMEOUT,
) -> SQLitePool:
    global _db_pool
    pool = SQLitePool(
        database_path=database_path,
        pool_size=pool_size,
        busy_timeout_ms=busy_timeout_ms,
        store_timeout=store_timeout,
    )
    await pool.init_pool()
    _db_pool = pool
    return pool


async def close_db_pool() -> None:
    global _db_pool
    if _db_pool is not None:
        await _db_pool.close()
        _db_pool = None
