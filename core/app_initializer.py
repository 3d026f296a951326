"""Application initialization orchestrator."""

from __future__ import annotations

from typing import Optional

from config import Config, load_config
from core.logger import get_logger
from database import SQLitePool, close_db_pool, init_db_pool, run_migrations
from database.repositories import DiaryRepository
from services.allotment_lifecycle import (
    AllotmentLifecycle,
    DocumentedTransitionPolicy,
    PermissiveTransitionPolicy,
)
from services.autofill import AutoFillResolver

logger = get_logger(__name__)


class ApplicationInitializer:
    """Opens the store, applies the schema and provisions diaries."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or load_config()
        self.db_pool: Optional[SQLitePool] = None
        self.lifecycle: Optional[AllotmentLifecycle] = None
        self.autofill: Optional[AutoFillResolver] = None

    async def initialize(self) -> None:
        """Initialize all application components."""
        await self._init_database()
        await self._provision_diaries()
        self._init_services()

    async def _init_database(self) -> None:
        self.db_pool = await init_db_pool(
            database_path=self.config.database_path,
            pool_size=self.config.db_pool_size,
            busy_timeout_ms=self.config.db_busy_timeout,
            store_timeout=self.config.store_timeout_seconds,
        )
        await run_migrations(self.db_pool)
        logger.info("Database ready at %s", self.config.database_path)

    async def _provision_diaries(self) -> None:
        added = await DiaryRepository.provision_all(self.config.ticket_price)
        if added:
            logger.info("Provisioned %d diaries", added)

    def _init_services(self) -> None:
        policy = (
            DocumentedTransitionPolicy()
            if self.config.strict_transitions
            else PermissiveTransitionPolicy()
        )
        self.lifecycle = AllotmentLifecycle(policy)
        self.autofill = AutoFillResolver(unit_price=self.config.ticket_price)

    async def shutdown(self) -> None:
        await close_db_pool()
        DiaryRepository.clear_cache()
        self.db_pool = None
        logger.info("Database closed")

    async def __aenter__(self) -> "ApplicationInitializer":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
