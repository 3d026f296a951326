"""Pytest configuration and fixtures."""

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Make the flat project layout importable without installation
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.constants import PricingDefaults  # noqa: E402
from database import close_db_pool, init_db_pool, run_migrations  # noqa: E402
from database.repositories import DiaryRepository  # noqa: E402
from services.issuers import IssuerService  # noqa: E402


@pytest.fixture
async def test_db(tmp_path):
    """Migrated database in a temp directory with every diary provisioned."""
    db_path = tmp_path / "test_ledger.sqlite"
    pool = await init_db_pool(
        database_path=str(db_path),
        pool_size=4,
        busy_timeout_ms=1000,
        store_timeout=5.0,
    )
    await run_migrations(pool)
    await DiaryRepository.provision_all(PricingDefaults.TICKET_PRICE)

    yield pool

    await close_db_pool()
    DiaryRepository.clear_cache()


@pytest.fixture
async def empty_db(tmp_path):
    """Migrated database without diaries."""
    pool = await init_db_pool(
        database_path=str(tmp_path / "empty_ledger.sqlite"),
        pool_size=4,
        busy_timeout_ms=1000,
        store_timeout=5.0,
    )
    await run_migrations(pool)

    yield pool

    await close_db_pool()
    DiaryRepository.clear_cache()


@pytest.fixture
async def issuer(test_db):
    return await IssuerService.create("Ramesh Kumar", "9876543210", "Temple Road")


@pytest.fixture
async def other_issuer(test_db):
    return await IssuerService.create("Lakshmi Devi", "9123456780")


@pytest.fixture
def sale_fields():
    """Factory of valid keyword arguments for ``TicketSaleService.record_sale``."""
    def build(issuer_id, diary_id, lottery_number=1, /, **overrides):
        fields = {
            "lottery_number": lottery_number,
            "purchaser_name": "Anita Sharma",
            "purchaser_contact": "9000011111",
            "purchaser_address": None,
            "issuer_id": issuer_id,
            "diary_id": diary_id,
            "purchase_date": date(2024, 3, 10),
            "amount_paid": Decimal("500"),
        }
        fields.update(overrides)
        return fields
    return build
