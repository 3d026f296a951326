"""Tests for store error translation and the connection pool."""

import asyncio

import aiosqlite
import pytest

from core.exceptions import (
    ConflictActiveAllotmentError,
    ConflictError,
    ConnectionPoolError,
    DuplicateLotteryNumberError,
    StoreUnavailableError,
)
from database import get_db_pool
from database.base_repository import BaseRepository, translate_integrity_error
from database.repositories import DiaryRepository, IssuerRepository


def test_integrity_messages_map_to_conflicts():
    duplicate = aiosqlite.IntegrityError("UNIQUE constraint failed: ticket_sales.lottery_number")
    active = aiosqlite.IntegrityError("UNIQUE constraint failed: diary_allotments.diary_id")
    foreign = aiosqlite.IntegrityError("FOREIGN KEY constraint failed")

    assert isinstance(translate_integrity_error(duplicate), DuplicateLotteryNumberError)
    assert isinstance(translate_integrity_error(active), ConflictActiveAllotmentError)
    conflict = translate_integrity_error(foreign)
    assert type(conflict) is ConflictError
    assert "referenced" in str(conflict)


def test_build_update():
    query, params = BaseRepository.build_update("issuers", 3, {"issuer_name": "A", "address": None})
    assert query == (
        "UPDATE issuers SET issuer_name=?, address=?, updated_at=CURRENT_TIMESTAMP WHERE id=?"
    )
    assert params == ["A", None, 3]


@pytest.mark.asyncio
async def test_no_pool_raises():
    with pytest.raises(ConnectionPoolError):
        get_db_pool()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_provisioning_is_idempotent(test_db):
    assert await DiaryRepository.count() == 1819
    assert await DiaryRepository.provision_all(500) == 0

    last = await DiaryRepository.find_by_number(1819)
    assert (last.ticket_start_range, last.ticket_end_range, last.total_tickets) == (39997, 39999, 3)
    assert await DiaryRepository.find_by_number(1820) is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_timeout_is_store_unavailable(test_db, monkeypatch):
    monkeypatch.setattr(test_db, "store_timeout", 0.05)

    async def slow(conn):
        await asyncio.sleep(1)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await BaseRepository.run(slow)
    assert exc_info.value.retryable


@pytest.mark.integration
@pytest.mark.asyncio
async def test_operational_error_is_store_unavailable(test_db):
    with pytest.raises(StoreUnavailableError):
        await BaseRepository.fetch_all("SELECT * FROM no_such_table")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_pool_serves_more_requests_than_connections(test_db):
    results = await asyncio.gather(
        *(BaseRepository.fetch_value("SELECT ?", (n,)) for n in range(test_db.pool_size * 3))
    )
    assert results == list(range(test_db.pool_size * 3))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_order_by(issuer, other_issuer):
    names = [i.issuer_name for i in await IssuerRepository.list(order_by="-issuer_name")]
    assert names == ["Ramesh Kumar", "Lakshmi Devi"]
    with pytest.raises(ValueError):
        await IssuerRepository.list(order_by="id; DROP TABLE issuers")
