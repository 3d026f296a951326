"""Database access layer helpers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from cachetools import LRUCache

from core.constants import AllotmentStatus
from core.exceptions import NotFoundError, UnknownDiaryError
from database.base_repository import BaseRepository
from database.connection import get_db_pool
from database.models import Diary, DiaryAllotment, Issuer, TicketSale
from database.query import MATCH_ALL, Predicate
from services.numbering import expected_amount_for_diary, iter_diary_ranges

ISSUER_COLUMNS = ("issuer_name", "contact_number", "address")
ALLOTMENT_COLUMNS = ("diary_id", "issuer_id", "allotment_date", "status", "amount_collected", "notes")
TICKET_COLUMNS = (
    "lottery_number", "purchaser_name", "purchaser_contact", "purchaser_address",
    "issuer_id", "diary_id", "purchase_date", "amount_paid",
)
ALLOTMENT_VIEW_COLUMNS = ALLOTMENT_COLUMNS + ("diary_number", "issuer_name", "created_at")
TICKET_VIEW_COLUMNS = TICKET_COLUMNS + ("diary_number", "issuer_name", "created_at")


def _only(fields: Dict[str, Any], allowed: tuple[str, ...]) -> Dict[str, Any]:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown columns: {', '.join(sorted(unknown))}")
    return fields


def _order_clause(order_by: Optional[str], columns: Tuple[str, ...], default: str) -> str:
    """Render ``order_by`` such as ``"-purchase_date"``; a leading minus sorts descending."""
    if order_by is None:
        return default
    column = order_by.lstrip("-")
    if column not in columns:
        raise ValueError(f"Cannot order by {order_by!r}")
    direction = "DESC" if order_by.startswith("-") else "ASC"
    return f"{column} {direction}, id {direction}"


class DiaryRepository(BaseRepository):
    """Repository for diaries. Diaries are provisioned, never edited."""

    # Diaries never change once provisioned; keyed by (database path, diary number)
    _by_number: LRUCache = LRUCache(maxsize=4096)

    @staticmethod
    def clear_cache() -> None:
        DiaryRepository._by_number.clear()

    @staticmethod
    async def provision_all(unit_price: Decimal) -> int:
        """Insert every printed diary that is missing and return how many were added."""
        before = await DiaryRepository.count()
        records = [
            (
                diary_number,
                ticket_range.start,
                ticket_range.end,
                ticket_range.size,
                expected_amount_for_diary(diary_number, unit_price),
            )
            for diary_number, ticket_range in iter_diary_ranges()
        ]
        await BaseRepository.execute_many(
            """
            INSERT OR IGNORE INTO diaries
            (diary_number, ticket_start_range, ticket_end_range, total_tickets, expected_amount)
            VALUES (?, ?, ?, ?, ?)
            """,
            records,
        )
        return await DiaryRepository.count() - before

    @staticmethod
    async def count() -> int:
        return await BaseRepository.fetch_value("SELECT COUNT(*) FROM diaries") or 0

    @staticmethod
    async def get(diary_id: int) -> Diary:
        row = await BaseRepository.fetch_one("SELECT * FROM diaries WHERE id=?", (diary_id,))
        if row is None:
            raise UnknownDiaryError(f"Diary {diary_id} does not exist")
        return Diary.from_row(row)

    @staticmethod
    async def find_by_number(diary_number: int) -> Optional[Diary]:
        key: Tuple[str, int] = (str(get_db_pool().database_path), diary_number)
        cached = DiaryRepository._by_number.get(key)
        if cached is not None:
            return cached
        row = await BaseRepository.fetch_one(
            "SELECT * FROM diaries WHERE diary_number=?", (diary_number,)
        )
        if row is None:
            return None
        diary = Diary.from_row(row)
        DiaryRepository._by_number[key] = diary
        return diary

    @staticmethod
    async def list(predicate: Predicate = MATCH_ALL) -> List[Diary]:
        where, params = predicate.to_sql()
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM diaries{where} ORDER BY diary_number", params
        )
        return [Diary.from_row(row) for row in rows]


class IssuerRepository(BaseRepository):
    """Repository for issuers."""

    @staticmethod
    async def get(issuer_id: int) -> Issuer:
        row = await BaseRepository.fetch_one("SELECT * FROM issuers WHERE id=?", (issuer_id,))
        if row is None:
            raise NotFoundError(f"Issuer {issuer_id} does not exist")
        return Issuer.from_row(row)

    @staticmethod
    async def list(predicate: Predicate = MATCH_ALL, order_by: Optional[str] = None) -> List[Issuer]:
        where, params = predicate.to_sql()
        order = _order_clause(order_by, ISSUER_COLUMNS, "issuer_name, id")
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM issuers{where} ORDER BY {order}", params
        )
        return [Issuer.from_row(row) for row in rows]

    @staticmethod
    async def create(fields: Dict[str, Any]) -> Issuer:
        _only(fields, ISSUER_COLUMNS)
        columns = ", ".join(fields)
        placeholders = ", ".join(["?"] * len(fields))
        issuer_id = await BaseRepository.insert(
            f"INSERT INTO issuers ({columns}) VALUES ({placeholders})",
            tuple(fields.values()),
        )
        return await IssuerRepository.get(issuer_id)

    @staticmethod
    async def update(issuer_id: int, fields: Dict[str, Any]) -> Issuer:
        _only(fields, ISSUER_COLUMNS)
        if fields:
            query, params = BaseRepository.build_update("issuers", issuer_id, fields)
            if await BaseRepository.execute(query, params) == 0:
                raise NotFoundError(f"Issuer {issuer_id} does not exist")
        return await IssuerRepository.get(issuer_id)

    @staticmethod
    async def delete(issuer_id: int) -> None:
        if await BaseRepository.execute("DELETE FROM issuers WHERE id=?", (issuer_id,)) == 0:
            raise NotFoundError(f"Issuer {issuer_id} does not exist")


class AllotmentRepository(BaseRepository):
    """Repository for diary allotments; reads come from the joined view."""

    @staticmethod
    async def get(allotment_id: int) -> DiaryAllotment:
        row = await BaseRepository.fetch_one(
            "SELECT * FROM diary_allotments_view WHERE id=?", (allotment_id,)
        )
        if row is None:
            raise NotFoundError(f"Allotment {allotment_id} does not exist")
        return DiaryAllotment.from_row(row)

    @staticmethod
    async def find_active(diary_id: int) -> Optional[DiaryAllotment]:
        row = await BaseRepository.fetch_one(
            "SELECT * FROM diary_allotments_view WHERE diary_id=? AND status=?",
            (diary_id, AllotmentStatus.ALLOTTED),
        )
        return DiaryAllotment.from_row(row) if row else None

    @staticmethod
    async def list(predicate: Predicate = MATCH_ALL, order_by: Optional[str] = None) -> List[DiaryAllotment]:
        where, params = predicate.to_sql()
        order = _order_clause(order_by, ALLOTMENT_VIEW_COLUMNS, "created_at DESC, id DESC")
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM diary_allotments_view{where} ORDER BY {order}",
            params,
        )
        return [DiaryAllotment.from_row(row) for row in rows]

    @staticmethod
    async def create(
        diary_id: int,
        issuer_id: int,
        allotment_date: date,
        notes: Optional[str] = None,
    ) -> DiaryAllotment:
        allotment_id = await BaseRepository.insert(
            """
            INSERT INTO diary_allotments
            (diary_id, issuer_id, allotment_date, status, amount_collected, notes)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (diary_id, issuer_id, allotment_date, AllotmentStatus.ALLOTTED, notes),
        )
        return await AllotmentRepository.get(allotment_id)

    @staticmethod
    async def update(allotment_id: int, fields: Dict[str, Any]) -> DiaryAllotment:
        _only(fields, ALLOTMENT_COLUMNS)
        if fields:
            query, params = BaseRepository.build_update("diary_allotments", allotment_id, fields)
            if await BaseRepository.execute(query, params) == 0:
                raise NotFoundError(f"Allotment {allotment_id} does not exist")
        return await AllotmentRepository.get(allotment_id)

    @staticmethod
    async def delete(allotment_id: int) -> None:
        deleted = await BaseRepository.execute(
            "DELETE FROM diary_allotments WHERE id=?", (allotment_id,)
        )
        if deleted == 0:
            raise NotFoundError(f"Allotment {allotment_id} does not exist")


class TicketSaleRepository(BaseRepository):
    """Repository for ticket sales; reads come from the joined view."""

    @staticmethod
    async def get(sale_id: int) -> TicketSale:
        row = await BaseRepository.fetch_one(
            "SELECT * FROM ticket_sales_view WHERE id=?", (sale_id,)
        )
        if row is None:
            raise NotFoundError(f"Ticket sale {sale_id} does not exist")
        return TicketSale.from_row(row)

    @staticmethod
    async def find_by_lottery_number(lottery_number: int) -> Optional[TicketSale]:
        row = await BaseRepository.fetch_one(
            "SELECT * FROM ticket_sales_view WHERE lottery_number=?", (lottery_number,)
        )
        return TicketSale.from_row(row) if row else None

    @staticmethod
    async def lottery_number_taken(lottery_number: int, exclude_id: Optional[int] = None) -> bool:
        query = "SELECT 1 FROM ticket_sales WHERE lottery_number=?"
        params: List[Any] = [lottery_number]
        if exclude_id is not None:
            query += " AND id<>?"
            params.append(exclude_id)
        return await BaseRepository.fetch_value(query + " LIMIT 1", params) is not None

    @staticmethod
    async def list(predicate: Predicate = MATCH_ALL, order_by: Optional[str] = None) -> List[TicketSale]:
        where, params = predicate.to_sql()
        order = _order_clause(order_by, TICKET_VIEW_COLUMNS, "created_at DESC, id DESC")
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM ticket_sales_view{where} ORDER BY {order}",
            params,
        )
        return [TicketSale.from_row(row) for row in rows]

    @staticmethod
    async def create(fields: Dict[str, Any]) -> TicketSale:
        _only(fields, TICKET_COLUMNS)
        columns = ", ".join(fields)
        placeholders = ", ".join(["?"] * len(fields))
        sale_id = await BaseRepository.insert(
            f"INSERT INTO ticket_sales ({columns}) VALUES ({placeholders})",
            tuple(fields.values()),
        )
        return await TicketSaleRepository.get(sale_id)

    @staticmethod
    async def update(sale_id: int, fields: Dict[str, Any]) -> TicketSale:
        _only(fields, TICKET_COLUMNS)
        if fields:
            query, params = BaseRepository.build_update("ticket_sales", sale_id, fields)
            if await BaseRepository.execute(query, params) == 0:
                raise NotFoundError(f"Ticket sale {sale_id} does not exist")
        return await TicketSaleRepository.get(sale_id)

    @staticmethod
    async def delete(sale_id: int) -> None:
        if await BaseRepository.execute("DELETE FROM ticket_sales WHERE id=?", (sale_id,)) == 0:
            raise NotFoundError(f"Ticket sale {sale_id} does not exist")
