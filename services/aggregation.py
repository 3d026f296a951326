"""Dashboard and report statistics.

Every function here is a pure computation over record lists, so the same
figures can be produced for the full record set or for search results.
"""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from core.constants import AllotmentStatus, ReportDefaults
from core.logger import get_logger
from database.models import DiaryAllotment, Issuer, TicketSale
from database.repositories import AllotmentRepository, IssuerRepository, TicketSaleRepository

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class DashboardStats:
    total_tickets_sold: int
    total_revenue: Decimal
    diaries_allotted: int
    diaries_fully_sold: int
    diaries_paid: int
    diaries_returned: int
    total_amount_collected: Decimal
    expected_amount_from_allotted: Decimal
    collection_rate: int


@dataclass(frozen=True)
class IssuerPerformance:
    id: int
    issuer_name: str
    contact_number: str
    diaries_allotted: int
    tickets_sold: int
    total_collected: Decimal
    expected_amount: Decimal
    collection_percentage: int


SORT_KEYS = frozenset({
    "issuer_name",
    "diaries_allotted",
    "tickets_sold",
    "total_collected",
    "expected_amount",
    "collection_percentage",
})


def total_tickets_sold(tickets: Sequence[TicketSale]) -> int:
    return len(tickets)


def total_revenue(tickets: Iterable[TicketSale]) -> Decimal:
    return sum((ticket.amount_paid for ticket in tickets), ZERO)


def status_counts(allotments: Iterable[DiaryAllotment]) -> Dict[AllotmentStatus, int]:
    """Count allotments per status; every status is present, zero-filled."""
    counts = Counter(allotment.status for allotment in allotments)
    return {status: counts.get(status, 0) for status in AllotmentStatus}


def total_amount_collected(
    allotments: Iterable[DiaryAllotment],
    statuses: Optional[Iterable[AllotmentStatus]] = None,
) -> Decimal:
    """Sum collected money, optionally restricted to some statuses."""
    wanted = None if statuses is None else {AllotmentStatus(status) for status in statuses}
    return sum(
        (
            allotment.amount_collected
            for allotment in allotments
            if wanted is None or allotment.status in wanted
        ),
        ZERO,
    )


def expected_amount_from_allotted(allotments: Iterable[DiaryAllotment]) -> Decimal:
    """Expected money of diaries that currently have an active allotment."""
    return sum(
        (allotment.expected_amount for allotment in allotments if allotment.is_active),
        ZERO,
    )


def collection_percentage(collected: Decimal, expected: Decimal) -> int:
    """Whole-number percentage collected; 0 when nothing is expected."""
    if not expected:
        return 0
    ratio = Decimal(100) * Decimal(collected) / Decimal(expected)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def issuer_performance(
    issuers: Iterable[Issuer],
    allotments: Iterable[DiaryAllotment],
    tickets: Iterable[TicketSale],
    sort_key: str = ReportDefaults.DEFAULT_SORT_KEY,
    descending: bool = True,
    limit: Optional[int] = None,
) -> List[IssuerPerformance]:
    """Per-issuer totals across all of their allotments and sales.

    Issuers without allotments or sales still get a zero row.
    """
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key {sort_key!r}")

    diaries: Dict[int, int] = defaultdict(int)
    collected: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    expected: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for allotment in allotments:
        diaries[allotment.issuer_id] += 1
        collected[allotment.issuer_id] += allotment.amount_collected
        expected[allotment.issuer_id] += allotment.expected_amount

    sold = Counter(ticket.issuer_id for ticket in tickets)

    rows = [
        IssuerPerformance(
            id=issuer.id,
            issuer_name=issuer.issuer_name,
            contact_number=issuer.contact_number,
            diaries_allotted=diaries[issuer.id],
            tickets_sold=sold[issuer.id],
            total_collected=collected[issuer.id],
            expected_amount=expected[issuer.id],
            collection_percentage=collection_percentage(collected[issuer.id], expected[issuer.id]),
        )
        for issuer in issuers
    ]
    # Stable sort on name first keeps ties in a predictable order
    rows.sort(key=lambda row: row.issuer_name.lower())
    rows.sort(key=lambda row: getattr(row, sort_key), reverse=descending)
    return rows[:limit] if limit is not None else rows


def dashboard_stats(
    tickets: Sequence[TicketSale],
    allotments: Sequence[DiaryAllotment],
) -> DashboardStats:
    counts = status_counts(allotments)
    collected = total_amount_collected(allotments)
    expected = expected_amount_from_allotted(allotments)
    return DashboardStats(
        total_tickets_sold=total_tickets_sold(tickets),
        total_revenue=total_revenue(tickets),
        diaries_allotted=counts[AllotmentStatus.ALLOTTED],
        diaries_fully_sold=counts[AllotmentStatus.FULLY_SOLD],
        diaries_paid=counts[AllotmentStatus.PAID],
        diaries_returned=counts[AllotmentStatus.RETURNED],
        total_amount_collected=collected,
        expected_amount_from_allotted=expected,
        collection_rate=collection_percentage(collected, expected),
    )


class ReportService:
    """Loads the full record sets and computes reports from them."""

    @staticmethod
    async def dashboard() -> DashboardStats:
        tickets, allotments = await asyncio.gather(
            TicketSaleRepository.list(),
            AllotmentRepository.list(),
        )
        stats = dashboard_stats(tickets, allotments)
        logger.debug("Dashboard computed over %d sales", stats.total_tickets_sold)
        return stats

    @staticmethod
    async def top_issuers(
        limit: Optional[int] = ReportDefaults.TOP_ISSUERS_LIMIT,
        sort_key: str = ReportDefaults.DEFAULT_SORT_KEY,
        descending: bool = True,
    ) -> List[IssuerPerformance]:
        issuers, allotments, tickets = await asyncio.gather(
            IssuerRepository.list(),
            AllotmentRepository.list(),
            TicketSaleRepository.list(),
        )
        return issuer_performance(
            issuers, allotments, tickets,
            sort_key=sort_key, descending=descending, limit=limit,
        )
