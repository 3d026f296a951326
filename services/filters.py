"""Search over ticket sales and diary allotments.

One sparse set of criteria produces two unrelated predicates, one per entity.
Each predicate only carries the criteria that make sense for its entity and
absent criteria impose no constraint.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Tuple, Union

from core.constants import AllotmentStatus
from core.exceptions import ValidationError
from core.logger import get_logger
from database.models import DiaryAllotment, TicketSale
from database.query import MATCH_ALL, AnyOf, Clause, Op, Predicate
from database.repositories import AllotmentRepository, TicketSaleRepository
from services.numbering import parse_lottery_number

logger = get_logger(__name__)

# Columns matched by the free-text box of each management list
TICKET_SEARCH_FIELDS = (
    ("lottery_number", Op.CONTAINS),
    ("purchaser_name", Op.ICONTAINS),
    ("purchaser_contact", Op.CONTAINS),
    ("issuer_name", Op.ICONTAINS),
)
ALLOTMENT_SEARCH_FIELDS = (
    ("diary_number", Op.CONTAINS),
    ("issuer_name", Op.ICONTAINS),
    ("issuer_contact", Op.CONTAINS),
    ("status", Op.ICONTAINS),
)
ISSUER_SEARCH_FIELDS = (
    ("issuer_name", Op.ICONTAINS),
    ("contact_number", Op.CONTAINS),
    ("address", Op.ICONTAINS),
)


@dataclass(frozen=True)
class SearchCriteria:
    lottery_number: Optional[Union[int, str]] = None
    purchaser_name: Optional[str] = None
    purchaser_contact: Optional[str] = None
    issuer_name: Optional[str] = None
    diary_number: Optional[int] = None
    status: Optional[AllotmentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) in (None, "") for f in fields(self))

    @classmethod
    def from_mapping(cls, form: Mapping[str, Any]) -> "SearchCriteria":
        """Build criteria from raw form values; blank strings mean "no filter".

        Raises:
            ValidationError: Naming the first field that cannot be parsed
        """
        def text(key: str) -> Optional[str]:
            value = form.get(key)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        def parse(key: str, converter):
            raw = text(key)
            if raw is None:
                return None
            try:
                return converter(raw)
            except (ValueError, InvalidOperation):
                raise ValidationError(f"Invalid value for {key}: {raw!r}", field=key) from None

        lottery = text("lottery_number")
        return cls(
            lottery_number=parse_lottery_number(lottery) if lottery is not None else None,
            purchaser_name=text("purchaser_name"),
            purchaser_contact=text("purchaser_contact"),
            issuer_name=text("issuer_name"),
            diary_number=parse("diary_number", int),
            status=parse("status", AllotmentStatus),
            date_from=parse("date_from", date.fromisoformat),
            date_to=parse("date_to", date.fromisoformat),
            amount_min=parse("amount_min", Decimal),
            amount_max=parse("amount_max", Decimal),
        )


@dataclass(frozen=True)
class ComposedFilters:
    tickets: Predicate
    allotments: Predicate


class FilterComposer:
    """Turns criteria into per-entity predicates."""

    @staticmethod
    def compose(criteria: SearchCriteria) -> ComposedFilters:
        tickets = Predicate()
        allotments = Predicate()

        if criteria.lottery_number not in (None, ""):
            number = criteria.lottery_number
            if isinstance(number, str):
                number = parse_lottery_number(number)
            tickets = tickets.and_(Clause("lottery_number", Op.EQ, number))

        if criteria.purchaser_name:
            tickets = tickets.and_(Clause("purchaser_name", Op.ICONTAINS, criteria.purchaser_name))

        if criteria.purchaser_contact:
            tickets = tickets.and_(Clause("purchaser_contact", Op.CONTAINS, criteria.purchaser_contact))

        if criteria.issuer_name:
            clause = Clause("issuer_name", Op.ICONTAINS, criteria.issuer_name)
            tickets = tickets.and_(clause)
            allotments = allotments.and_(clause)

        if criteria.diary_number is not None:
            clause = Clause("diary_number", Op.EQ, criteria.diary_number)
            tickets = tickets.and_(clause)
            allotments = allotments.and_(clause)

        if criteria.date_from is not None:
            tickets = tickets.and_(Clause("purchase_date", Op.GTE, criteria.date_from))
            allotments = allotments.and_(Clause("allotment_date", Op.GTE, criteria.date_from))

        if criteria.date_to is not None:
            tickets = tickets.and_(Clause("purchase_date", Op.LTE, criteria.date_to))
            allotments = allotments.and_(Clause("allotment_date", Op.LTE, criteria.date_to))

        if criteria.status is not None:
            allotments = allotments.and_(Clause("status", Op.EQ, AllotmentStatus(criteria.status)))

        if criteria.amount_min is not None:
            tickets = tickets.and_(Clause("amount_paid", Op.GTE, Decimal(criteria.amount_min)))

        if criteria.amount_max is not None:
            tickets = tickets.and_(Clause("amount_paid", Op.LTE, Decimal(criteria.amount_max)))

        return ComposedFilters(tickets=tickets, allotments=allotments)

    @staticmethod
    def free_text(
        search_term: Optional[str],
        search_fields: Tuple[Tuple[str, Op], ...],
        base: Predicate = MATCH_ALL,
    ) -> Predicate:
        """Narrow ``base`` to records where any of ``search_fields`` contains the term.

        A blank term leaves ``base`` unchanged.
        """
        term = (search_term or "").strip()
        if not term:
            return base
        return base.and_(AnyOf(tuple(Clause(name, op, term) for name, op in search_fields)))


@dataclass(frozen=True)
class SearchResults:
    tickets: List[TicketSale]
    allotments: List[DiaryAllotment]

    @property
    def summary(self) -> str:
        return f"Found {len(self.tickets)} tickets and {len(self.allotments)} allotments"


@dataclass(frozen=True)
class QuickSearchResult:
    lottery_number: int
    ticket: Optional[TicketSale] = None

    @property
    def found(self) -> bool:
        return self.ticket is not None


class SearchService:
    """Runs composed filters against the store."""

    @staticmethod
    async def search(criteria: SearchCriteria) -> SearchResults:
        filters = FilterComposer.compose(criteria)
        # The two queries are independent; neither result constrains the other
        tickets, allotments = await asyncio.gather(
            TicketSaleRepository.list(filters.tickets),
            AllotmentRepository.list(filters.allotments),
        )
        results = SearchResults(tickets=tickets, allotments=allotments)
        logger.debug(results.summary)
        return results

    @staticmethod
    async def quick_search(token: str) -> QuickSearchResult:
        """Exact lookup of one sold ticket by its number, never a partial match.

        Raises:
            InvalidFormatError: If ``token`` is not a valid lottery number
        """
        lottery_number = parse_lottery_number(token)
        ticket = await TicketSaleRepository.find_by_lottery_number(lottery_number)
        return QuickSearchResult(lottery_number=lottery_number, ticket=ticket)
