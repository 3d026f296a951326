"""Tests for search criteria, filter composition and search."""

from datetime import date
from decimal import Decimal

import pytest

from core.constants import AllotmentStatus
from core.exceptions import InvalidFormatError, ValidationError
from database.query import Clause, Op
from services.allotment_lifecycle import AllotmentLifecycle
from services.filters import TICKET_SEARCH_FIELDS, FilterComposer, SearchCriteria, SearchService
from services.issuers import IssuerService
from services.ticket_sales import TicketSaleService


def test_empty_criteria_compose_to_match_all():
    criteria = SearchCriteria()
    assert criteria.is_empty()
    filters = FilterComposer.compose(criteria)
    assert not filters.tickets
    assert not filters.allotments


def test_criteria_are_routed_per_entity():
    filters = FilterComposer.compose(SearchCriteria(
        purchaser_name="anita",
        purchaser_contact="9000",
        issuer_name="ramesh",
        status=AllotmentStatus.PAID,
        date_from=date(2024, 3, 1),
        amount_min=Decimal("100"),
    ))
    ticket_fields = {clause.field for clause in filters.tickets.clauses}
    allotment_fields = {clause.field for clause in filters.allotments.clauses}

    assert ticket_fields == {
        "purchaser_name", "purchaser_contact", "issuer_name", "purchase_date", "amount_paid",
    }
    assert allotment_fields == {"issuer_name", "status", "allotment_date"}
    assert Clause("purchaser_contact", Op.CONTAINS, "9000") in filters.tickets.clauses


def test_lottery_number_string_is_parsed():
    filters = FilterComposer.compose(SearchCriteria(lottery_number="00023"))
    assert filters.tickets.clauses == (Clause("lottery_number", Op.EQ, 23),)
    assert not filters.allotments


def test_from_mapping_treats_blanks_as_absent():
    criteria = SearchCriteria.from_mapping({
        "lottery_number": "",
        "purchaser_name": "  ",
        "issuer_name": " Ramesh ",
        "status": "fully_sold",
        "date_to": "2024-03-31",
        "amount_max": "750.25",
    })
    assert criteria.lottery_number is None
    assert criteria.purchaser_name is None
    assert criteria.issuer_name == "Ramesh"
    assert criteria.status is AllotmentStatus.FULLY_SOLD
    assert criteria.date_to == date(2024, 3, 31)
    assert criteria.amount_max == Decimal("750.25")
    assert SearchCriteria.from_mapping({}).is_empty()


@pytest.mark.parametrize(
    "form, field",
    [
        ({"status": "lost"}, "status"),
        ({"date_from": "March 1"}, "date_from"),
        ({"amount_min": "lots"}, "amount_min"),
        ({"diary_number": "one"}, "diary_number"),
    ],
)
def test_from_mapping_names_bad_field(form, field):
    with pytest.raises(ValidationError) as exc_info:
        SearchCriteria.from_mapping(form)
    assert exc_info.value.field == field


async def _seed(issuer, other_issuer, sale_fields):
    lifecycle = AllotmentLifecycle()
    first = await lifecycle.allot(diary_id=1, issuer_id=issuer.id, allotment_date=date(2024, 2, 1))
    second = await lifecycle.allot(diary_id=2, issuer_id=other_issuer.id, allotment_date=date(2024, 3, 5))
    await lifecycle.transition(second.id, AllotmentStatus.PAID, amount_collected=Decimal("11000"))

    await TicketSaleService.record_sale(**sale_fields(
        issuer.id, 1, 1, purchase_date=date(2024, 2, 10), amount_paid="500",
    ))
    await TicketSaleService.record_sale(**sale_fields(
        issuer.id, 1, 2, purchaser_name="Gopal Rao", purchaser_contact="9888800000",
        purchase_date=date(2024, 3, 12), amount_paid="250",
    ))
    await TicketSaleService.record_sale(**sale_fields(
        other_issuer.id, 2, 23, purchaser_name="Meera Nair", purchaser_contact="9777700000",
        purchase_date=date(2024, 3, 20), amount_paid="1000",
    ))
    return first, second


@pytest.mark.integration
@pytest.mark.asyncio
async def test_search_without_criteria_returns_everything(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria())
    assert len(results.tickets) == 3
    assert len(results.allotments) == 2
    assert results.summary == "Found 3 tickets and 2 allotments"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_name_search_is_case_insensitive_substring(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria(purchaser_name="NAIR"))
    assert [ticket.lottery_number for ticket in results.tickets] == [23]
    # Purchaser name does not constrain allotments
    assert len(results.allotments) == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_issuer_name_filters_both_entities(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria(issuer_name="lakshmi"))
    assert [ticket.lottery_number for ticket in results.tickets] == [23]
    assert [allotment.diary_number for allotment in results.allotments] == [2]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_date_and_amount_ranges_are_inclusive(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria(
        date_from=date(2024, 3, 5),
        date_to=date(2024, 3, 20),
        amount_min=Decimal("250"),
        amount_max=Decimal("1000"),
    ))
    assert sorted(ticket.lottery_number for ticket in results.tickets) == [2, 23]
    assert [allotment.diary_number for allotment in results.allotments] == [2]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_status_only_filters_allotments(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria(status=AllotmentStatus.ALLOTTED))
    assert [allotment.diary_number for allotment in results.allotments] == [1]
    assert len(results.tickets) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_diary_number_and_contact(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)
    results = await SearchService.search(SearchCriteria(diary_number=1, purchaser_contact="98888"))
    assert [ticket.lottery_number for ticket in results.tickets] == [2]
    assert [allotment.diary_number for allotment in results.allotments] == [1]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_quick_search(issuer, other_issuer, sale_fields):
    await _seed(issuer, other_issuer, sale_fields)

    hit = await SearchService.quick_search("00023")
    assert hit.found
    assert hit.ticket.purchaser_name == "Meera Nair"

    miss = await SearchService.quick_search("24")
    assert not miss.found
    assert miss.lottery_number == 24

    # Exact match only, never a prefix
    exact = await SearchService.quick_search("2")
    assert exact.ticket.lottery_number == 2
    assert not (await SearchService.quick_search("3")).found


@pytest.mark.integration
@pytest.mark.asyncio
async def test_quick_search_rejects_bad_token(test_db):
    with pytest.raises(InvalidFormatError):
        await SearchService.quick_search("23a")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_name_search_folds_non_ascii_case(test_db, sale_fields):
    accented = await IssuerService.create("Émile Zoë", "9555500000")
    await AllotmentLifecycle().allot(diary_id=1, issuer_id=accented.id)
    await TicketSaleService.record_sale(**sale_fields(
        accented.id, 1, 5, purchaser_name="ÖZGÜR ŞAHİN",
    ))

    by_issuer = await SearchService.search(SearchCriteria(issuer_name="Émile"))
    assert [allotment.issuer_name for allotment in by_issuer.allotments] == ["Émile Zoë"]
    assert [ticket.lottery_number for ticket in by_issuer.tickets] == [5]

    lower = await SearchService.search(SearchCriteria(issuer_name="émile zoë"))
    assert len(lower.allotments) == 1

    by_purchaser = await SearchService.search(SearchCriteria(purchaser_name="özgür"))
    assert [ticket.lottery_number for ticket in by_purchaser.tickets] == [5]


def test_free_text_groups_fields_under_one_and():
    base = FilterComposer.compose(SearchCriteria(diary_number=3)).tickets
    predicate = FilterComposer.free_text(" rao ", TICKET_SEARCH_FIELDS, base)
    where, params = predicate.to_sql()
    assert where.startswith(" WHERE diary_number = ? AND (")
    assert where.count(" OR ") == len(TICKET_SEARCH_FIELDS) - 1
    assert params == [3, "rao", "rao", "rao", "rao"]
    assert FilterComposer.free_text("   ", TICKET_SEARCH_FIELDS, base) is base
