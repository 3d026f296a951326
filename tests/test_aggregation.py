"""Tests for dashboard and issuer report figures."""

from datetime import date
from decimal import Decimal

import pytest
from faker import Faker

from core.constants import AllotmentStatus
from database.models import DiaryAllotment, Issuer, TicketSale
from services.aggregation import (
    ReportService,
    collection_percentage,
    dashboard_stats,
    expected_amount_from_allotted,
    issuer_performance,
    status_counts,
    total_amount_collected,
    total_revenue,
)
from services.allotment_lifecycle import AllotmentLifecycle
from services.ticket_sales import TicketSaleService

fake = Faker()
Faker.seed(1819)


def make_allotment(allotment_id, issuer_id, status, collected="0", expected="11000"):
    return DiaryAllotment(
        id=allotment_id,
        diary_id=allotment_id,
        issuer_id=issuer_id,
        allotment_date=date(2024, 3, 1),
        status=AllotmentStatus(status),
        amount_collected=Decimal(collected),
        diary_number=allotment_id,
        expected_amount=Decimal(expected),
    )


def make_ticket(ticket_id, issuer_id, amount="500"):
    return TicketSale(
        id=ticket_id,
        lottery_number=ticket_id,
        purchaser_name=fake.name(),
        purchaser_contact=fake.msisdn(),
        issuer_id=issuer_id,
        diary_id=1,
        purchase_date=date(2024, 3, 10),
        amount_paid=Decimal(amount),
    )


ALLOTMENTS = [
    make_allotment(1, 1, "allotted", "2000"),
    make_allotment(2, 1, "paid", "11000"),
    make_allotment(3, 2, "fully_sold", "5500"),
    make_allotment(4, 2, "returned", "0"),
    make_allotment(5, 2, "allotted", "0", expected="1500"),
]
TICKETS = [make_ticket(1, 1), make_ticket(2, 1, "250.50"), make_ticket(3, 2)]
ISSUERS = [
    Issuer(1, "Ramesh Kumar", "9876543210"),
    Issuer(2, "Lakshmi Devi", "9123456780"),
    Issuer(3, "Arjun Menon", "9000000000"),
]


def test_revenue_and_counts():
    assert total_revenue(TICKETS) == Decimal("1250.50")
    assert total_revenue([]) == Decimal("0")
    assert status_counts(ALLOTMENTS) == {
        AllotmentStatus.ALLOTTED: 2,
        AllotmentStatus.FULLY_SOLD: 1,
        AllotmentStatus.PAID: 1,
        AllotmentStatus.RETURNED: 1,
    }
    assert status_counts([]) == {status: 0 for status in AllotmentStatus}


def test_collected_and_expected():
    assert total_amount_collected(ALLOTMENTS) == Decimal("18500")
    assert total_amount_collected(ALLOTMENTS, statuses=["paid"]) == Decimal("11000")
    # Only currently allotted diaries count toward expected money
    assert expected_amount_from_allotted(ALLOTMENTS) == Decimal("12500")


@pytest.mark.parametrize(
    "collected, expected, percent",
    [
        ("0", "0", 0),
        ("100", "0", 0),
        ("5500", "11000", 50),
        ("1", "3", 33),
        ("2", "3", 67),
        ("11", "200", 6),
        ("22000", "11000", 200),
    ],
)
def test_collection_percentage(collected, expected, percent):
    assert collection_percentage(Decimal(collected), Decimal(expected)) == percent


def test_dashboard_stats():
    stats = dashboard_stats(TICKETS, ALLOTMENTS)
    assert stats.total_tickets_sold == 3
    assert stats.total_revenue == Decimal("1250.50")
    assert stats.diaries_allotted == 2
    assert stats.diaries_fully_sold == 1
    assert stats.diaries_paid == 1
    assert stats.diaries_returned == 1
    assert stats.total_amount_collected == Decimal("18500")
    assert stats.expected_amount_from_allotted == Decimal("12500")
    assert stats.collection_rate == 148


def test_issuer_performance_sorted_by_collected():
    rows = issuer_performance(ISSUERS, ALLOTMENTS, TICKETS)
    assert [row.issuer_name for row in rows] == ["Ramesh Kumar", "Lakshmi Devi", "Arjun Menon"]

    ramesh = rows[0]
    assert ramesh.diaries_allotted == 2
    assert ramesh.tickets_sold == 2
    assert ramesh.total_collected == Decimal("13000")
    assert ramesh.expected_amount == Decimal("22000")
    assert ramesh.collection_percentage == 59

    arjun = rows[-1]
    assert arjun.diaries_allotted == 0
    assert arjun.collection_percentage == 0


def test_issuer_performance_sort_options():
    by_diaries = issuer_performance(ISSUERS, ALLOTMENTS, TICKETS, sort_key="diaries_allotted", limit=1)
    assert [row.issuer_name for row in by_diaries] == ["Lakshmi Devi"]

    by_name = issuer_performance(ISSUERS, ALLOTMENTS, TICKETS, sort_key="issuer_name", descending=False)
    assert [row.issuer_name for row in by_name] == ["Arjun Menon", "Lakshmi Devi", "Ramesh Kumar"]

    with pytest.raises(ValueError):
        issuer_performance(ISSUERS, ALLOTMENTS, TICKETS, sort_key="diary_count")


def test_ties_fall_back_to_name():
    rows = issuer_performance(ISSUERS, [], [], sort_key="tickets_sold")
    assert [row.issuer_name for row in rows] == ["Arjun Menon", "Lakshmi Devi", "Ramesh Kumar"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_report_service_over_store(issuer, other_issuer, sale_fields):
    lifecycle = AllotmentLifecycle()
    await lifecycle.allot(diary_id=1, issuer_id=issuer.id)
    second = await lifecycle.allot(diary_id=2, issuer_id=other_issuer.id)
    await lifecycle.transition(second.id, AllotmentStatus.PAID, amount_collected=Decimal("5500"))
    await TicketSaleService.record_sale(**sale_fields(issuer.id, 1, 1))
    await TicketSaleService.record_sale(**sale_fields(issuer.id, 1, 2, amount_paid="300"))

    stats = await ReportService.dashboard()
    assert stats.total_tickets_sold == 2
    assert stats.total_revenue == Decimal("800")
    assert stats.diaries_allotted == 1
    assert stats.diaries_paid == 1
    assert stats.total_amount_collected == Decimal("5500")
    assert stats.expected_amount_from_allotted == Decimal("11000")
    assert stats.collection_rate == 50

    top = await ReportService.top_issuers(limit=1)
    assert [row.issuer_name for row in top] == ["Lakshmi Devi"]
    by_tickets = await ReportService.top_issuers(sort_key="tickets_sold")
    assert by_tickets[0].id == issuer.id
    assert by_tickets[0].tickets_sold == 2
