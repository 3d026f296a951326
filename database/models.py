"""Record types returned by the ledger store."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from core.constants import AllotmentStatus


def to_decimal(value: Any) -> Decimal:
    """Convert a stored NUMERIC value to Decimal without float noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _optional(row: Mapping[str, Any], key: str) -> Any:
    return row[key] if key in row.keys() else None


@dataclass(slots=True, frozen=True)
class Diary:
    id: int
    diary_number: int
    ticket_start_range: int
    ticket_end_range: int
    total_tickets: int
    expected_amount: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Diary":
        return cls(
            id=row["id"],
            diary_number=row["diary_number"],
            ticket_start_range=row["ticket_start_range"],
            ticket_end_range=row["ticket_end_range"],
            total_tickets=row["total_tickets"],
            expected_amount=to_decimal(row["expected_amount"]),
        )


@dataclass(slots=True, frozen=True)
class Issuer:
    id: int
    issuer_name: str
    contact_number: str
    address: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Issuer":
        return cls(
            id=row["id"],
            issuer_name=row["issuer_name"],
            contact_number=row["contact_number"],
            address=row["address"],
        )


@dataclass(slots=True, frozen=True)
class DiaryAllotment:
    """An allotment together with the joined diary and issuer columns."""
    id: int
    diary_id: int
    issuer_id: int
    allotment_date: date
    status: AllotmentStatus
    amount_collected: Decimal
    notes: Optional[str] = None
    diary_number: Optional[int] = None
    ticket_start_range: Optional[int] = None
    ticket_end_range: Optional[int] = None
    expected_amount: Decimal = Decimal("0")
    issuer_name: Optional[str] = None
    issuer_contact: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is AllotmentStatus.ALLOTTED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DiaryAllotment":
        return cls(
            id=row["id"],
            diary_id=row["diary_id"],
            issuer_id=row["issuer_id"],
            allotment_date=to_date(row["allotment_date"]),
            status=AllotmentStatus(row["status"]),
            amount_collected=to_decimal(row["amount_collected"]),
            notes=row["notes"],
            diary_number=_optional(row, "diary_number"),
            ticket_start_range=_optional(row, "ticket_start_range"),
            ticket_end_range=_optional(row, "ticket_end_range"),
            expected_amount=to_decimal(_optional(row, "expected_amount")),
            issuer_name=_optional(row, "issuer_name"),
            issuer_contact=_optional(row, "issuer_contact"),
        )


@dataclass(slots=True, frozen=True)
class TicketSale:
    """A sold ticket together with the joined diary number and issuer name."""
    id: int
    lottery_number: int
    purchaser_name: str
    purchaser_contact: str
    issuer_id: int
    diary_id: int
    purchase_date: date
    amount_paid: Decimal
    purchaser_address: Optional[str] = None
    diary_number: Optional[int] = None
    issuer_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TicketSale":
        return cls(
            id=row["id"],
            lottery_number=row["lottery_number"],
            purchaser_name=row["purchaser_name"],
            purchaser_contact=row["purchaser_contact"],
            purchaser_address=row["purchaser_address"],
            issuer_id=row["issuer_id"],
            diary_id=row["diary_id"],
            purchase_date=to_date(row["purchase_date"]),
            amount_paid=to_decimal(row["amount_paid"]),
            diary_number=_optional(row, "diary_number"),
            issuer_name=_optional(row, "issuer_name"),
        )


def snapshot(record: Any) -> Dict[str, Any]:
    """JSON-safe dict of a record, used for audit payloads."""
    data = asdict(record)
    for key, value in data.items():
        if isinstance(value, Decimal):
            data[key] = str(value)
        elif isinstance(value, date):
            data[key] = value.isoformat()
        elif isinstance(value, AllotmentStatus):
            data[key] = value.value
    return data
