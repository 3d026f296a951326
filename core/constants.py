"""Application-wide constants and configuration values."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


# Ticket numbering
class NumberingDefaults:
    """Layout of the pre-printed diaries."""
    MIN_LOTTERY_NUMBER = 1
    MAX_LOTTERY_NUMBER = 39999
    TICKETS_PER_DIARY = 22
    LAST_REGULAR_NUMBER = 39996  # 1818 * 22
    LAST_DIARY_NUMBER = 1819
    LAST_DIARY_START = 39997
    CODE_WIDTH = 5


# Pricing
class PricingDefaults:
    """Ticket pricing."""
    TICKET_PRICE = Decimal("500")


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    POOL_SIZE = 10
    BUSY_TIMEOUT = 5000  # milliseconds
    STORE_TIMEOUT = 10.0  # seconds


# Reporting
class ReportDefaults:
    """Dashboard and report configuration."""
    TOP_ISSUERS_LIMIT = 10
    DEFAULT_SORT_KEY = "total_collected"


# Status enums
class AllotmentStatus(str, Enum):
    """Status of a diary allotment."""
    ALLOTTED = "allotted"
    FULLY_SOLD = "fully_sold"
    PAID = "paid"
    RETURNED = "returned"

    @property
    def is_terminal(self) -> bool:
        return self in (AllotmentStatus.PAID, AllotmentStatus.RETURNED)


class AuditEntity(str, Enum):
    """Entity kinds recorded in the audit log."""
    ISSUER = "issuer"
    ALLOTMENT = "allotment"
    TICKET_SALE = "ticket_sale"


class AuditAction(str, Enum):
    """Audit log actions."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
