"""Input validation helpers."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from core.exceptions import InvalidAmountError, MissingFieldError, ValidationError

WHITESPACE_RE = re.compile(r"\s+")


def clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse inner whitespace and strip; empty strings become None."""
    if value is None:
        return None
    cleaned = WHITESPACE_RE.sub(" ", str(value)).strip()
    return cleaned or None


def require_text(value: Optional[str], field: str) -> str:
    cleaned = clean_text(value)
    if cleaned is None:
        raise MissingFieldError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    return cleaned


def require_value(value: Any, field: str) -> Any:
    if value is None or value == "":
        raise MissingFieldError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    return value


def parse_amount(value: Any, field: str, allow_negative: bool = False) -> Decimal:
    """Parse a monetary amount; negative amounts are rejected unless allowed."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount for {field}: {value!r}", field=field) from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount for {field}: {value!r}", field=field)
    if amount < 0 and not allow_negative:
        raise InvalidAmountError(f"{field.replace('_', ' ').capitalize()} cannot be negative", field=field)
    return amount


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date for {field}: {value!r}", field=field) from None
