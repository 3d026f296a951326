"""Lottery number to diary mapping.

Diaries 1..1818 each hold 22 consecutive tickets. The 39999 printed tickets do
not divide evenly, so the last diary (1819) holds the three-ticket remainder
39997..39999. Every caller that needs diary boundaries goes through this
module so sale validation and auto-fill always agree.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Iterator, NamedTuple, Tuple

from core.constants import NumberingDefaults, PricingDefaults
from core.exceptions import InvalidFormatError, OutOfRangeError

MIN_LOTTERY_NUMBER = NumberingDefaults.MIN_LOTTERY_NUMBER
MAX_LOTTERY_NUMBER = NumberingDefaults.MAX_LOTTERY_NUMBER
TICKETS_PER_DIARY = NumberingDefaults.TICKETS_PER_DIARY
LAST_DIARY_NUMBER = NumberingDefaults.LAST_DIARY_NUMBER


class TicketRange(NamedTuple):
    """Inclusive ticket bounds of a diary."""
    start: int
    end: int

    def __contains__(self, lottery_number: object) -> bool:
        if not isinstance(lottery_number, int) or isinstance(lottery_number, bool):
            return False
        return self.start <= lottery_number <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1


LAST_DIARY_RANGE = TicketRange(NumberingDefaults.LAST_DIARY_START, MAX_LOTTERY_NUMBER)


def ensure_lottery_number(lottery_number: int) -> int:
    if not MIN_LOTTERY_NUMBER <= lottery_number <= MAX_LOTTERY_NUMBER:
        raise OutOfRangeError(
            f"Lottery number {lottery_number} is outside "
            f"{MIN_LOTTERY_NUMBER}-{MAX_LOTTERY_NUMBER}",
            field="lottery_number",
        )
    return lottery_number


def diary_number_for(lottery_number: int) -> int:
    """Return the number of the diary that holds ``lottery_number``.

    Raises:
        OutOfRangeError: If the number was never printed
    """
    ensure_lottery_number(lottery_number)
    if lottery_number <= NumberingDefaults.LAST_REGULAR_NUMBER:
        return math.ceil(lottery_number / TICKETS_PER_DIARY)
    return LAST_DIARY_NUMBER


def range_for_diary(diary_number: int) -> TicketRange:
    """Return the inclusive ticket range of ``diary_number``.

    Raises:
        OutOfRangeError: If no such diary was printed
    """
    if not 1 <= diary_number <= LAST_DIARY_NUMBER:
        raise OutOfRangeError(
            f"Diary number {diary_number} is outside 1-{LAST_DIARY_NUMBER}",
            field="diary_number",
        )
    if diary_number == LAST_DIARY_NUMBER:
        return LAST_DIARY_RANGE
    return TicketRange(
        start=(diary_number - 1) * TICKETS_PER_DIARY + 1,
        end=diary_number * TICKETS_PER_DIARY,
    )


def is_valid_for_diary(lottery_number: int, diary_number: int) -> bool:
    """True iff ``lottery_number`` is printed in ``diary_number``."""
    try:
        return lottery_number in range_for_diary(diary_number)
    except OutOfRangeError:
        return False


def format_lottery_number(lottery_number: int) -> str:
    """Render the canonical 5-digit ticket code, e.g. ``5 -> "00005"``."""
    ensure_lottery_number(lottery_number)
    return f"{lottery_number:0{NumberingDefaults.CODE_WIDTH}d}"


def parse_lottery_number(text: str) -> int:
    """Parse a padded or bare ticket code.

    Raises:
        InvalidFormatError: If the text is not all ASCII digits or falls
            outside the printed range
    """
    token = (text or "").strip()
    # str.isdigit accepts superscripts and other unicode digits
    if not token or not (token.isascii() and token.isdigit()):
        raise InvalidFormatError(
            f"Lottery number must contain only digits, got {text!r}",
            field="lottery_number",
        )
    value = int(token)
    if not MIN_LOTTERY_NUMBER <= value <= MAX_LOTTERY_NUMBER:
        raise InvalidFormatError(
            f"Lottery number {value} is outside {MIN_LOTTERY_NUMBER}-{MAX_LOTTERY_NUMBER}",
            field="lottery_number",
        )
    return value


def tickets_in_diary(diary_number: int) -> int:
    return range_for_diary(diary_number).size


def expected_amount_for_diary(
    diary_number: int,
    unit_price: Decimal = PricingDefaults.TICKET_PRICE,
) -> Decimal:
    """Money expected when every ticket in the diary is sold."""
    return tickets_in_diary(diary_number) * unit_price


def iter_diary_ranges() -> Iterator[Tuple[int, TicketRange]]:
    """Yield ``(diary_number, range)`` for every printed diary in order."""
    for diary_number in range(1, LAST_DIARY_NUMBER + 1):
        yield diary_number, range_for_diary(diary_number)
