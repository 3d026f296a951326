"""Validation of ticket sales before they are written."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from core.exceptions import DuplicateLotteryNumberError, InvalidAmountError, RangeMismatchError
from core.logger import get_logger
from database.models import Diary
from database.repositories import DiaryRepository, TicketSaleRepository
from services.numbering import format_lottery_number, is_valid_for_diary

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProspectiveSale:
    lottery_number: int
    diary_id: int
    issuer_id: int
    amount_paid: Decimal
    purchase_date: date
    # Set when editing, so the sale does not collide with itself
    existing_sale_id: Optional[int] = None


class SaleValidator:
    """Sole enforcement point for a sale's semantic rules.

    Checks run in a fixed order and the first failure is raised.
    """

    @staticmethod
    async def validate(sale: ProspectiveSale) -> Diary:
        """Validate ``sale`` and return its resolved diary.

        Raises:
            UnknownDiaryError: If the diary does not exist
            RangeMismatchError: If the ticket is not printed in that diary
            DuplicateLotteryNumberError: If another sale holds the number
            InvalidAmountError: If ``amount_paid`` is negative
        """
        diary = await DiaryRepository.get(sale.diary_id)

        if not is_valid_for_diary(sale.lottery_number, diary.diary_number):
            raise RangeMismatchError(
                f"Lottery number {sale.lottery_number} is not valid for diary "
                f"{diary.diary_number} ({diary.ticket_start_range}-{diary.ticket_end_range})",
                field="lottery_number",
            )

        taken = await TicketSaleRepository.lottery_number_taken(
            sale.lottery_number, exclude_id=sale.existing_sale_id
        )
        if taken:
            raise DuplicateLotteryNumberError(
                f"Lottery number {format_lottery_number(sale.lottery_number)} already exists"
            )

        if Decimal(sale.amount_paid) < 0:
            raise InvalidAmountError("Amount paid cannot be negative", field="amount_paid")

        logger.debug("Sale of %s in diary %s is valid", sale.lottery_number, diary.diary_number)
        return diary
