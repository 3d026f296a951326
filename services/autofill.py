"""Suggests diary, issuer and defaults for a sale from its lottery number."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from core.constants import PricingDefaults
from core.logger import get_logger
from database.models import Diary, DiaryAllotment, Issuer
from database.repositories import AllotmentRepository, DiaryRepository, IssuerRepository
from services.numbering import diary_number_for

logger = get_logger(__name__)


class AutoFillSignal(str, Enum):
    """Outcome of an auto-fill lookup. Only READY carries an issuer."""
    READY = "ready"
    DIARY_NOT_PROVISIONED = "diary_not_provisioned"
    NO_ACTIVE_ISSUER = "no_active_issuer"


@dataclass(frozen=True)
class AutoFillResult:
    lottery_number: int
    diary_number: int
    signal: AutoFillSignal
    diary: Optional[Diary] = None
    issuer: Optional[Issuer] = None
    allotment: Optional[DiaryAllotment] = None
    amount_paid: Optional[Decimal] = None
    purchase_date: Optional[date] = None

    @property
    def is_complete(self) -> bool:
        return self.signal is AutoFillSignal.READY

    @property
    def message(self) -> str:
        if self.signal is AutoFillSignal.DIARY_NOT_PROVISIONED:
            return f"Diary {self.diary_number} has not been provisioned"
        if self.signal is AutoFillSignal.NO_ACTIVE_ISSUER:
            return f"Diary {self.diary_number} is not allotted to any issuer"
        return f"Auto-filled diary {self.diary_number} details"


class AutoFillResolver:
    """Advisory lookup; callers may override every suggested field."""

    def __init__(
        self,
        unit_price: Decimal = PricingDefaults.TICKET_PRICE,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.unit_price = unit_price
        self._today = today

    async def resolve(self, lottery_number: int) -> AutoFillResult:
        """Resolve diary and issuer for ``lottery_number``.

        Raises:
            OutOfRangeError: If the number was never printed
        """
        diary_number = diary_number_for(lottery_number)

        diary = await DiaryRepository.find_by_number(diary_number)
        if diary is None:
            logger.debug("No diary %s for lottery number %s", diary_number, lottery_number)
            return AutoFillResult(
                lottery_number=lottery_number,
                diary_number=diary_number,
                signal=AutoFillSignal.DIARY_NOT_PROVISIONED,
            )

        allotment = await AllotmentRepository.find_active(diary.id)
        if allotment is None:
            return AutoFillResult(
                lottery_number=lottery_number,
                diary_number=diary_number,
                signal=AutoFillSignal.NO_ACTIVE_ISSUER,
                diary=diary,
            )

        issuer = await IssuerRepository.get(allotment.issuer_id)
        return AutoFillResult(
            lottery_number=lottery_number,
            diary_number=diary_number,
            signal=AutoFillSignal.READY,
            diary=diary,
            issuer=issuer,
            allotment=allotment,
            amount_paid=self.unit_price,
            purchase_date=self._today(),
        )
