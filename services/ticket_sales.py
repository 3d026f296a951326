"""Recording, correcting and cancelling ticket sales."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from core.constants import AuditEntity
from core.logger import get_logger
from database.models import TicketSale
from database.repositories import IssuerRepository, TicketSaleRepository
from services.audit_service import AuditEntry, AuditService
from services.filters import TICKET_SEARCH_FIELDS, FilterComposer, SearchCriteria
from services.numbering import ensure_lottery_number, format_lottery_number, parse_lottery_number
from services.sale_validator import ProspectiveSale, SaleValidator
from utils.validators import clean_text, parse_amount, parse_date, require_text, require_value

logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset({
    "lottery_number", "purchaser_name", "purchaser_contact", "purchaser_address",
    "issuer_id", "diary_id", "purchase_date", "amount_paid",
})


def _lottery_number(value: Union[int, str]) -> int:
    require_value(value, "lottery_number")
    if isinstance(value, str):
        return parse_lottery_number(value)
    return ensure_lottery_number(int(value))


def _normalize(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Presence checks and type coercion; semantic rules live in SaleValidator."""
    return {
        "lottery_number": _lottery_number(values.get("lottery_number")),
        "purchaser_name": require_text(values.get("purchaser_name"), "purchaser_name"),
        "purchaser_contact": require_text(values.get("purchaser_contact"), "purchaser_contact"),
        "purchaser_address": clean_text(values.get("purchaser_address")),
        "issuer_id": int(require_value(values.get("issuer_id"), "issuer_id")),
        "diary_id": int(require_value(values.get("diary_id"), "diary_id")),
        "purchase_date": parse_date(require_value(values.get("purchase_date"), "purchase_date"), "purchase_date"),
        # Sign is checked by the validator, after range and duplicate checks
        "amount_paid": parse_amount(require_value(values.get("amount_paid"), "amount_paid"), "amount_paid", allow_negative=True),
    }


class TicketSaleService:
    """Write path for sales. Every write is validated by ``SaleValidator``."""

    @staticmethod
    async def record_sale(
        lottery_number: Union[int, str],
        purchaser_name: str,
        purchaser_contact: str,
        issuer_id: int,
        diary_id: int,
        purchase_date: Union[date, str],
        amount_paid: Union[Decimal, str, int],
        purchaser_address: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> TicketSale:
        """Validate and store a new sale.

        Raises:
            ValidationError: For a missing or malformed field
            NotFoundError: If the issuer or diary does not exist
            RangeMismatchError: If the ticket is not printed in the diary
            DuplicateLotteryNumberError: If the ticket was already sold
            InvalidAmountError: If the amount is negative
        """
        fields = _normalize({
            "lottery_number": lottery_number,
            "purchaser_name": purchaser_name,
            "purchaser_contact": purchaser_contact,
            "purchaser_address": purchaser_address,
            "issuer_id": issuer_id,
            "diary_id": diary_id,
            "purchase_date": purchase_date,
            "amount_paid": amount_paid,
        })
        await TicketSaleService._validate(fields)

        # The unique column still guards against a concurrent duplicate
        sale = await TicketSaleRepository.create(fields)
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.TICKET_SALE, sale.id, after=sale, actor=actor)
        )
        logger.info(
            "Recorded sale of ticket %s in diary %s",
            format_lottery_number(sale.lottery_number), sale.diary_number,
        )
        return sale

    @staticmethod
    async def update_sale(
        sale_id: int,
        changes: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> TicketSale:
        """Correct a recorded sale; the merged record is validated again."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(sorted(unknown))}")

        current = await TicketSaleRepository.get(sale_id)
        merged = {
            "lottery_number": current.lottery_number,
            "purchaser_name": current.purchaser_name,
            "purchaser_contact": current.purchaser_contact,
            "purchaser_address": current.purchaser_address,
            "issuer_id": current.issuer_id,
            "diary_id": current.diary_id,
            "purchase_date": current.purchase_date,
            "amount_paid": current.amount_paid,
        }
        merged.update(changes)
        fields = _normalize(merged)
        await TicketSaleService._validate(fields, existing_sale_id=sale_id)

        updated = await TicketSaleRepository.update(sale_id, fields)
        await AuditService.record(
            AuditEntry.for_change(
                AuditEntity.TICKET_SALE, sale_id, before=current, after=updated, actor=actor
            )
        )
        logger.info("Updated sale %s", sale_id)
        return updated

    @staticmethod
    async def cancel_sale(sale_id: int, actor: Optional[str] = None) -> None:
        current = await TicketSaleRepository.get(sale_id)
        await TicketSaleRepository.delete(sale_id)
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.TICKET_SALE, sale_id, before=current, actor=actor)
        )
        logger.info("Cancelled sale of ticket %s", format_lottery_number(current.lottery_number))

    @staticmethod
    async def get_sale(sale_id: int) -> TicketSale:
        return await TicketSaleRepository.get(sale_id)

    @staticmethod
    async def list_sales(
        criteria: Optional[SearchCriteria] = None,
        search_term: Optional[str] = None,
    ) -> List[TicketSale]:
        """Sales matching ``criteria`` and, when given, the free-text ``search_term``.

        The term matches part of the lottery number, purchaser name or
        contact, or issuer name.
        """
        predicate = FilterComposer.compose(criteria or SearchCriteria()).tickets
        predicate = FilterComposer.free_text(search_term, TICKET_SEARCH_FIELDS, predicate)
        return await TicketSaleRepository.list(predicate)

    @staticmethod
    async def _validate(fields: Mapping[str, Any], existing_sale_id: Optional[int] = None) -> None:
        await IssuerRepository.get(fields["issuer_id"])
        await SaleValidator.validate(
            ProspectiveSale(
                lottery_number=fields["lottery_number"],
                diary_id=fields["diary_id"],
                issuer_id=fields["issuer_id"],
                amount_paid=fields["amount_paid"],
                purchase_date=fields["purchase_date"],
                existing_sale_id=existing_sale_id,
            )
        )
