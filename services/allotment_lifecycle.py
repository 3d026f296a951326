"""Diary allotment lifecycle.

Documented flow::

    allotted -> fully_sold -> paid
    allotted -> returned

``paid`` and ``returned`` are terminal. Operators may still pick any status
directly, so the default policy accepts every transition; a stricter policy
can be swapped in without touching callers.

A diary may have at most one allotment in ``allotted`` at a time. The check
here is an optimistic pre-check; the store's partial unique index is the
guard that holds under concurrent requests.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from core.constants import AllotmentStatus, AuditEntity
from core.exceptions import (
    ConflictActiveAllotmentError,
    InvalidAmountError,
    InvalidTransitionError,
)
from core.logger import get_logger
from database.models import DiaryAllotment
from database.repositories import AllotmentRepository, DiaryRepository, IssuerRepository
from services.audit_service import AuditEntry, AuditService
from services.filters import ALLOTMENT_SEARCH_FIELDS, FilterComposer, SearchCriteria

logger = get_logger(__name__)

DOCUMENTED_TRANSITIONS: Mapping[AllotmentStatus, FrozenSet[AllotmentStatus]] = {
    AllotmentStatus.ALLOTTED: frozenset({AllotmentStatus.FULLY_SOLD, AllotmentStatus.RETURNED}),
    AllotmentStatus.FULLY_SOLD: frozenset({AllotmentStatus.PAID}),
    AllotmentStatus.PAID: frozenset(),
    AllotmentStatus.RETURNED: frozenset(),
}

ALREADY_ALLOTTED = "Diary already allotted to an issuer"


class TransitionPolicy:
    """Decides whether an allotment may move between two statuses."""

    def check(self, current: AllotmentStatus, target: AllotmentStatus) -> None:
        raise NotImplementedError


class PermissiveTransitionPolicy(TransitionPolicy):
    """Accepts every transition, matching direct status selection."""

    def check(self, current: AllotmentStatus, target: AllotmentStatus) -> None:
        return None


class DocumentedTransitionPolicy(TransitionPolicy):
    """Accepts only the documented edges; re-selecting the same status is a no-op."""

    def check(self, current: AllotmentStatus, target: AllotmentStatus) -> None:
        if current is target:
            return
        if target not in DOCUMENTED_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot move allotment from {current.value} to {target.value}",
                field="status",
            )


def _check_amount(amount: Decimal) -> Decimal:
    amount = Decimal(amount)
    if amount < 0:
        raise InvalidAmountError("Amount collected cannot be negative", field="amount_collected")
    return amount


class AllotmentLifecycle:
    """Creates allotments and moves them between statuses."""

    def __init__(self, policy: Optional[TransitionPolicy] = None) -> None:
        self.policy = policy or PermissiveTransitionPolicy()

    @staticmethod
    async def active_allotment_for(diary_id: int) -> Optional[DiaryAllotment]:
        return await AllotmentRepository.find_active(diary_id)

    @staticmethod
    async def list_allotments(
        criteria: Optional[SearchCriteria] = None,
        search_term: Optional[str] = None,
    ) -> List[DiaryAllotment]:
        """Allotments, newest first, narrowed by ``criteria`` and ``search_term``.

        The term matches part of the diary number, issuer name or contact,
        or status.
        """
        predicate = FilterComposer.compose(criteria or SearchCriteria()).allotments
        predicate = FilterComposer.free_text(search_term, ALLOTMENT_SEARCH_FIELDS, predicate)
        return await AllotmentRepository.list(predicate)

    async def allot(
        self,
        diary_id: int,
        issuer_id: int,
        allotment_date: Optional[date] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> DiaryAllotment:
        """Allot a diary to an issuer.

        The new allotment always starts in ``allotted`` with nothing collected.

        Raises:
            UnknownDiaryError: If the diary does not exist
            NotFoundError: If the issuer does not exist
            ConflictActiveAllotmentError: If the diary is already allotted
        """
        diary = await DiaryRepository.get(diary_id)
        await IssuerRepository.get(issuer_id)

        if await AllotmentRepository.find_active(diary_id) is not None:
            logger.warning("Diary %s is already allotted", diary.diary_number)
            raise ConflictActiveAllotmentError(ALREADY_ALLOTTED)

        # The store raises the same conflict if a concurrent request won the race
        allotment = await AllotmentRepository.create(
            diary_id=diary_id,
            issuer_id=issuer_id,
            allotment_date=allotment_date or date.today(),
            notes=notes,
        )
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.ALLOTMENT, allotment.id, after=allotment, actor=actor)
        )
        logger.info(
            "Allotted diary %s to issuer %s (allotment %s)",
            diary.diary_number, issuer_id, allotment.id,
        )
        return allotment

    async def transition(
        self,
        allotment_id: int,
        new_status: AllotmentStatus,
        amount_collected: Optional[Decimal] = None,
        actor: Optional[str] = None,
    ) -> DiaryAllotment:
        """Move an allotment to ``new_status``.

        ``amount_collected`` is only changed when supplied.

        Raises:
            NotFoundError: If the allotment does not exist
            InvalidTransitionError: If the policy rejects the move
            InvalidAmountError: If the supplied amount is negative
            ConflictActiveAllotmentError: If moving back to ``allotted`` while
                the diary has another active allotment
        """
        new_status = AllotmentStatus(new_status)
        current = await AllotmentRepository.get(allotment_id)
        self.policy.check(current.status, new_status)

        fields: Dict[str, Any] = {"status": new_status}
        if amount_collected is not None:
            fields["amount_collected"] = _check_amount(amount_collected)

        if new_status is AllotmentStatus.ALLOTTED and not current.is_active:
            await self._ensure_no_other_active(current.diary_id, allotment_id)

        updated = await AllotmentRepository.update(allotment_id, fields)
        await AuditService.record(
            AuditEntry.for_change(
                AuditEntity.ALLOTMENT, allotment_id, before=current, after=updated, actor=actor
            )
        )
        logger.info(
            "Allotment %s moved %s -> %s",
            allotment_id, current.status.value, new_status.value,
        )
        return updated

    async def update_allotment(
        self,
        allotment_id: int,
        changes: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> DiaryAllotment:
        """Edit diary, issuer, date, notes or collected amount of an allotment.

        Status changes go through :meth:`transition`.
        """
        allowed = {"diary_id", "issuer_id", "allotment_date", "notes", "amount_collected"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(sorted(unknown))} here")

        current = await AllotmentRepository.get(allotment_id)
        fields = dict(changes)
        if "amount_collected" in fields:
            fields["amount_collected"] = _check_amount(fields["amount_collected"])
        if "diary_id" in fields:
            await DiaryRepository.get(fields["diary_id"])
            if current.is_active and fields["diary_id"] != current.diary_id:
                await self._ensure_no_other_active(fields["diary_id"], allotment_id)
        if "issuer_id" in fields:
            await IssuerRepository.get(fields["issuer_id"])

        updated = await AllotmentRepository.update(allotment_id, fields)
        await AuditService.record(
            AuditEntry.for_change(
                AuditEntity.ALLOTMENT, allotment_id, before=current, after=updated, actor=actor
            )
        )
        logger.info("Allotment %s updated", allotment_id)
        return updated

    async def delete_allotment(self, allotment_id: int, actor: Optional[str] = None) -> None:
        current = await AllotmentRepository.get(allotment_id)
        await AllotmentRepository.delete(allotment_id)
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.ALLOTMENT, allotment_id, before=current, actor=actor)
        )
        logger.info("Allotment %s deleted", allotment_id)

    @staticmethod
    async def _ensure_no_other_active(diary_id: int, allotment_id: int) -> None:
        active = await AllotmentRepository.find_active(diary_id)
        if active is not None and active.id != allotment_id:
            raise ConflictActiveAllotmentError(ALREADY_ALLOTTED)
