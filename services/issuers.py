"""Issuer management."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from core.constants import AuditEntity
from core.logger import get_logger
from database.models import Issuer
from database.repositories import IssuerRepository
from services.audit_service import AuditEntry, AuditService
from services.filters import ISSUER_SEARCH_FIELDS, FilterComposer
from utils.validators import clean_text, require_text

logger = get_logger(__name__)


class IssuerService:
    """Create, edit and remove issuers. Name and contact are required."""

    @staticmethod
    async def create(
        issuer_name: str,
        contact_number: str,
        address: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Issuer:
        issuer = await IssuerRepository.create({
            "issuer_name": require_text(issuer_name, "issuer_name"),
            "contact_number": require_text(contact_number, "contact_number"),
            "address": clean_text(address),
        })
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.ISSUER, issuer.id, after=issuer, actor=actor)
        )
        logger.info("Issuer %s created: %s", issuer.id, issuer.issuer_name)
        return issuer

    @staticmethod
    async def update(
        issuer_id: int,
        changes: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> Issuer:
        fields: Dict[str, Any] = {}
        for key, value in changes.items():
            if key in ("issuer_name", "contact_number"):
                fields[key] = require_text(value, key)
            elif key == "address":
                fields[key] = clean_text(value)
            else:
                raise ValueError(f"Cannot edit issuer field {key!r}")

        current = await IssuerRepository.get(issuer_id)
        updated = await IssuerRepository.update(issuer_id, fields)
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.ISSUER, issuer_id, before=current, after=updated, actor=actor)
        )
        return updated

    @staticmethod
    async def delete(issuer_id: int, actor: Optional[str] = None) -> None:
        """Remove an issuer.

        Raises:
            NotFoundError: If the issuer does not exist
            ConflictError: If allotments or sales still reference the issuer
        """
        current = await IssuerRepository.get(issuer_id)
        await IssuerRepository.delete(issuer_id)
        await AuditService.record(
            AuditEntry.for_change(AuditEntity.ISSUER, issuer_id, before=current, actor=actor)
        )
        logger.info("Issuer %s deleted", issuer_id)

    @staticmethod
    async def get(issuer_id: int) -> Issuer:
        return await IssuerRepository.get(issuer_id)

    @staticmethod
    async def list(search_term: Optional[str] = None) -> List[Issuer]:
        """All issuers by name, optionally narrowed by name, contact or address."""
        predicate = FilterComposer.free_text(clean_text(search_term), ISSUER_SEARCH_FIELDS)
        return await IssuerRepository.list(predicate)
