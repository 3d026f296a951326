"""Tests for issuer management."""

import pytest

from core.constants import AuditAction, AuditEntity
from core.exceptions import ConflictError, MissingFieldError, NotFoundError
from services.allotment_lifecycle import AllotmentLifecycle
from services.audit_service import AuditService
from services.issuers import IssuerService


@pytest.mark.integration
@pytest.mark.asyncio
async def test_create_cleans_text(test_db):
    issuer = await IssuerService.create("  Priya   Iyer ", " 9000000001 ", "   ")
    assert issuer.issuer_name == "Priya Iyer"
    assert issuer.contact_number == "9000000001"
    assert issuer.address is None


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize("name, contact", [("", "9000000001"), ("Priya", "  "), (None, "1")])
async def test_name_and_contact_required(test_db, name, contact):
    with pytest.raises(MissingFieldError):
        await IssuerService.create(name, contact)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_is_ordered_and_searchable(issuer, other_issuer):
    names = [i.issuer_name for i in await IssuerService.list()]
    assert names == ["Lakshmi Devi", "Ramesh Kumar"]

    found = await IssuerService.list(search_term="KUMAR")
    assert [i.id for i in found] == [issuer.id]
    assert len(await IssuerService.list(search_term="  ")) == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_update_is_audited(issuer):
    updated = await IssuerService.update(issuer.id, {"contact_number": "9999999999"}, actor="admin")
    assert updated.contact_number == "9999999999"
    assert updated.issuer_name == "Ramesh Kumar"

    history = await AuditService.history(AuditEntity.ISSUER, issuer.id)
    assert history[0].action is AuditAction.UPDATE
    assert history[0].changed_fields() == {"contact_number": ("9876543210", "9999999999")}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_update_rejects_unknown_field_and_missing_issuer(issuer):
    with pytest.raises(ValueError):
        await IssuerService.update(issuer.id, {"id": 7})
    with pytest.raises(NotFoundError):
        await IssuerService.update(9999, {"address": "Somewhere"})


@pytest.mark.integration
@pytest.mark.asyncio
async def test_delete_unreferenced_issuer(issuer):
    await IssuerService.delete(issuer.id)
    with pytest.raises(NotFoundError):
        await IssuerService.get(issuer.id)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_delete_referenced_issuer_conflicts(issuer):
    await AllotmentLifecycle().allot(diary_id=1, issuer_id=issuer.id)
    with pytest.raises(ConflictError):
        await IssuerService.delete(issuer.id)
    assert (await IssuerService.get(issuer.id)).id == issuer.id


@pytest.mark.integration
@pytest.mark.asyncio
async def test_search_term_matches_name_contact_or_address(issuer, other_issuer):
    await IssuerService.create("Chloé Dubois", "9333300000", "Rue de l'Église")

    assert [i.issuer_name for i in await IssuerService.list("91234")] == ["Lakshmi Devi"]
    assert [i.issuer_name for i in await IssuerService.list("temple")] == ["Ramesh Kumar"]
    assert [i.issuer_name for i in await IssuerService.list("ÉGLISE")] == ["Chloé Dubois"]
    assert [i.issuer_name for i in await IssuerService.list("chloé")] == ["Chloé Dubois"]
    assert await IssuerService.list("nobody") == []
