"""Audit log for operator changes.

Entries are a tagged variant: the ``entity`` tag says which record schema the
``before`` / ``after`` snapshots follow, so stored payloads stay decodable.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.constants import AuditAction, AuditEntity
from core.logger import get_logger
from database.base_repository import BaseRepository
from database.models import snapshot

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    entity: AuditEntity
    entity_id: int
    action: AuditAction
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    actor: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    @classmethod
    def for_change(
        cls,
        entity: AuditEntity,
        entity_id: int,
        before: Any = None,
        after: Any = None,
        actor: Optional[str] = None,
    ) -> "AuditEntry":
        """Build an entry from record objects, inferring the action."""
        if before is None:
            action = AuditAction.INSERT
        elif after is None:
            action = AuditAction.DELETE
        else:
            action = AuditAction.UPDATE
        return cls(
            entity=entity,
            entity_id=entity_id,
            action=action,
            before=snapshot(before) if before is not None else None,
            after=snapshot(after) if after is not None else None,
            actor=actor,
        )

    def changed_fields(self) -> Dict[str, tuple]:
        """Return ``{field: (old, new)}`` for an UPDATE entry."""
        if not self.before or not self.after:
            return {}
        return {
            key: (self.before.get(key), value)
            for key, value in self.after.items()
            if self.before.get(key) != value
        }


def _loads(value: Optional[str]) -> Optional[Dict[str, Any]]:
    return json.loads(value) if value else None


class AuditService:
    """Persists and reads audit entries."""

    @staticmethod
    async def record(entry: AuditEntry) -> int:
        entry_id = await BaseRepository.insert(
            """
            INSERT INTO audit_log (entity_type, entity_id, action, before_value, after_value, actor)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.entity,
                entry.entity_id,
                entry.action,
                json.dumps(entry.before, ensure_ascii=False) if entry.before is not None else None,
                json.dumps(entry.after, ensure_ascii=False) if entry.after is not None else None,
                entry.actor,
            ),
        )
        logger.debug(
            "Audit %s %s #%s by %s",
            entry.action.value, entry.entity.value, entry.entity_id, entry.actor,
        )
        return entry_id

    @staticmethod
    async def history(entity: AuditEntity, entity_id: int, limit: int = 100) -> List[AuditEntry]:
        """Entries for one record, newest first."""
        rows = await BaseRepository.fetch_all(
            """
            SELECT * FROM audit_log
            WHERE entity_type=? AND entity_id=?
            ORDER BY id DESC
            LIMIT ?
            """,
            (entity, entity_id, limit),
        )
        return [
            AuditEntry(
                id=row["id"],
                entity=AuditEntity(row["entity_type"]),
                entity_id=row["entity_id"],
                action=AuditAction(row["action"]),
                before=_loads(row["before_value"]),
                after=_loads(row["after_value"]),
                actor=row["actor"],
                created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
            )
            for row in rows
        ]
