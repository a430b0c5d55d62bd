"""Audit log helpers. Entries join the caller's transaction; the caller commits."""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.audit import AuditAction, AuditLog


def log_action(
    db: Session,
    tenant_id: int,
    action: AuditAction,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action_metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        tenant_id=tenant_id,
        action=action.value,
        entity_type=entity_type,
        entity_id=entity_id,
        action_metadata=action_metadata,
    )
    db.add(entry)
    return entry
