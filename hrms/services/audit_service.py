"""
Audit logging service
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from hrms.models.audit_log import AuditLog
from hrms.utils.datetime_utils import Clock, system_clock
from hrms.utils.json_serializer import to_json_safe


def log_audit(
    db: Session,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    clock: Clock = system_clock,
    commit: bool = True,
) -> AuditLog:
    """
    Create an audit log entry

    Args:
        db: Database session
        actor_id: ID of the user performing the action
        action: Action type (e.g. "LEAVE_CREATE", "LEAVE_APPROVE", "ATTENDANCE_DELETE")
        entity_type: Table of the affected entity
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata (optional)
        clock: Time source for created_at
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=to_json_safe(meta) if meta is not None else None,
        created_at=clock.now(),
    )
    db.add(audit_log)
    if commit:
        db.commit()
    return audit_log
