from typing import Any

from sqlalchemy.orm import Session

from ..models import AuditLog


def record_audit(
    db: Session,
    user_id: str | None,
    action: str,
    resource: str,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Add an audit row to the current transaction. The caller commits."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource=resource,
        details=details or {},
        ip_address=ip_address,
    )
    db.add(entry)
    return entry
