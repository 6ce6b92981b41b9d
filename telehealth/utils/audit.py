"""
Audit logging for appointment and payment-order state transitions.
"""
import json
import logging
from typing import Optional

from telehealth.extensions import db
from telehealth.models import AuditLog

logger = logging.getLogger(__name__)


def log_audit(
    entity_type: str,
    action: str,
    actor_id: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> None:
    """Append an audit log entry."""
    try:
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            action=action,
            actor_id=str(actor_id) if actor_id is not None else None,
            details=json.dumps(details, default=str) if details else None,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        logger.warning("Audit log failed: %s", e)
        db.session.rollback()
