"""
Audit trail for appointment and payment-order state transitions.
"""
from telehealth.extensions import db
from datetime import datetime


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(64), nullable=False, index=True)  # appointment, payment_order, reminder
    entity_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)  # created, confirmed, paid, failed, abandoned, ...
    actor_id = db.Column(db.String(64), nullable=True, index=True)  # patient id, or None for system actions
    details = db.Column(db.Text, nullable=True)  # JSON
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor_id": self.actor_id,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
