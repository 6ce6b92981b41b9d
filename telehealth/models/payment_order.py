"""
Pending payment order
Correlates an external payment with the appointment it is meant to create.
"""
from telehealth.extensions import db
from .base import TimestampMixin

ORDER_CREATED = 'created'
ORDER_SUCCESS = 'success'
ORDER_FAILED = 'failed'
ORDER_DROPPED = 'dropped'
# Paid, but the slot was lost before the appointment could be created
ORDER_NEEDS_REASSIGNMENT = 'confirmed-needs-manual-reassignment'

OPEN_ORDER_STATUSES = (ORDER_CREATED, ORDER_SUCCESS)


class PaymentOrder(db.Model, TimestampMixin):
    __tablename__ = 'payment_orders'

    id = db.Column(db.Integer, primary_key=True)
    order_reference = db.Column(db.String(64), unique=True, nullable=False, index=True)
    payment_session_id = db.Column(db.String(255))

    # Booking fingerprint fields
    fingerprint = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    time_slot = db.Column(db.String(16), nullable=False)
    consultation_type = db.Column(db.String(20), nullable=False)
    patient_id = db.Column(db.String(64), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)

    # Snapshot used to materialize the appointment later (sweeps run without a request)
    patient_name = db.Column(db.String(120))
    patient_email = db.Column(db.String(120))
    patient_phone = db.Column(db.String(20))
    patient_country = db.Column(db.String(8))
    intake = db.Column(db.JSON)

    status = db.Column(db.String(40), nullable=False, default=ORDER_CREATED, index=True)
    provider_status = db.Column(db.String(40))  # last raw status seen from the provider
    environment = db.Column(db.String(20))
    verification_attempts = db.Column(db.Integer, default=0, nullable=False)
    last_checked_at = db.Column(db.DateTime)
    paid_at = db.Column(db.DateTime)
    closed_at = db.Column(db.DateTime)

    def to_handle(self):
        """Order handle returned to the client-side checkout SDK"""
        return {
            'order_id': self.order_reference,
            'payment_session_id': self.payment_session_id,
            'amount': float(self.amount),
            'currency': self.currency,
            'status': self.status,
            'environment': self.environment,
        }

    def __repr__(self):
        return f"<PaymentOrder {self.order_reference} {self.status}>"
