from sqlalchemy import event, text
from telehealth.extensions import db
from .base import TimestampMixin

# Status lifecycle: pending -> confirmed -> completed, or -> cancelled
STATUS_PENDING = 'pending'
STATUS_CONFIRMED = 'confirmed'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'
APPOINTMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)

# Consultation type ids and their display names
CONSULTATION_TYPES = {
    'initial': 'Initial Consultation',
    'followup': 'Follow-up',
    'urgent': 'Urgent Consultation',
}


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'
    __table_args__ = (
        # One live appointment per (date, time_slot); cancelled rows free the slot
        db.Index(
            'uq_appointments_active_slot',
            'date', 'time_slot',
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    time_slot = db.Column(db.String(16), nullable=False)  # doctor-local label, e.g. "10:00 AM"
    consultation_type = db.Column(db.String(20), nullable=False)  # initial, followup, urgent
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)

    # Price charged
    price_amount = db.Column(db.Numeric(10, 2))
    price_currency = db.Column(db.String(3))
    price_symbol = db.Column(db.String(8))
    price_region = db.Column(db.String(8))
    price_tier = db.Column(db.String(1))
    discount_applied = db.Column(db.Boolean, default=False, nullable=False)

    # Patient snapshot (identity comes from the auth collaborator)
    patient_id = db.Column(db.String(64), nullable=False, index=True)
    patient_name = db.Column(db.String(120))
    patient_email = db.Column(db.String(120))
    patient_phone = db.Column(db.String(20))
    patient_country = db.Column(db.String(8))

    # Doctor identity (single static doctor)
    doctor_name = db.Column(db.String(120))
    doctor_title = db.Column(db.String(120))
    doctor_qualifications = db.Column(db.String(255))
    doctor_email = db.Column(db.String(120))

    meet_link = db.Column(db.String(255))

    # Patient intake captured during booking
    intake_description = db.Column(db.Text)
    intake_address = db.Column(db.String(500))
    intake_documents = db.Column(db.JSON)

    # Set when the appointment was materialized from a paid order
    payment_order_id = db.Column(db.Integer, db.ForeignKey('payment_orders.id'), nullable=True, unique=True)

    # Patient id when this booking holds the first-booking discount (unique per patient)
    first_booking_claim = db.Column(db.String(64), nullable=True, unique=True)

    payment_order = db.relationship('PaymentOrder', backref=db.backref('appointment', uselist=False), lazy=True)

    @property
    def consultation_type_name(self):
        return CONSULTATION_TYPES.get(self.consultation_type, CONSULTATION_TYPES['initial'])

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            'id': self.id,
            'date': self.date.isoformat() if self.date else None,
            'time_slot': self.time_slot,
            'consultation_type': self.consultation_type,
            'consultation_type_name': self.consultation_type_name,
            'status': self.status,
            'price': {
                'amount': float(self.price_amount) if self.price_amount is not None else None,
                'currency': self.price_currency,
                'symbol': self.price_symbol,
                'region': self.price_region,
                'tier': self.price_tier,
                'discount_applied': bool(self.discount_applied),
            },
            'patient': {
                'id': self.patient_id,
                'name': self.patient_name,
                'email': self.patient_email,
                'phone': self.patient_phone,
                'country': self.patient_country,
            },
            'doctor': {
                'name': self.doctor_name,
                'title': self.doctor_title,
                'qualifications': self.doctor_qualifications,
            },
            'meet_link': self.meet_link,
            'intake': {
                'description': self.intake_description,
                'address': self.intake_address,
                'documents': self.intake_documents or [],
            },
            'payment_order_id': self.payment_order_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Appointment {self.id} {self.patient_id} on {self.date} {self.time_slot} ({self.status})>"


@event.listens_for(Appointment.status, 'set')
def release_discount_claim(target, value, oldvalue, initiator):
    """A cancelled appointment gives the first-booking discount back."""
    if value == STATUS_CANCELLED:
        target.first_booking_claim = None
