from telehealth.extensions import db
from .base import TimestampMixin


class ReminderJob(db.Model, TimestampMixin):
    """One-shot consultation reminder, at most one per appointment."""
    __tablename__ = 'reminder_jobs'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, unique=True)
    fire_at = db.Column(db.DateTime, nullable=False, index=True)  # naive UTC
    delivered = db.Column(db.Boolean, default=False, nullable=False, index=True)
    delivered_at = db.Column(db.DateTime)
    task_id = db.Column(db.String(64))

    appointment = db.relationship('Appointment', backref=db.backref('reminder_job', uselist=False), lazy=True)

    def __repr__(self):
        return f"<ReminderJob appointment={self.appointment_id} at {self.fire_at} delivered={self.delivered}>"
