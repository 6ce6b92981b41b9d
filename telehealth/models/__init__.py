from .appointment import Appointment
from .payment_order import PaymentOrder
from .reminder_job import ReminderJob
from .audit_log import AuditLog

__all__ = ["Appointment", "PaymentOrder", "ReminderJob", "AuditLog"]
