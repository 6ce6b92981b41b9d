from .slot_service import compute_slots, OfferedSlot, SlotSettings
from .pricing_service import quote, PriceQuote
from .reservation_store import try_reserve, release, reserved_slots_for, Reserved, Conflict
from .reminder_service import ReminderScheduler, deliver_reminder, due_reminder_ids
from .booking_service import BookingCoordinator, BookingRequest
from .payment_gateway import PaymentGateway, map_provider_status
from .payment_service import PaymentOrderManager, BookingIntent
from .reconciliation_service import PaymentReconciler
from .notifications import NotificationDispatcher
from .email_service import send_email

__all__ = [
    # Slots
    "compute_slots",
    "OfferedSlot",
    "SlotSettings",
    # Pricing
    "quote",
    "PriceQuote",
    # Reservations
    "try_reserve",
    "release",
    "reserved_slots_for",
    "Reserved",
    "Conflict",
    # Reminders
    "ReminderScheduler",
    "deliver_reminder",
    "due_reminder_ids",
    # Booking
    "BookingCoordinator",
    "BookingRequest",
    # Payments
    "PaymentGateway",
    "map_provider_status",
    "PaymentOrderManager",
    "BookingIntent",
    "PaymentReconciler",
    # Notifications
    "NotificationDispatcher",
    "send_email",
]
