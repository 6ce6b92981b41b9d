"""
Booking coordination

Turns a booking request into a confirmed appointment:

1. re-validate the slot against a fresh slot computation
2. reserve (date, time_slot) atomically, taking the first-booking discount
   claim in the same insert when the patient has no live appointment
3. fill in price, doctor and meeting link and confirm
4. schedule the reminder and queue the confirmation (best effort)
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from telehealth.errors import SlotConflictError, ValidationError
from telehealth.extensions import db
from telehealth.models.appointment import CONSULTATION_TYPES, STATUS_CONFIRMED
from telehealth.services import pricing_service, reservation_store
from telehealth.services.reminder_service import ReminderScheduler
from telehealth.services.reservation_store import Conflict
from telehealth.services.slot_service import (
    REASON_BOOKED, REASON_PAST, SlotSettings, compute_slots, find_slot, normalize_slot_label, parse_date,
)
from telehealth.utils.audit import log_audit
from telehealth.utils.identity import Identity
from telehealth.utils.meeting import generate_meet_link

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    identity: Identity
    date: object
    time_slot: str
    consultation_type: str = 'initial'
    currency: Optional[str] = None
    user_timezone: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    documents: List[str] = field(default_factory=list)
    payment_order_id: Optional[int] = None

    @classmethod
    def from_payload(cls, identity, data):
        """Build a request from a JSON body, rejecting malformed fields."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        missing = [name for name in ('date', 'time_slot') if not data.get(name)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)
        for name in ('date', 'time_slot', 'consultation_type', 'currency', 'timezone'):
            if data.get(name) is not None and not isinstance(data[name], str):
                raise ValidationError(f"{name} must be a string", field=name)
        intake = data.get('intake') or {}
        if not isinstance(intake, dict):
            raise ValidationError("intake must be an object")
        for name in ('description', 'address'):
            if intake.get(name) is not None and not isinstance(intake[name], str):
                raise ValidationError(f"intake.{name} must be a string", field=name)
        documents = intake.get('documents') or []
        if not isinstance(documents, list):
            raise ValidationError("intake.documents must be a list")
        return cls(
            identity=identity,
            date=data['date'],
            time_slot=data['time_slot'],
            consultation_type=data.get('consultation_type') or 'initial',
            currency=data.get('currency'),
            user_timezone=data.get('timezone'),
            description=intake.get('description'),
            address=intake.get('address'),
            documents=[str(doc) for doc in documents],
        )


class BookingCoordinator:
    def __init__(self, dispatcher=None, reminders=None, clock=None, settings=None):
        self.config = current_app.config
        self.dispatcher = dispatcher or current_app.extensions['notification_dispatcher']
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.reminders = reminders or ReminderScheduler(dispatcher=self.dispatcher, clock=self.clock)
        self.settings = settings or SlotSettings.from_config(self.config)

    def check_request(self, request):
        """Validate a request against a fresh slot computation. Returns (date, label)."""
        if request.consultation_type not in CONSULTATION_TYPES:
            raise ValidationError(f"Unknown consultation type: {request.consultation_type}",
                                  consultation_type=request.consultation_type)
        day = parse_date(request.date)
        label = normalize_slot_label(request.time_slot)
        # Unsupported currency is rejected before the slot is touched
        pricing_service.quote(request.consultation_type, country=request.identity.country,
                              currency=request.currency)

        slots = compute_slots(
            day,
            request.user_timezone or self.settings.doctor_timezone,
            urgent=request.consultation_type == 'urgent',
            reserved_slots=reservation_store.reserved_slots_for(day),
            now=self.clock(),
            settings=self.settings,
        )
        slot = find_slot(slots, label)
        if slot is None:
            raise ValidationError(f"{label} is outside the consultation hours", time_slot=label)
        if slot.reason == REASON_PAST:
            raise ValidationError(f"{day.isoformat()} {label} is in the past", time_slot=label)
        if slot.reason == REASON_BOOKED:
            raise SlotConflictError(date=day.isoformat(), time_slot=label)
        return day, label

    def book(self, request: BookingRequest):
        """
        Book a slot for the requesting patient.

        Returns:
            Appointment: the confirmed appointment

        Raises:
            ValidationError: malformed request, past slot or slot outside the window
            SlotConflictError: slot held by another live appointment
        """
        day, label = self.check_request(request)
        identity = request.identity

        claim_discount = reservation_store.count_active_for_patient(identity.patient_id) == 0
        outcome = reservation_store.try_reserve(
            day, label, identity.patient_id, request.consultation_type,
            claim_discount=claim_discount,
            payment_order_id=request.payment_order_id,
        )
        if isinstance(outcome, Conflict):
            raise SlotConflictError(date=day.isoformat(), time_slot=label, reason=outcome.reason)

        appointment = outcome.appointment
        try:
            price = pricing_service.quote(
                request.consultation_type,
                country=identity.country,
                currency=request.currency,
                first_booking=outcome.discount_claimed,
                discount_rate=Decimal(str(self.config.get('FIRST_BOOKING_DISCOUNT', 0.20))),
            )
            appointment.price_amount = price.amount
            appointment.price_currency = price.currency
            appointment.price_symbol = price.symbol
            appointment.price_region = price.region
            appointment.price_tier = price.tier
            appointment.discount_applied = price.discount_applied

            appointment.patient_name = identity.name
            appointment.patient_email = identity.email
            appointment.patient_phone = identity.phone
            appointment.patient_country = identity.country

            appointment.doctor_name = self.config.get('DOCTOR_NAME')
            appointment.doctor_title = self.config.get('DOCTOR_TITLE')
            appointment.doctor_qualifications = self.config.get('DOCTOR_QUALIFICATIONS')
            appointment.doctor_email = self.config.get('DOCTOR_EMAIL')
            appointment.meet_link = generate_meet_link(self.config.get('MEETING_BASE_URL'), day.isoformat(), label)

            appointment.intake_description = request.description
            appointment.intake_address = request.address
            appointment.intake_documents = request.documents or []

            appointment.status = STATUS_CONFIRMED
            db.session.commit()
        except (SQLAlchemyError, ValidationError):
            db.session.rollback()
            reservation_store.release(day, label)
            raise

        logger.info(f"Appointment {appointment.id} confirmed for {day} {label} (patient {identity.patient_id})")
        log_audit('appointment', 'confirmed', actor_id=identity.patient_id, entity_id=appointment.id, details={
            'date': day.isoformat(),
            'time_slot': label,
            'consultation_type': request.consultation_type,
            'discount_applied': appointment.discount_applied,
            'payment_order_id': request.payment_order_id,
        })

        self._after_commit(appointment)
        return appointment

    def _after_commit(self, appointment):
        try:
            self.reminders.schedule(appointment)
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Reminder scheduling failed for appointment {appointment.id}: {e}")
        try:
            self.dispatcher.booking_confirmed(appointment)
        except Exception as e:
            logger.warning(f"Confirmation queueing failed for appointment {appointment.id}: {e}")
