"""
Reservation store

The set of live (date, time_slot) pairs is guarded by the partial unique index
``uq_appointments_active_slot``. ``try_reserve`` inserts a pending placeholder
and lets the database decide; callers never check-then-insert themselves.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from telehealth.extensions import db
from telehealth.models import Appointment
from telehealth.models.appointment import STATUS_CANCELLED, STATUS_PENDING

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reserved:
    appointment: Appointment
    discount_claimed: bool = False


@dataclass(frozen=True)
class Conflict:
    date: object
    time_slot: str
    reason: str = 'slot_taken'


def active_appointment_for(day, time_slot):
    return Appointment.query.filter(
        Appointment.date == day,
        Appointment.time_slot == time_slot,
        Appointment.status != STATUS_CANCELLED,
    ).first()


def reserved_slots_for(day):
    """Doctor-local labels held by non-cancelled appointments on ``day``."""
    rows = db.session.query(Appointment.time_slot).filter(
        Appointment.date == day,
        Appointment.status != STATUS_CANCELLED,
    ).all()
    return {row[0] for row in rows}


def count_active_for_patient(patient_id):
    return Appointment.query.filter(
        Appointment.patient_id == str(patient_id),
        Appointment.status != STATUS_CANCELLED,
    ).count()


def _insert_placeholder(day, time_slot, patient_id, consultation_type, claim_discount, payment_order_id):
    placeholder = Appointment(
        date=day,
        time_slot=time_slot,
        consultation_type=consultation_type,
        status=STATUS_PENDING,
        patient_id=str(patient_id),
        payment_order_id=payment_order_id,
        first_booking_claim=str(patient_id) if claim_discount else None,
        discount_applied=bool(claim_discount),
    )
    db.session.add(placeholder)
    db.session.commit()
    return placeholder


def try_reserve(
    day,
    time_slot: str,
    patient_id: str,
    consultation_type: str,
    claim_discount: bool = False,
    payment_order_id: Optional[int] = None,
):
    """
    Atomically occupy (day, time_slot).

    When ``claim_discount`` is set the placeholder also takes the patient's
    first-booking claim. Losing only that claim (a concurrent first booking
    by the same patient) still reserves the slot, without the discount.

    Returns:
        Reserved or Conflict
    """
    try:
        placeholder = _insert_placeholder(day, time_slot, patient_id, consultation_type,
                                          claim_discount, payment_order_id)
        logger.info(f"Reserved {day} {time_slot} for patient {patient_id}")
        return Reserved(placeholder, discount_claimed=claim_discount)
    except IntegrityError:
        db.session.rollback()

    if active_appointment_for(day, time_slot) is not None:
        logger.info(f"Slot {day} {time_slot} already taken")
        return Conflict(day, time_slot)

    if payment_order_id is not None and Appointment.query.filter_by(payment_order_id=payment_order_id).first():
        logger.info(f"Order {payment_order_id} already materialized")
        return Conflict(day, time_slot, reason='order_already_booked')

    if not claim_discount:
        raise RuntimeError(f"Reservation of {day} {time_slot} failed for an unknown constraint")

    logger.info(f"First-booking discount already claimed by patient {patient_id}")
    try:
        placeholder = _insert_placeholder(day, time_slot, patient_id, consultation_type,
                                          False, payment_order_id)
        return Reserved(placeholder, discount_claimed=False)
    except IntegrityError:
        db.session.rollback()
        return Conflict(day, time_slot)


def release(day, time_slot):
    """
    Free a pending placeholder on (day, time_slot).

    Confirmed appointments are never released here; cancelling those is a
    patient or admin action.

    Returns:
        bool: True if a placeholder was released
    """
    placeholder = Appointment.query.filter_by(
        date=day, time_slot=time_slot, status=STATUS_PENDING,
    ).first()
    if placeholder is None:
        return False
    placeholder.status = STATUS_CANCELLED
    placeholder.first_booking_claim = None
    placeholder.payment_order_id = None
    db.session.commit()
    logger.info(f"Released placeholder {placeholder.id} on {day} {time_slot}")
    return True
