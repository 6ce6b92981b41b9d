"""
Payment reconciliation

Converts a provider payment confirmation into exactly one appointment. Every
entry point (client verify, webhook, periodic sweep) goes through
``verify_and_materialize``, which is safe to call any number of times for
the same order: the order's appointment is looked up first, and the unique
``appointments.payment_order_id`` backs that lookup under concurrency.
"""
import logging
import time
from datetime import datetime, timedelta

from flask import current_app

from telehealth.errors import (
    BookingError, NotFoundError, PaidButUnbookedError, PaymentFailedError, PaymentPendingError,
    SlotConflictError, ValidationError,
)
from telehealth.extensions import db
from telehealth.models import Appointment, PaymentOrder
from telehealth.models.payment_order import (
    ORDER_CREATED, ORDER_DROPPED, ORDER_FAILED, ORDER_NEEDS_REASSIGNMENT, ORDER_SUCCESS,
)
from telehealth.services.booking_service import BookingCoordinator, BookingRequest
from telehealth.services.payment_gateway import DROPPED_STATUS
from telehealth.utils.audit import log_audit
from telehealth.utils.identity import Identity
from telehealth.utils.retry import FAILURE, PENDING, poll_until_terminal

logger = logging.getLogger(__name__)

PAID_BUT_UNBOOKED = 'PAID_BUT_UNBOOKED'


class PaymentReconciler:
    def __init__(self, gateway=None, dispatcher=None, coordinator=None, attempts=None, delay=None,
                 sleep=time.sleep):
        config = current_app.config
        self.config = config
        self.gateway = gateway or current_app.extensions['payment_gateway']
        self.dispatcher = dispatcher or current_app.extensions['notification_dispatcher']
        self.coordinator = coordinator or BookingCoordinator(dispatcher=self.dispatcher)
        self.attempts = attempts if attempts is not None else config.get('PAYMENT_VERIFY_ATTEMPTS', 8)
        self.delay = delay if delay is not None else config.get('PAYMENT_VERIFY_DELAY_SECONDS', 2)
        self.sleep = sleep

    def verify_and_materialize(self, order_reference, attempts=None):
        """
        Verify an order with the provider and book its appointment once.

        Args:
            order_reference: provider order reference
            attempts: override the number of status checks (the sweep uses 1)

        Returns:
            Appointment

        Raises:
            NotFoundError: unknown order
            PaymentPendingError: provider has no terminal status yet
            PaymentFailedError: provider reports failure
            PaidButUnbookedError: paid, but the slot could not be booked
        """
        order = PaymentOrder.query.filter_by(order_reference=order_reference).first()
        if order is None:
            raise NotFoundError("Payment order not found", order_id=order_reference)

        appointment = self._appointment_for(order)
        if appointment is not None:
            logger.info(f"Order {order_reference} already materialized as appointment {appointment.id}")
            return appointment

        if order.status == ORDER_NEEDS_REASSIGNMENT:
            raise self._paid_but_unbooked_error(order)
        if order.status in (ORDER_FAILED, ORDER_DROPPED):
            raise PaymentFailedError(order_id=order_reference, status=order.status)

        if order.status != ORDER_SUCCESS:
            outcome, used = poll_until_terminal(
                lambda: self._check_status(order),
                attempts if attempts is not None else self.attempts,
                self.delay,
                sleep=self.sleep,
            )
            if outcome.state == PENDING:
                logger.info(f"Order {order_reference} still pending after {used} check(s)")
                raise PaymentPendingError(order_id=order_reference, status=outcome.raw_status)
            if outcome.state == FAILURE:
                self._mark_failed(order, outcome.raw_status)
                raise PaymentFailedError(order_id=order_reference, status=order.status)
            self._mark_paid(order, outcome.raw_status)

        return self._materialize(order)

    def _appointment_for(self, order):
        return Appointment.query.filter_by(payment_order_id=order.id).first()

    def _check_status(self, order):
        outcome = self.gateway.get_order_status(order.order_reference)
        order.verification_attempts = (order.verification_attempts or 0) + 1
        order.provider_status = outcome.raw_status
        order.last_checked_at = datetime.utcnow()
        db.session.commit()
        return outcome

    def _mark_failed(self, order, raw_status):
        order.status = ORDER_DROPPED if raw_status == DROPPED_STATUS else ORDER_FAILED
        order.closed_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Order {order.order_reference} {order.status} (provider status {raw_status})")
        log_audit('payment_order', order.status, entity_id=order.id, details={'provider_status': raw_status})

    def _mark_paid(self, order, raw_status):
        order.status = ORDER_SUCCESS
        order.paid_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Order {order.order_reference} paid (provider status {raw_status})")
        log_audit('payment_order', 'paid', entity_id=order.id, details={'provider_status': raw_status})

    def _booking_request(self, order):
        intake = order.intake or {}
        identity = Identity(
            patient_id=order.patient_id,
            name=order.patient_name,
            email=order.patient_email,
            phone=order.patient_phone,
            country=order.patient_country,
        )
        return BookingRequest(
            identity=identity,
            date=order.date,
            time_slot=order.time_slot,
            consultation_type=order.consultation_type,
            currency=order.currency,
            user_timezone=intake.get('timezone'),
            description=intake.get('description'),
            address=intake.get('address'),
            documents=intake.get('documents') or [],
            payment_order_id=order.id,
        )

    def _materialize(self, order):
        try:
            appointment = self.coordinator.book(self._booking_request(order))
        except (SlotConflictError, ValidationError) as e:
            # A concurrent verification of this same order may have won the slot
            appointment = self._appointment_for(order)
            if appointment is not None:
                return appointment
            self._escalate(order, e)

        order.closed_at = datetime.utcnow()
        db.session.commit()

        if appointment.price_amount != order.amount or appointment.price_currency != order.currency:
            logger.warning(
                f"Order {order.order_reference} charged {order.amount} {order.currency} "
                f"but appointment {appointment.id} priced at {appointment.price_amount} {appointment.price_currency}"
            )
            log_audit('appointment', 'price_mismatch', entity_id=appointment.id, details={
                'order_reference': order.order_reference,
                'charged': str(order.amount),
                'priced': str(appointment.price_amount),
            })
        return appointment

    def _escalate(self, order, cause):
        order.status = ORDER_NEEDS_REASSIGNMENT
        db.session.commit()
        logger.critical(
            f"{PAID_BUT_UNBOOKED} order={order.order_reference} patient={order.patient_id} "
            f"slot={order.date.isoformat()} {order.time_slot} reason={cause}"
        )
        log_audit('payment_order', ORDER_NEEDS_REASSIGNMENT, entity_id=order.id, details={
            'order_reference': order.order_reference,
            'reason': str(cause),
        })
        try:
            self.dispatcher.support_alert(order, str(cause))
        except Exception as e:
            logger.error(f"Support alert for order {order.order_reference} could not be queued: {e}")
        raise self._paid_but_unbooked_error(order)

    def _paid_but_unbooked_error(self, order):
        return PaidButUnbookedError(
            "Your payment was received but the selected slot is no longer available. "
            "Our support team will contact you to choose a new slot or arrange a refund.",
            order_id=order.order_reference,
            support_email=self.config.get('SUPPORT_EMAIL'),
        )

    def sweep(self):
        """
        Background reconciliation pass.

        Returns:
            dict: counts per outcome
        """
        now = datetime.utcnow()
        min_age = now - timedelta(minutes=self.config.get('ORDER_SWEEP_MIN_AGE_MINUTES', 5))
        abandon_before = now - timedelta(hours=self.config.get('ORDER_ABANDON_AFTER_HOURS', 24))
        stats = {'checked': 0, 'booked': 0, 'pending': 0, 'failed': 0, 'escalated': 0, 'abandoned': 0}

        created = PaymentOrder.query.filter(
            PaymentOrder.status == ORDER_CREATED,
            PaymentOrder.created_at <= min_age,
        ).order_by(PaymentOrder.created_at).all()
        paid_unbooked = PaymentOrder.query.outerjoin(
            Appointment, Appointment.payment_order_id == PaymentOrder.id,
        ).filter(
            PaymentOrder.status == ORDER_SUCCESS,
            Appointment.id.is_(None),
        ).all()

        for order in created + paid_unbooked:
            stats['checked'] += 1
            reference = order.order_reference
            try:
                self.verify_and_materialize(reference, attempts=1)
                stats['booked'] += 1
            except PaymentPendingError:
                if order.created_at <= abandon_before:
                    order.status = ORDER_DROPPED
                    order.closed_at = now
                    db.session.commit()
                    log_audit('payment_order', 'abandoned', entity_id=order.id)
                    stats['abandoned'] += 1
                else:
                    stats['pending'] += 1
            except PaymentFailedError:
                stats['failed'] += 1
            except PaidButUnbookedError:
                stats['escalated'] += 1
            except BookingError as e:
                logger.error(f"Sweep could not reconcile order {reference}: {e.message}")

        if stats['checked']:
            logger.info(f"Payment sweep: {stats}")
        return stats


def order_reference_from_webhook(payload):
    """Extract the order reference from a provider webhook body."""
    if not isinstance(payload, dict):
        return None
    data = payload.get('data') or {}
    order = data.get('order') or {}
    return order.get('order_id') or payload.get('order_id')
