"""
Payment order creation

The server prices the booking itself, fingerprints the booking-defining
fields and opens an order with the provider. The slot is not reserved here;
that happens only once the payment is verified.
"""
import hashlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from flask import current_app

from telehealth.errors import ValidationError
from telehealth.extensions import db
from telehealth.models import PaymentOrder
from telehealth.models.payment_order import ORDER_CREATED
from telehealth.services import pricing_service, reservation_store
from telehealth.services.booking_service import BookingCoordinator, BookingRequest
from telehealth.utils.audit import log_audit
from telehealth.utils.identity import Identity

logger = logging.getLogger(__name__)


@dataclass
class BookingIntent:
    identity: Identity
    date: object
    time_slot: str
    consultation_type: str = 'initial'
    currency: Optional[str] = None
    user_timezone: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    documents: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, identity, data):
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        # Accept the checkout form's "time" as an alias for time_slot
        if not data.get('time_slot') and data.get('time'):
            data = dict(data, time_slot=data['time'])
        request = BookingRequest.from_payload(identity, data)
        return cls(
            identity=identity,
            date=request.date,
            time_slot=request.time_slot,
            consultation_type=request.consultation_type,
            currency=request.currency,
            user_timezone=request.user_timezone,
            description=request.description,
            address=request.address,
            documents=request.documents,
        )

    def as_booking_request(self):
        return BookingRequest(
            identity=self.identity,
            date=self.date,
            time_slot=self.time_slot,
            consultation_type=self.consultation_type,
            currency=self.currency,
            user_timezone=self.user_timezone,
            description=self.description,
            address=self.address,
            documents=self.documents,
        )


def booking_fingerprint(day, time_slot, consultation_type, patient_id, amount, currency):
    """Stable key over the fields that define what a payment is for."""
    canonical = '|'.join([
        day.isoformat(),
        time_slot,
        consultation_type,
        str(patient_id),
        f"{Decimal(amount):.2f}",
        currency.upper(),
    ])
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def generate_order_reference(patient_id, production=False, now_ms=None):
    """order_<T|L>_<8-digit time>_<6-hex patient hash>"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    prefix = 'L' if production else 'T'
    patient_hash = hashlib.md5(str(patient_id).encode('utf-8')).hexdigest()[:6]
    return f"order_{prefix}_{str(now_ms)[-8:]}_{patient_hash}"


class PaymentOrderManager:
    def __init__(self, gateway=None, coordinator=None):
        self.config = current_app.config
        self.gateway = gateway or current_app.extensions['payment_gateway']
        self.coordinator = coordinator or BookingCoordinator()

    def new_order_reference(self, patient_id):
        now_ms = int(time.time() * 1000)
        reference = generate_order_reference(patient_id, self.gateway.is_production, now_ms)
        # Same patient twice in one millisecond
        while PaymentOrder.query.filter_by(order_reference=reference).first() is not None:
            now_ms += 1
            reference = generate_order_reference(patient_id, self.gateway.is_production, now_ms)
        return reference

    def find_reusable(self, fingerprint):
        window = timedelta(minutes=self.config.get('ORDER_REUSE_MINUTES', 30))
        return PaymentOrder.query.filter(
            PaymentOrder.fingerprint == fingerprint,
            PaymentOrder.status == ORDER_CREATED,
            PaymentOrder.created_at >= datetime.utcnow() - window,
        ).order_by(PaymentOrder.created_at.desc()).first()

    def create_order(self, intent: BookingIntent):
        """
        Price the booking and open a provider order for it.

        Returns:
            PaymentOrder: new order, or a recent open order with the same fingerprint

        Raises:
            ValidationError: malformed intent or slot not offered
            SlotConflictError: slot already booked
            PaymentProviderError: provider refused or unreachable
        """
        identity = intent.identity
        day, label = self.coordinator.check_request(intent.as_booking_request())

        first_booking = reservation_store.count_active_for_patient(identity.patient_id) == 0
        price = pricing_service.quote(
            intent.consultation_type,
            country=identity.country,
            currency=intent.currency,
            first_booking=first_booking,
            discount_rate=Decimal(str(self.config.get('FIRST_BOOKING_DISCOUNT', 0.20))),
        )
        fingerprint = booking_fingerprint(day, label, intent.consultation_type, identity.patient_id,
                                          price.amount, price.currency)

        existing = self.find_reusable(fingerprint)
        if existing is not None:
            logger.info(f"Reusing open order {existing.order_reference} for patient {identity.patient_id}")
            return existing

        order_reference = self.new_order_reference(identity.patient_id)
        provider_order = self.gateway.create_order(
            order_reference,
            price.amount,
            price.currency,
            customer={
                'customer_id': str(identity.patient_id),
                'customer_name': identity.name or '',
                'customer_email': identity.email or '',
                'customer_phone': identity.phone or '9999999999',
            },
            note=f"{intent.consultation_type} consultation on {day.isoformat()} at {label}",
        )

        order = PaymentOrder(
            order_reference=order_reference,
            payment_session_id=provider_order.get('payment_session_id'),
            fingerprint=fingerprint,
            date=day,
            time_slot=label,
            consultation_type=intent.consultation_type,
            patient_id=str(identity.patient_id),
            amount=price.amount,
            currency=price.currency,
            patient_name=identity.name,
            patient_email=identity.email,
            patient_phone=identity.phone,
            patient_country=identity.country,
            intake={
                'description': intent.description,
                'address': intent.address,
                'documents': intent.documents or [],
                'timezone': intent.user_timezone,
            },
            status=ORDER_CREATED,
            provider_status=provider_order.get('order_status'),
            environment=self.gateway.environment,
        )
        db.session.add(order)
        db.session.commit()

        logger.info(f"Created payment order {order_reference} for {day} {label} ({price.amount} {price.currency})")
        log_audit('payment_order', 'created', actor_id=identity.patient_id, entity_id=order.id, details={
            'order_reference': order_reference,
            'amount': str(price.amount),
            'currency': price.currency,
            'discount_applied': price.discount_applied,
        })
        return order
