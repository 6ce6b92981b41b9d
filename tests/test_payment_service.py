"""Tests for payment order creation."""
import re
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from telehealth.errors import PaymentProviderError, SlotConflictError, ValidationError
from telehealth.extensions import db
from telehealth.models import PaymentOrder
from telehealth.services import reservation_store
from telehealth.services.payment_service import (
    BookingIntent, PaymentOrderManager, booking_fingerprint, generate_order_reference,
)

from conftest import FakeGateway


@pytest.fixture
def manager(app, gateway, coordinator):
    return PaymentOrderManager(gateway=gateway, coordinator=coordinator)


@pytest.fixture
def intent(patient):
    return BookingIntent(identity=patient, date='2025-10-05', time_slot='07:00 PM', consultation_type='initial',
                         description='Follow-up on creatinine levels')


class TestCreateOrder:
    """Order creation."""

    def test_persists_priced_order(self, manager, intent, gateway):
        order = manager.create_order(intent)

        assert order.id is not None
        assert order.status == 'created'
        assert order.amount == Decimal('800.00')
        assert order.currency == 'INR'
        assert order.payment_session_id == f'session_{order.order_reference}'
        assert order.intake['description'] == 'Follow-up on creatinine levels'
        assert gateway.created[0]['amount'] == Decimal('800.00')

    def test_does_not_reserve_slot(self, manager, intent):
        manager.create_order(intent)

        assert reservation_store.reserved_slots_for(date(2025, 10, 5)) == set()

    def test_client_amount_ignored(self, patient):
        intent = BookingIntent.from_payload(patient, {
            'date': '2025-10-05',
            'time': '07:00 PM',
            'consultation_type': 'urgent',
            'amount': 1,
        })

        assert intent.time_slot == '07:00 PM'
        assert not hasattr(intent, 'amount')

    def test_handle_fields(self, manager, intent):
        handle = manager.create_order(intent).to_handle()

        assert set(handle) == {'order_id', 'payment_session_id', 'amount', 'currency', 'status', 'environment'}
        assert handle['environment'] == 'sandbox'

    def test_reuses_recent_open_order(self, manager, intent, gateway):
        first = manager.create_order(intent)
        second = manager.create_order(intent)

        assert first.id == second.id
        assert len(gateway.created) == 1

    def test_stale_order_not_reused(self, manager, intent, gateway):
        first = manager.create_order(intent)
        first.created_at = datetime.utcnow() - timedelta(minutes=31)
        db.session.commit()

        second = manager.create_order(intent)

        assert second.id != first.id
        assert PaymentOrder.query.count() == 2

    def test_booked_slot_rejected(self, manager, intent, gateway):
        reservation_store.try_reserve(date(2025, 10, 5), '07:00 PM', 'patient-2', 'initial')

        with pytest.raises(SlotConflictError):
            manager.create_order(intent)
        assert gateway.created == []

    def test_invalid_slot_rejected(self, manager, patient):
        bad = BookingIntent(identity=patient, date='2025-10-05', time_slot='03:00 AM')

        with pytest.raises(ValidationError):
            manager.create_order(bad)

    def test_provider_failure_persists_nothing(self, app, coordinator, intent):
        manager = PaymentOrderManager(gateway=FakeGateway(fail_create=True), coordinator=coordinator)

        with pytest.raises(PaymentProviderError):
            manager.create_order(intent)
        assert PaymentOrder.query.count() == 0


class TestFingerprint:
    """The fingerprint covers every booking-defining field."""

    def test_deterministic(self):
        args = (date(2025, 10, 5), '07:00 PM', 'initial', 'patient-1', Decimal('800'), 'INR')

        assert booking_fingerprint(*args) == booking_fingerprint(*args)

    @pytest.mark.parametrize('index,value', [
        (0, date(2025, 10, 6)),
        (1, '07:30 PM'),
        (2, 'followup'),
        (3, 'patient-2'),
        (4, Decimal('800.01')),
        (5, 'USD'),
    ])
    def test_sensitive_to_each_field(self, index, value):
        args = [date(2025, 10, 5), '07:00 PM', 'initial', 'patient-1', Decimal('800'), 'INR']
        changed = list(args)
        changed[index] = value

        assert booking_fingerprint(*args) != booking_fingerprint(*changed)


class TestOrderReference:
    """order_<T|L>_<8-digit time>_<6-hex patient hash>"""

    def test_sandbox_format(self):
        reference = generate_order_reference('patient-1', now_ms=1759622400123)

        assert re.fullmatch(r'order_T_\d{8}_[0-9a-f]{6}', reference)
        assert reference.split('_')[2] == '22400123'

    def test_live_prefix(self):
        assert generate_order_reference('patient-1', production=True).startswith('order_L_')
