"""Shared fixtures for the booking engine tests.

Every test gets a fresh in-memory schema, a fake payment provider and a
dispatcher that records notifications instead of queueing Celery tasks.
"""
from datetime import datetime, timezone

import pytest
from flask_jwt_extended import create_access_token

from telehealth import create_app
from telehealth.extensions import db
from telehealth.services.booking_service import BookingCoordinator, BookingRequest
from telehealth.services.payment_gateway import map_provider_status
from telehealth.utils.identity import Identity

# 2025-10-05 05:30 IST
NOW = datetime(2025, 10, 5, 0, 0, tzinfo=timezone.utc)


class FakeGateway:
    """Stands in for the payment provider.

    ``statuses`` is consumed one status per check; the last one repeats.
    """

    environment = 'sandbox'
    is_production = False

    def __init__(self, statuses=None, configured=True, fail_create=False):
        self.statuses = list(statuses or ['ACTIVE'])
        self.is_configured = configured
        self.fail_create = fail_create
        self.created = []
        self.status_calls = []

    def respond_with(self, *statuses):
        self.statuses = list(statuses)

    def create_order(self, order_reference, amount, currency, customer, note=None):
        from telehealth.errors import PaymentProviderError
        if self.fail_create:
            raise PaymentProviderError("Could not create payment order", order_id=order_reference)
        self.created.append({
            'order_reference': order_reference,
            'amount': amount,
            'currency': currency,
            'customer': customer,
        })
        return {'payment_session_id': f'session_{order_reference}', 'order_status': 'ACTIVE'}

    def get_order_status(self, order_reference):
        self.status_calls.append(order_reference)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return map_provider_status(status)


class RecordingDispatcher:
    """Records what the engine asked to send."""

    def __init__(self, fail=False):
        self.fail = fail
        self.confirmations = []
        self.scheduled = []
        self.reminders = []
        self.support_alerts = []

    def booking_confirmed(self, appointment):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.confirmations.append(appointment.id)

    def schedule_reminder(self, job):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.scheduled.append(job.id)
        return f'task-{job.id}'

    def send_reminder(self, appointment):
        self.reminders.append(appointment.id)

    def support_alert(self, order, reason):
        self.support_alerts.append((order.order_reference, reason))


@pytest.fixture
def app():
    app = create_app('testing')
    app.extensions['payment_gateway'] = FakeGateway()
    app.extensions['notification_dispatcher'] = RecordingDispatcher()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions['payment_gateway']


@pytest.fixture
def dispatcher(app):
    return app.extensions['notification_dispatcher']


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def coordinator(app, dispatcher, clock):
    return BookingCoordinator(dispatcher=dispatcher, clock=clock)


@pytest.fixture
def patient():
    return Identity(patient_id='patient-1', name='Asha Rao', email='asha@example.com',
                    phone='9876543210', country='IN')


@pytest.fixture
def make_request(patient):
    def _make(time_slot='06:00 PM', date='2025-10-05', consultation_type='initial', identity=None, **kwargs):
        return BookingRequest(identity=identity or patient, date=date, time_slot=time_slot,
                              consultation_type=consultation_type, **kwargs)
    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(patient_id='patient-1', role='patient', country='IN', name='Asha Rao',
                 email='asha@example.com', phone='9876543210'):
        token = create_access_token(identity=patient_id, additional_claims={
            'role': role,
            'country': country,
            'name': name,
            'email': email,
            'phone': phone,
        })
        return {'Authorization': f'Bearer {token}'}
    return _headers
