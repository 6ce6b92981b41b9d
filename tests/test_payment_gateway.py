"""Tests for the payment provider client."""
import pytest
import requests

from telehealth.errors import PaymentProviderError
from telehealth.services import payment_gateway
from telehealth.services.payment_gateway import PaymentGateway, map_provider_status
from telehealth.utils.retry import FAILURE, PENDING, SUCCESS


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def gateway():
    return PaymentGateway('app-id', 'secret', environment='sandbox', timeout=3)


class TestStatusMapping:
    """Provider statuses collapse into three outcomes."""

    @pytest.mark.parametrize('raw', ['PAID', 'success', 'SUCCESSFUL', 'COMPLETED', 'CAPTURED'])
    def test_success(self, raw):
        assert map_provider_status(raw).state == SUCCESS

    @pytest.mark.parametrize('raw', ['FAILED', 'CANCELLED', 'USER_DROPPED', 'EXPIRED', 'TERMINATED'])
    def test_failure(self, raw):
        assert map_provider_status(raw).state == FAILURE

    @pytest.mark.parametrize('raw', ['ACTIVE', 'PENDING', '', None])
    def test_everything_else_pending(self, raw):
        assert map_provider_status(raw).state == PENDING


class TestGetOrderStatus:
    """Status reads never raise."""

    def test_reads_order_status(self, gateway, monkeypatch):
        calls = []

        def fake_get(url, headers, timeout):
            calls.append((url, headers, timeout))
            return FakeResponse({'order_status': 'PAID'})

        monkeypatch.setattr(payment_gateway.requests, 'get', fake_get)

        outcome = gateway.get_order_status('order_T_1')

        assert outcome.state == SUCCESS
        url, headers, timeout = calls[0]
        assert url == 'https://sandbox.cashfree.com/pg/orders/order_T_1'
        assert headers['x-client-id'] == 'app-id'
        assert timeout == 3

    def test_timeout_is_pending(self, gateway, monkeypatch):
        def fake_get(*args, **kwargs):
            raise requests.Timeout("slow")

        monkeypatch.setattr(payment_gateway.requests, 'get', fake_get)

        assert gateway.get_order_status('order_T_1').state == PENDING

    def test_http_error_is_pending(self, gateway, monkeypatch):
        monkeypatch.setattr(payment_gateway.requests, 'get', lambda *a, **k: FakeResponse({}, 503))

        assert gateway.get_order_status('order_T_1').state == PENDING

    def test_unconfigured_is_pending(self):
        assert PaymentGateway(None, None).get_order_status('order_T_1').state == PENDING


class TestCreateOrder:
    """Order creation surfaces provider problems."""

    def test_creates_order(self, gateway, monkeypatch):
        sent = {}

        def fake_post(url, json, headers, timeout):
            sent.update(json)
            return FakeResponse({'payment_session_id': 'session_1', 'order_status': 'ACTIVE'})

        monkeypatch.setattr(payment_gateway.requests, 'post', fake_post)

        data = gateway.create_order('order_T_1', '800.00', 'INR', {'customer_id': 'patient-1'})

        assert data['payment_session_id'] == 'session_1'
        assert sent['order_amount'] == 800.0
        assert sent['order_currency'] == 'INR'

    def test_transport_error_raises(self, gateway, monkeypatch):
        def fake_post(*args, **kwargs):
            raise requests.ConnectionError("down")

        monkeypatch.setattr(payment_gateway.requests, 'post', fake_post)

        with pytest.raises(PaymentProviderError):
            gateway.create_order('order_T_1', '800.00', 'INR', {})

    def test_missing_session_raises(self, gateway, monkeypatch):
        monkeypatch.setattr(payment_gateway.requests, 'post', lambda *a, **k: FakeResponse({'order_status': 'ACTIVE'}))

        with pytest.raises(PaymentProviderError):
            gateway.create_order('order_T_1', '800.00', 'INR', {})

    def test_unconfigured_raises(self):
        with pytest.raises(PaymentProviderError):
            PaymentGateway(None, None).create_order('order_T_1', '800.00', 'INR', {})

    def test_production_url(self):
        assert PaymentGateway('a', 'b', environment='production').base_url == 'https://api.cashfree.com/pg'
