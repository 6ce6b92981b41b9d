"""
HTTP client for the external payment provider.

Only two calls are used: create an order and fetch its status. Status reads
never raise; anything the provider cannot answer cleanly is reported as
pending so the order can be reconciled later.
"""
import logging
from typing import Any, Dict, Optional

import requests

from telehealth.errors import PaymentProviderError
from telehealth.utils.retry import Outcome

logger = logging.getLogger(__name__)

PRODUCTION_BASE_URL = 'https://api.cashfree.com/pg'
SANDBOX_BASE_URL = 'https://sandbox.cashfree.com/pg'

SUCCESS_STATUSES = frozenset(['PAID', 'SUCCESS', 'SUCCESSFUL', 'COMPLETED', 'CAPTURED'])
FAILURE_STATUSES = frozenset(['FAILED', 'CANCELLED', 'USER_DROPPED', 'EXPIRED', 'TERMINATED'])
DROPPED_STATUS = 'USER_DROPPED'


def map_provider_status(raw_status):
    """Classify a raw provider status into a polling Outcome."""
    status = (raw_status or '').strip().upper()
    if status in SUCCESS_STATUSES:
        return Outcome.success(raw_status=status)
    if status in FAILURE_STATUSES:
        return Outcome.failure(raw_status=status)
    return Outcome.pending(raw_status=status or None)


class PaymentGateway:
    def __init__(
        self,
        app_id: Optional[str],
        secret_key: Optional[str],
        environment: str = 'sandbox',
        api_version: str = '2023-08-01',
        timeout: float = 10,
        return_url: Optional[str] = None,
        notify_url: Optional[str] = None,
    ):
        self.app_id = app_id
        self.secret_key = secret_key
        self.environment = environment
        self.api_version = api_version
        self.timeout = timeout
        self.return_url = return_url
        self.notify_url = notify_url

    @classmethod
    def from_config(cls, config):
        return cls(
            app_id=config.get('PAYMENT_APP_ID'),
            secret_key=config.get('PAYMENT_SECRET_KEY'),
            environment=config.get('PAYMENT_ENVIRONMENT', 'sandbox'),
            api_version=config.get('PAYMENT_API_VERSION', '2023-08-01'),
            timeout=config.get('PAYMENT_HTTP_TIMEOUT', 10),
            return_url=config.get('PAYMENT_RETURN_URL'),
            notify_url=config.get('PAYMENT_NOTIFY_URL'),
        )

    @property
    def is_configured(self):
        return bool(self.app_id and self.secret_key)

    @property
    def is_production(self):
        return self.environment == 'production'

    @property
    def base_url(self):
        return PRODUCTION_BASE_URL if self.is_production else SANDBOX_BASE_URL

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'x-client-id': self.app_id or '',
            'x-client-secret': self.secret_key or '',
            'x-api-version': self.api_version,
        }

    def create_order(self, order_reference, amount, currency, customer: Dict[str, Any], note=None) -> Dict[str, Any]:
        """
        Open an order with the provider.

        Returns:
            dict: provider response (payment_session_id, order_status, ...)

        Raises:
            PaymentProviderError: provider unreachable, misconfigured or refusing the order
        """
        if not self.is_configured:
            raise PaymentProviderError("Payment provider credentials are not configured")

        payload = {
            'order_id': order_reference,
            'order_amount': float(amount),
            'order_currency': currency,
            'customer_details': customer,
            'order_meta': {},
        }
        if self.return_url:
            payload['order_meta']['return_url'] = self.return_url
        if self.notify_url:
            payload['order_meta']['notify_url'] = self.notify_url
        if note:
            payload['order_note'] = note

        try:
            response = requests.post(f"{self.base_url}/orders", json=payload,
                                     headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Provider order creation failed for {order_reference}: {e}")
            raise PaymentProviderError("Could not create payment order", order_id=order_reference)
        except ValueError:
            logger.error(f"Provider returned a non-JSON body for {order_reference}")
            raise PaymentProviderError("Could not create payment order", order_id=order_reference)

        if not data.get('payment_session_id'):
            logger.error(f"Provider response for {order_reference} has no payment_session_id")
            raise PaymentProviderError("Payment session missing from provider response", order_id=order_reference)
        return data

    def get_order_status(self, order_reference) -> Outcome:
        """Fetch and classify the provider's status for an order."""
        if not self.is_configured:
            logger.warning("Payment provider not configured; treating order as pending")
            return Outcome.pending()
        try:
            response = requests.get(f"{self.base_url}/orders/{order_reference}",
                                    headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.info(f"Provider status call timed out for {order_reference}")
            return Outcome.pending()
        except requests.RequestException as e:
            logger.warning(f"Provider status call failed for {order_reference}: {e}")
            return Outcome.pending()
        except ValueError:
            logger.warning(f"Provider returned a non-JSON status body for {order_reference}")
            return Outcome.pending()

        return map_provider_status(data.get('order_status'))
