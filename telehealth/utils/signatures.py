"""
Webhook signature verification for payment-provider callbacks.

The provider signs ``timestamp + raw_body`` with HMAC-SHA256 and sends the
base64 digest in ``x-webhook-signature`` with the timestamp in
``x-webhook-timestamp``. Verification must run on the raw bytes, before any
JSON parsing.
"""
import base64
import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'x-webhook-signature'
TIMESTAMP_HEADER = 'x-webhook-timestamp'


def compute_signature(secret, timestamp, payload):
    message = str(timestamp).encode('utf-8') + payload
    digest = hmac.new(secret.encode('utf-8'), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode('utf-8')


def verify_timestamp(timestamp, max_age, now=None):
    """Reject stale deliveries. Accepts seconds or milliseconds since epoch."""
    try:
        ts = int(timestamp)
    except (TypeError, ValueError):
        logger.warning(f"Invalid webhook timestamp format: {timestamp}")
        return False
    if ts > 10 ** 12:
        ts //= 1000
    current = int(now if now is not None else time.time())
    age = abs(current - ts)
    if age > max_age:
        logger.warning(f"Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def verify_signature(payload, signature, timestamp, secret, max_age=300, now=None):
    """
    Verify a webhook delivery.

    Args:
        payload: raw request body (bytes)
        signature: value of the signature header
        timestamp: value of the timestamp header
        secret: shared webhook secret
        max_age: maximum accepted age of the delivery in seconds

    Returns:
        bool: True only for a fresh delivery with a matching signature
    """
    if not secret:
        logger.error("Webhook secret not configured; rejecting delivery")
        return False
    if not signature or not timestamp:
        return False
    if not verify_timestamp(timestamp, max_age, now=now):
        return False
    expected = compute_signature(secret, timestamp, payload)
    return hmac.compare_digest(expected, signature)
