"""Tests for webhook signature verification."""
from telehealth.utils.signatures import compute_signature, verify_signature, verify_timestamp

SECRET = 'test-webhook-secret'
BODY = b'{"data": {"order": {"order_id": "order_T_12345678_abcdef"}}}'
NOW = 1_759_622_400


class TestVerifySignature:
    """HMAC-SHA256 over timestamp + raw body."""

    def test_valid_signature(self):
        signature = compute_signature(SECRET, NOW, BODY)

        assert verify_signature(BODY, signature, str(NOW), SECRET, now=NOW)

    def test_tampered_body_rejected(self):
        signature = compute_signature(SECRET, NOW, BODY)

        assert not verify_signature(BODY.replace(b'abcdef', b'abcdeg'), signature, str(NOW), SECRET, now=NOW)

    def test_wrong_secret_rejected(self):
        signature = compute_signature('other-secret', NOW, BODY)

        assert not verify_signature(BODY, signature, str(NOW), SECRET, now=NOW)

    def test_missing_headers_rejected(self):
        assert not verify_signature(BODY, None, str(NOW), SECRET, now=NOW)
        assert not verify_signature(BODY, 'abc', None, SECRET, now=NOW)

    def test_unconfigured_secret_rejects_everything(self):
        signature = compute_signature(SECRET, NOW, BODY)

        assert not verify_signature(BODY, signature, str(NOW), None, now=NOW)

    def test_stale_delivery_rejected(self):
        old = NOW - 600
        signature = compute_signature(SECRET, old, BODY)

        assert not verify_signature(BODY, signature, str(old), SECRET, max_age=300, now=NOW)


class TestVerifyTimestamp:
    """Replay window."""

    def test_milliseconds_accepted(self):
        assert verify_timestamp(str(NOW * 1000), 300, now=NOW)

    def test_garbage_rejected(self):
        assert not verify_timestamp('yesterday', 300, now=NOW)
