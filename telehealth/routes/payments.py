import json
import logging

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from telehealth.errors import (
    BookingError, NotFoundError, PaidButUnbookedError, PaymentFailedError, PaymentPendingError,
)
from telehealth.models import PaymentOrder
from telehealth.services.payment_service import BookingIntent, PaymentOrderManager
from telehealth.services.reconciliation_service import PaymentReconciler, order_reference_from_webhook
from telehealth.utils.identity import current_identity
from telehealth.utils.signatures import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature

logger = logging.getLogger(__name__)

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


@payments_bp.route('/config', methods=['GET'])
def payment_config():
    """Settings the checkout client needs"""
    gateway = current_app.extensions['payment_gateway']
    return jsonify({
        'success': True,
        'data': {
            'environment': gateway.environment,
            'configured': gateway.is_configured,
            'require_payment': bool(current_app.config.get('REQUIRE_PAYMENT_FOR_BOOKING')),
            'verify_attempts': current_app.config.get('PAYMENT_VERIFY_ATTEMPTS'),
            'verify_delay_seconds': current_app.config.get('PAYMENT_VERIFY_DELAY_SECONDS'),
        }
    }), 200


@payments_bp.route('/orders', methods=['POST'])
@jwt_required()
def create_order():
    """
    Open a payment order for a booking.
    Body: date, time (or time_slot), consultation_type, currency, timezone, intake
    The amount is always computed server-side.
    """
    identity = current_identity()
    intent = BookingIntent.from_payload(identity, request.get_json(silent=True))
    order = PaymentOrderManager().create_order(intent)

    return jsonify({
        'success': True,
        'data': order.to_handle()
    }), 201


@payments_bp.route('/orders/<order_reference>/verify', methods=['POST'])
@jwt_required()
def verify_order(order_reference):
    """
    Verify payment and materialize the appointment.
    Returns 200 with the appointment, 202 while the provider is still confirming.
    """
    identity = current_identity()
    order = PaymentOrder.query.filter_by(order_reference=order_reference).first()
    if order is None or not identity.can_view(order.patient_id):
        raise NotFoundError("Payment order not found", order_id=order_reference)

    try:
        appointment = PaymentReconciler().verify_and_materialize(order_reference)
    except PaymentPendingError as e:
        return jsonify({
            'success': True,
            'data': {'status': 'pending', 'order_id': order_reference},
            'message': 'Payment is being confirmed. Please check again shortly.',
            'code': e.code,
        }), e.status_code

    return jsonify({
        'success': True,
        'data': {
            'status': 'success',
            'order_id': order_reference,
            'appointment': appointment.to_dict(),
        }
    }), 200


@payments_bp.route('/webhook', methods=['POST'])
def payment_webhook():
    """
    Provider callback. The signature is checked on the raw body before
    anything else; the reported status is never trusted, the order is
    re-verified with the provider instead.
    """
    payload = request.get_data()
    signature = request.headers.get(SIGNATURE_HEADER)
    timestamp = request.headers.get(TIMESTAMP_HEADER)

    if not verify_signature(
        payload,
        signature,
        timestamp,
        current_app.config.get('PAYMENT_WEBHOOK_SECRET'),
        max_age=current_app.config.get('PAYMENT_WEBHOOK_MAX_AGE_SECONDS', 300),
    ):
        logger.warning(f"Rejected webhook with invalid signature from {request.remote_addr}")
        return jsonify({'success': False, 'error': 'Invalid signature'}), 401

    try:
        body = json.loads(payload or b'{}')
    except ValueError:
        body = None

    order_reference = order_reference_from_webhook(body)
    if not order_reference:
        # Signed but unusable; acknowledge so the provider stops redelivering
        logger.warning("Ignoring signed webhook without a readable order id")
        return jsonify({
            'success': True,
            'data': {'status': 'ignored', 'order_id': None}
        }), 200

    # Deliveries are at-least-once; reconciliation is replay safe
    try:
        appointment = PaymentReconciler().verify_and_materialize(order_reference, attempts=1)
        result = {'status': 'success', 'appointment_id': appointment.id}
    except PaymentPendingError:
        result = {'status': 'pending'}
    except PaymentFailedError:
        result = {'status': 'failed'}
    except PaidButUnbookedError:
        result = {'status': 'needs_manual_reassignment'}
    except NotFoundError:
        logger.warning(f"Webhook for unknown order {order_reference}")
        result = {'status': 'ignored'}
    except BookingError as e:
        logger.error(f"Webhook reconciliation failed for {order_reference}: {e.message}")
        result = {'status': 'error'}

    return jsonify({
        'success': True,
        'data': dict(result, order_id=order_reference)
    }), 200
