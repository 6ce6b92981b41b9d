from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from telehealth.errors import NotFoundError
from telehealth.extensions import db
from telehealth.models import Appointment
from telehealth.services.booking_service import BookingCoordinator, BookingRequest
from telehealth.utils.identity import current_identity

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


@appointment_bp.route('', methods=['POST'])
@jwt_required()
def create_appointment():
    """
    Book a slot directly.
    Body: date, time_slot, consultation_type, currency, timezone, intake {description, address, documents}
    When payment is required, clients must go through /api/payments/orders instead.
    """
    if current_app.config.get('REQUIRE_PAYMENT_FOR_BOOKING'):
        return jsonify({
            'success': False,
            'error': 'Payment is required to book an appointment',
            'code': 'payment_required',
            'details': {'payment_url': '/api/payments/orders'}
        }), 402

    identity = current_identity()
    booking_request = BookingRequest.from_payload(identity, request.get_json(silent=True))
    appointment = BookingCoordinator().book(booking_request)

    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment booked successfully'
    }), 201


@appointment_bp.route('/mine', methods=['GET'])
@jwt_required()
def my_appointments():
    """Patients see their own appointments; doctors and admins see the latest 100."""
    identity = current_identity()
    query = Appointment.query
    if not identity.is_staff:
        query = query.filter(Appointment.patient_id == identity.patient_id)
    appointments = query.order_by(Appointment.date.desc(), Appointment.created_at.desc()).limit(100).all()

    return jsonify({
        'success': True,
        'data': [appointment.to_dict() for appointment in appointments],
        'count': len(appointments)
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    identity = current_identity()
    appointment = db.session.get(Appointment, appointment_id)
    # Someone else's appointment is reported as missing
    if appointment is None or not identity.can_view(appointment.patient_id):
        raise NotFoundError("Appointment not found")

    return jsonify({
        'success': True,
        'data': appointment.to_dict()
    }), 200
