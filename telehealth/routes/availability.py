from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from telehealth.services import reservation_store
from telehealth.services.slot_service import SlotSettings, compute_slots, parse_date

availability_bp = Blueprint('availability', __name__, url_prefix='/api/availability')


@availability_bp.route('', methods=['GET'])
def get_availability():
    """
    Offerable consultation slots for a date.
    Query params:
        date: YYYY-MM-DD in the doctor's timezone (required)
        timezone: IANA name used for local labels (default: doctor's timezone)
        urgent: true/false, or consultation_type=urgent
    """
    settings = SlotSettings.from_config(current_app.config)
    day = parse_date(request.args.get('date', type=str) or '')
    user_timezone = request.args.get('timezone', type=str) or settings.doctor_timezone
    urgent = (request.args.get('urgent', 'false').lower() in ('1', 'true', 'yes')
              or request.args.get('consultation_type') == 'urgent')

    # Reservations are read on every request, never cached
    slots = compute_slots(
        day,
        user_timezone,
        urgent=urgent,
        reserved_slots=reservation_store.reserved_slots_for(day),
        now=datetime.now(timezone.utc),
        settings=settings,
    )

    return jsonify({
        'success': True,
        'data': {
            'date': day.isoformat(),
            'timezone': user_timezone,
            'doctor_timezone': settings.doctor_timezone,
            'urgent': urgent,
            'slots': [slot.to_dict() for slot in slots],
            'available_count': sum(1 for slot in slots if slot.available),
        }
    }), 200
