"""Tests for the booking coordinator."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from telehealth.errors import SlotConflictError, ValidationError
from telehealth.extensions import db
from telehealth.models import Appointment, AuditLog, ReminderJob
from telehealth.services import reservation_store
from telehealth.services.booking_service import BookingCoordinator, BookingRequest
from telehealth.utils.identity import Identity
from telehealth.utils.meeting import generate_meet_link

from conftest import RecordingDispatcher


class TestBook:
    """Successful bookings."""

    def test_book_confirms_appointment(self, coordinator, make_request, dispatcher):
        appointment = coordinator.book(make_request(description='Swelling in ankles', documents=['report.pdf']))

        assert appointment.status == 'confirmed'
        assert appointment.time_slot == '06:00 PM'
        assert appointment.doctor_name == 'Dr. Ilango S. Prakasam'
        assert appointment.doctor_qualifications == 'MD, DNB (Nephrology), MRCP (UK)'
        assert appointment.to_dict()['doctor']['qualifications'] == appointment.doctor_qualifications
        assert appointment.meet_link == 'https://meet.jit.si/NephroConsult-2025-10-05-0600PM'
        assert appointment.intake_description == 'Swelling in ankles'
        assert appointment.intake_documents == ['report.pdf']
        assert appointment.patient_email == 'asha@example.com'
        assert dispatcher.confirmations == [appointment.id]

    def test_book_schedules_reminder(self, coordinator, make_request, dispatcher):
        appointment = coordinator.book(make_request())

        job = ReminderJob.query.filter_by(appointment_id=appointment.id).one()
        # 18:00 IST is 12:30 UTC
        assert job.fire_at == datetime(2025, 10, 5, 12, 20)
        assert dispatcher.scheduled == [job.id]

    def test_unpadded_label_is_accepted(self, coordinator, make_request):
        appointment = coordinator.book(make_request(time_slot='6:30 pm'))

        assert appointment.time_slot == '06:30 PM'

    def test_audit_row_written(self, coordinator, make_request):
        appointment = coordinator.book(make_request())

        entry = AuditLog.query.filter_by(entity_type='appointment', action='confirmed').one()
        assert entry.entity_id == str(appointment.id)


class TestFirstBookingDiscount:
    """Only the first live appointment of a patient is discounted."""

    def test_first_booking_discounted_second_not(self, coordinator, make_request):
        first = coordinator.book(make_request(time_slot='06:00 PM'))
        second = coordinator.book(make_request(time_slot='07:00 PM'))

        assert first.discount_applied is True
        assert first.price_amount == Decimal('800.00')
        assert first.price_currency == 'INR'
        assert second.discount_applied is False
        assert second.price_amount == Decimal('1000.00')

    def test_discount_is_per_patient(self, coordinator, make_request):
        coordinator.book(make_request(time_slot='06:00 PM'))
        other = Identity(patient_id='patient-2', name='Ravi', country='IN')

        appointment = coordinator.book(make_request(time_slot='06:30 PM', identity=other))

        assert appointment.discount_applied is True

    def test_released_booking_returns_discount(self, coordinator, make_request, clock):
        reservation_store.try_reserve(clock().date(), '06:00 PM', 'patient-1', 'initial', claim_discount=True)
        reservation_store.release(clock().date(), '06:00 PM')

        appointment = coordinator.book(make_request(time_slot='06:00 PM'))

        assert appointment.discount_applied is True


class TestConflicts:
    """Slot collisions and stale client state."""

    def test_two_bookings_same_slot(self, coordinator, make_request):
        """One of two requests for 2025-10-05 10:00 AM wins, the other conflicts."""
        other = Identity(patient_id='patient-2', country='IN')

        first = coordinator.book(make_request(time_slot='10:00 AM', consultation_type='urgent'))
        with pytest.raises(SlotConflictError) as exc:
            coordinator.book(make_request(time_slot='10:00 AM', consultation_type='urgent', identity=other))

        assert first.status == 'confirmed'
        assert exc.value.status_code == 409
        assert exc.value.code == 'already_booked'
        assert Appointment.query.count() == 1

    def test_conflict_detected_by_store(self, coordinator, make_request, monkeypatch):
        """A stale availability read still ends in a conflict at insert time."""
        reservation_store.try_reserve(datetime(2025, 10, 5).date(), '07:00 PM', 'patient-9', 'initial')
        monkeypatch.setattr(reservation_store, 'reserved_slots_for', lambda day: set())

        with pytest.raises(SlotConflictError):
            coordinator.book(make_request(time_slot='07:00 PM'))


class TestValidation:
    """Requests rejected before touching the store."""

    def test_past_slot_rejected(self, app, dispatcher, make_request):
        late = BookingCoordinator(dispatcher=dispatcher, clock=lambda: datetime(2025, 10, 5, 13, 0, tzinfo=timezone.utc))

        with pytest.raises(ValidationError):
            late.book(make_request(time_slot='06:00 PM'))
        assert Appointment.query.count() == 0

    def test_slot_outside_regular_window(self, coordinator, make_request):
        with pytest.raises(ValidationError):
            coordinator.book(make_request(time_slot='10:00 AM', consultation_type='initial'))

    def test_unknown_consultation_type(self, coordinator, make_request):
        with pytest.raises(ValidationError):
            coordinator.book(make_request(consultation_type='surgery'))

    def test_unsupported_currency(self, coordinator, make_request):
        with pytest.raises(ValidationError):
            coordinator.book(make_request(currency='XYZ'))
        assert Appointment.query.count() == 0

    def test_from_payload_requires_fields(self, patient):
        with pytest.raises(ValidationError):
            BookingRequest.from_payload(patient, {'date': '2025-10-05'})


class TestSideEffects:
    """Notification failures never undo a booking."""

    def test_dispatcher_failure_keeps_appointment(self, app, clock, make_request):
        failing = RecordingDispatcher(fail=True)
        coordinator = BookingCoordinator(dispatcher=failing, clock=clock)

        appointment = coordinator.book(make_request())

        assert db.session.get(Appointment, appointment.id).status == 'confirmed'

    def test_reminder_skipped_close_to_start(self, app, dispatcher, make_request):
        """Booking 5 minutes before a 10:00 AM IST slot creates no reminder."""
        coordinator = BookingCoordinator(dispatcher=dispatcher,
                                         clock=lambda: datetime(2025, 10, 5, 4, 25, tzinfo=timezone.utc))

        appointment = coordinator.book(make_request(time_slot='10:00 AM', consultation_type='urgent'))

        assert appointment.status == 'confirmed'
        assert ReminderJob.query.count() == 0
        assert dispatcher.confirmations == [appointment.id]


class TestMeetingLink:
    def test_whitespace_and_punctuation_stripped(self):
        link = generate_meet_link('https://meet.jit.si/NephroConsult', '2025-10-05', ' 10:00  AM ')

        assert link == 'https://meet.jit.si/NephroConsult-2025-10-05-1000AM'

    def test_missing_slot(self):
        assert generate_meet_link('https://meet.jit.si/Room', '2025-10-05', None) == 'https://meet.jit.si/Room-2025-10-05-'
