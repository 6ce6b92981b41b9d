"""
Celery tasks for patient, doctor and support notifications
"""
import logging
from flask import current_app
from telehealth.extensions import celery, db
from telehealth.models import Appointment, PaymentOrder
from telehealth.services.email_service import (
    build_confirmation_email,
    build_reminder_email,
    build_support_alert_email,
    send_email,
)

logger = logging.getLogger(__name__)


@celery.task(name='tasks.send_booking_confirmation')
def send_booking_confirmation(appointment_id):
    """
    Email the booking confirmation to the patient

    Args:
        appointment_id: Appointment ID

    Returns:
        dict: Send result
    """
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return {'success': False, 'error': 'Appointment not found'}
    if not appointment.patient_email:
        logger.warning(f"Appointment {appointment_id} has no patient email; confirmation not sent")
        return {'success': False, 'error': 'No patient email'}

    subject, body = build_confirmation_email(appointment)
    sent = send_email(appointment.patient_email, subject, body)
    return {'success': sent, 'appointment_id': appointment_id}


@celery.task(name='tasks.send_reminder_emails')
def send_reminder_emails(appointment_id):
    """Reminder to the patient, and to the doctor when a doctor email is configured"""
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return {'success': False, 'error': 'Appointment not found'}

    sent = []
    if appointment.patient_email:
        subject, body = build_reminder_email(appointment)
        if send_email(appointment.patient_email, subject, body):
            sent.append('patient')
    if appointment.doctor_email:
        subject, body = build_reminder_email(appointment, for_doctor=True)
        if send_email(appointment.doctor_email, subject, body):
            sent.append('doctor')

    return {'success': bool(sent), 'appointment_id': appointment_id, 'sent_to': sent}


@celery.task(name='tasks.send_support_alert')
def send_support_alert(order_id, reason):
    """Escalate a paid order that could not be booked"""
    order = db.session.get(PaymentOrder, order_id)
    if order is None:
        return {'success': False, 'error': 'Order not found'}

    support_email = current_app.config.get('SUPPORT_EMAIL')
    subject, body = build_support_alert_email(order, reason)
    sent = send_email(support_email, subject, body)
    if not sent:
        logger.error(f"PAID_BUT_UNBOOKED alert for order {order.order_reference} could not be emailed")
    return {'success': sent, 'order_id': order_id}
