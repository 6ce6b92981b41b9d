"""
Email Service for appointment confirmations, reminders and support escalations
"""
import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from flask import current_app

from telehealth.services.slot_service import slot_start

logger = logging.getLogger(__name__)


def send_email(to_email, subject, body_text, body_html=None):
    """
    Generic email sending function

    Args:
        to_email: Recipient email
        subject: Email subject
        body_text: Plain text body
        body_html: HTML body (optional)

    Returns:
        bool: True if sent successfully
    """
    try:
        mail_server = current_app.config.get('MAIL_SERVER')
        mail_port = current_app.config.get('MAIL_PORT')
        mail_use_tls = current_app.config.get('MAIL_USE_TLS')
        mail_username = current_app.config.get('MAIL_USERNAME')
        mail_password = current_app.config.get('MAIL_PASSWORD')
        mail_sender = current_app.config.get('MAIL_DEFAULT_SENDER')

        if not mail_username or not mail_password:
            logger.warning("Email not configured")
            return False

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = mail_sender
        msg['To'] = to_email

        msg.attach(MIMEText(body_text, 'plain'))
        if body_html:
            msg.attach(MIMEText(body_html, 'html'))

        with smtplib.SMTP(mail_server, mail_port) as server:
            if mail_use_tls:
                server.starttls()
            server.login(mail_username, mail_password)
            server.sendmail(mail_sender, to_email, msg.as_string())

        logger.info(f"Email sent to {to_email}")
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def zone_label(day, time_slot):
    """Abbreviation of the doctor's timezone at that slot, e.g. IST or EDT."""
    return slot_start(day, time_slot, current_app.config.get('DOCTOR_TIMEZONE', 'Asia/Kolkata')).tzname()


def build_confirmation_email(appointment):
    """Subject and plain-text body confirming a booking."""
    zone = zone_label(appointment.date, appointment.time_slot)
    subject = f"Appointment confirmed: {appointment.date.isoformat()} at {appointment.time_slot} {zone}"
    body = f"""
Dear {appointment.patient_name or 'Patient'},

Your {appointment.consultation_type_name} with {appointment.doctor_name} is confirmed.

Date: {appointment.date.isoformat()}
Time: {appointment.time_slot} ({zone})
Meeting link: {appointment.meet_link}

Amount: {appointment.price_symbol or ''}{appointment.price_amount} {appointment.price_currency or ''}

Please join the meeting a few minutes early.

Best regards,
NephroConsult
    """
    return subject, body


def build_reminder_email(appointment, for_doctor=False):
    """Reminder sent shortly before the consultation."""
    zone = zone_label(appointment.date, appointment.time_slot)
    subject = f"Reminder: consultation at {appointment.time_slot} {zone} today"
    if for_doctor:
        greeting = f"Dear {appointment.doctor_name},"
        who = f"with {appointment.patient_name or appointment.patient_id}"
    else:
        greeting = f"Dear {appointment.patient_name or 'Patient'},"
        who = f"with {appointment.doctor_name}"
    body = f"""
{greeting}

Your {appointment.consultation_type_name} {who} starts at {appointment.time_slot} {zone} on {appointment.date.isoformat()}.

Meeting link: {appointment.meet_link}

NephroConsult
    """
    return subject, body


def build_support_alert_email(order, reason):
    """Escalation for a paid order that has no appointment."""
    zone = zone_label(order.date, order.time_slot)
    subject = f"[PAID_BUT_UNBOOKED] Order {order.order_reference} needs manual reassignment"
    body = f"""
A payment was received but the appointment could not be booked.

Order: {order.order_reference}
Status: {order.status}
Reason: {reason}

Patient: {order.patient_name or ''} ({order.patient_id})
Email: {order.patient_email or ''}
Phone: {order.patient_phone or ''}

Requested slot: {order.date.isoformat()} {order.time_slot} {zone}
Consultation: {order.consultation_type}
Amount paid: {order.amount} {order.currency}

Offer the patient a new slot or a refund.
    """
    return subject, body
