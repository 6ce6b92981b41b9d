"""
Reminder scheduling and delivery

A reminder fires REMINDER_LEAD_MINUTES before the consultation. There is at
most one ReminderJob per appointment, and delivery claims the job with a
conditional update, so the ETA task and the periodic scan can both run
without sending twice.
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from telehealth.extensions import db
from telehealth.models import Appointment, ReminderJob
from telehealth.models.appointment import STATUS_CANCELLED
from telehealth.services.slot_service import slot_start

logger = logging.getLogger(__name__)


def _utc_now():
    return datetime.now(timezone.utc)


def _naive_utc(value):
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ReminderScheduler:
    def __init__(self, dispatcher=None, lead_minutes=None, doctor_timezone=None, clock=None):
        config = current_app.config
        self.dispatcher = dispatcher or current_app.extensions['notification_dispatcher']
        self.lead = timedelta(minutes=lead_minutes if lead_minutes is not None
                              else config.get('REMINDER_LEAD_MINUTES', 10))
        self.doctor_timezone = doctor_timezone or config.get('DOCTOR_TIMEZONE', 'Asia/Kolkata')
        self.clock = clock or _utc_now

    def fire_time(self, appointment):
        return slot_start(appointment.date, appointment.time_slot, self.doctor_timezone) - self.lead

    def schedule(self, appointment):
        """
        Create the reminder for an appointment and queue its delivery.

        Returns:
            ReminderJob, or None when the fire time has already passed
        """
        fire_at = self.fire_time(appointment)
        if fire_at <= self.clock():
            logger.info(f"Reminder for appointment {appointment.id} skipped; fire time {fire_at} already passed")
            return None

        existing = ReminderJob.query.filter_by(appointment_id=appointment.id).first()
        if existing is not None:
            logger.info(f"Reminder for appointment {appointment.id} already scheduled")
            return existing

        job = ReminderJob(appointment_id=appointment.id, fire_at=_naive_utc(fire_at))
        db.session.add(job)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(f"Reminder for appointment {appointment.id} scheduled concurrently")
            return ReminderJob.query.filter_by(appointment_id=appointment.id).first()

        job.task_id = self.dispatcher.schedule_reminder(job)
        db.session.commit()
        logger.info(f"Scheduled reminder {job.id} for appointment {appointment.id} at {job.fire_at} UTC")
        return job


def claim_reminder(job_id):
    """Mark a job delivered if nobody has yet. True only for the caller that wins."""
    result = db.session.execute(
        update(ReminderJob)
        .where(ReminderJob.id == job_id, ReminderJob.delivered.is_(False))
        .values(delivered=True, delivered_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def deliver_reminder(job_id, dispatcher=None):
    """
    Deliver one reminder job.

    Returns:
        dict: outcome of the delivery attempt
    """
    dispatcher = dispatcher or current_app.extensions['notification_dispatcher']
    job = db.session.get(ReminderJob, job_id)
    if job is None:
        return {'success': False, 'error': 'Reminder not found'}

    appointment = db.session.get(Appointment, job.appointment_id)
    if not claim_reminder(job_id):
        logger.info(f"Reminder {job_id} already delivered")
        return {'success': True, 'skipped': 'already_delivered'}

    if appointment is None or appointment.status == STATUS_CANCELLED:
        logger.info(f"Reminder {job_id} dropped; appointment cancelled")
        return {'success': True, 'skipped': 'cancelled'}

    dispatcher.send_reminder(appointment)
    logger.info(f"Reminder {job_id} delivered for appointment {appointment.id}")
    return {'success': True, 'appointment_id': appointment.id}


def due_reminder_ids(now=None):
    now = _naive_utc(now or _utc_now())
    rows = db.session.query(ReminderJob.id).filter(
        ReminderJob.delivered.is_(False),
        ReminderJob.fire_at <= now,
    ).order_by(ReminderJob.fire_at).all()
    return [row[0] for row in rows]
