"""
Notification dispatch

The engine decides that a notification is due; delivery runs in Celery tasks.
Task modules import the app package, so they are imported lazily here.
"""
import logging
from datetime import timezone

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Queues notification work on Celery."""

    def booking_confirmed(self, appointment):
        from tasks.notification_tasks import send_booking_confirmation
        result = send_booking_confirmation.delay(appointment.id)
        logger.info(f"Queued confirmation for appointment {appointment.id}")
        return result.id

    def schedule_reminder(self, job):
        """Queue reminder delivery at the job's fire time. Returns the task id."""
        from tasks.reminder_tasks import deliver_reminder
        result = deliver_reminder.apply_async(args=[job.id], eta=job.fire_at.replace(tzinfo=timezone.utc))
        logger.info(f"Queued reminder {job.id} for {job.fire_at} UTC")
        return result.id

    def send_reminder(self, appointment):
        from tasks.notification_tasks import send_reminder_emails
        send_reminder_emails.delay(appointment.id)

    def support_alert(self, order, reason):
        from tasks.notification_tasks import send_support_alert
        send_support_alert.delay(order.id, reason)
        logger.info(f"Queued support alert for order {order.order_reference}")
