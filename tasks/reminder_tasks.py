"""
Celery tasks for consultation reminders
"""
import logging
from datetime import datetime
from telehealth.extensions import celery, db
from telehealth.services.reminder_service import deliver_reminder as deliver, due_reminder_ids

logger = logging.getLogger(__name__)


@celery.task(name='tasks.deliver_reminder')
def deliver_reminder(job_id):
    """
    Deliver one reminder at its ETA

    Args:
        job_id: ReminderJob ID

    Returns:
        dict: Delivery result
    """
    try:
        return deliver(job_id)
    except Exception as e:
        logger.error(f"Error delivering reminder {job_id}: {e}", exc_info=True)
        db.session.rollback()
        return {'success': False, 'error': str(e)}


@celery.task(name='tasks.dispatch_due_reminders')
def dispatch_due_reminders():
    """
    Deliver every due reminder that the ETA path has not delivered
    (worker restarts, lost broker messages)

    Returns:
        dict: Dispatch results
    """
    delivered = 0
    skipped = 0
    errors = 0
    for job_id in due_reminder_ids():
        try:
            result = deliver(job_id)
            if result.get('skipped'):
                skipped += 1
            elif result.get('success'):
                delivered += 1
        except Exception as e:
            logger.error(f"Error delivering reminder {job_id}: {e}", exc_info=True)
            db.session.rollback()
            errors += 1

    if delivered or errors:
        logger.info(f"Reminder scan: {delivered} delivered, {skipped} skipped, {errors} failed")
    return {
        'success': errors == 0,
        'delivered': delivered,
        'skipped': skipped,
        'errors': errors,
        'timestamp': datetime.utcnow().isoformat()
    }
