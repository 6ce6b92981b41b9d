"""
Celery tasks for payment reconciliation
"""
import logging
from datetime import datetime
from telehealth.extensions import celery, db
from telehealth.services.reconciliation_service import PaymentReconciler

logger = logging.getLogger(__name__)


@celery.task(name='tasks.sweep_payment_orders')
def sweep_payment_orders():
    """
    Re-verify open orders, book paid orders that have no appointment yet,
    and drop orders abandoned for too long

    Returns:
        dict: Sweep statistics
    """
    try:
        stats = PaymentReconciler().sweep()
        return dict(stats, success=True, timestamp=datetime.utcnow().isoformat())
    except Exception as e:
        logger.error(f"Error sweeping payment orders: {e}", exc_info=True)
        db.session.rollback()
        return {'success': False, 'error': str(e)}
