"""
Health check endpoints for monitoring and load balancers
"""
from flask import Blueprint, current_app, jsonify
from telehealth.extensions import db
from datetime import datetime

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Basic health check - no database connection"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'telehealth-booking'
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Readiness check - includes database connection"""
    try:
        db.session.execute(db.text('SELECT 1'))
        db_status = 'connected'
    except Exception as e:
        db.session.rollback()
        db_status = f'error: {str(e)}'

    return jsonify({
        'status': 'ready' if db_status == 'connected' else 'not_ready',
        'database': db_status,
        'timestamp': datetime.utcnow().isoformat()
    }), 200 if db_status == 'connected' else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness check for Kubernetes/containers"""
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.utcnow().isoformat()
    }), 200


@health_bp.route('/payments', methods=['GET'])
def payments_health_check():
    """Payment provider configuration check (no outbound call)"""
    gateway = current_app.extensions['payment_gateway']
    configured = gateway.is_configured
    return jsonify({
        'status': 'healthy' if configured else 'degraded',
        'payments': {
            'configured': configured,
            'environment': gateway.environment,
            'webhook_secret_configured': bool(current_app.config.get('PAYMENT_WEBHOOK_SECRET')),
        },
        'timestamp': datetime.utcnow().isoformat()
    }), 200 if configured else 503
