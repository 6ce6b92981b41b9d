from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, jwt, celery
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from telehealth.config import config
        config_class = config.get(config_name, config['default'])
    else:
        from telehealth.config import get_config
        config_class = get_config()
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Initialize CORS
    from telehealth.utils.cors import init_cors
    init_cors(app)

    # Initialize Celery
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
        task_always_eager=app.config['CELERY_TASK_ALWAYS_EAGER'],
        beat_schedule=app.config['CELERY_BEAT_SCHEDULE'],
    )

    # Make celery tasks work with Flask app context
    class FlaskAppContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask

    # Engine collaborators; tests replace these with fakes
    from telehealth.services.payment_gateway import PaymentGateway
    from telehealth.services.notifications import NotificationDispatcher
    app.extensions['payment_gateway'] = PaymentGateway.from_config(app.config)
    app.extensions['notification_dispatcher'] = NotificationDispatcher()

    from telehealth.errors import BookingError

    @app.errorhandler(BookingError)
    def handle_booking_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({
                'success': False,
                'error': e.description
            }), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({
            'success': False,
            'error': f'Invalid token: {reason}'
        }), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({
            'success': False,
            'error': 'Token has expired'
        }), 401

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/app.log',
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger('telehealth').addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    # Request logging and security headers
    from telehealth.middleware import setup_middleware
    setup_middleware(app)

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from .models import Appointment, PaymentOrder, ReminderJob, AuditLog  # noqa: F401

        # Register blueprints
        from .routes import availability_bp, appointment_bp, payments_bp, health_bp
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(availability_bp)
        app.register_blueprint(appointment_bp)
        app.register_blueprint(payments_bp)

    return app
