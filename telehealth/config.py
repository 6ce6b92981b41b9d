import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///telehealth.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Doctor operating window (hours in DOCTOR_TIMEZONE, end exclusive)
    DOCTOR_TIMEZONE = os.getenv('DOCTOR_TIMEZONE', 'Asia/Kolkata')
    REGULAR_WINDOW_START = int(os.getenv('REGULAR_WINDOW_START', '18'))  # 6 PM
    REGULAR_WINDOW_END = int(os.getenv('REGULAR_WINDOW_END', '22'))      # 10 PM
    URGENT_WINDOW_START = int(os.getenv('URGENT_WINDOW_START', '10'))    # 10 AM
    URGENT_WINDOW_END = int(os.getenv('URGENT_WINDOW_END', '22'))        # 10 PM
    SLOT_MINUTES = int(os.getenv('SLOT_MINUTES', '30'))

    # Doctor identity stamped on every appointment
    DOCTOR_NAME = os.getenv('DOCTOR_NAME', 'Dr. Ilango S. Prakasam')
    DOCTOR_TITLE = os.getenv('DOCTOR_TITLE', 'Sr. Nephrologist')
    DOCTOR_QUALIFICATIONS = os.getenv('DOCTOR_QUALIFICATIONS', 'MD, DNB (Nephrology), MRCP (UK)')
    DOCTOR_EMAIL = os.getenv('DOCTOR_EMAIL')

    MEETING_BASE_URL = os.getenv('MEETING_BASE_URL', 'https://meet.jit.si/NephroConsult')

    # Pricing / booking rules
    FIRST_BOOKING_DISCOUNT = float(os.getenv('FIRST_BOOKING_DISCOUNT', '0.20'))
    REQUIRE_PAYMENT_FOR_BOOKING = os.getenv('REQUIRE_PAYMENT_FOR_BOOKING', 'true').lower() == 'true'
    REMINDER_LEAD_MINUTES = int(os.getenv('REMINDER_LEAD_MINUTES', '10'))

    # Payment provider
    PAYMENT_APP_ID = os.getenv('PAYMENT_APP_ID')
    PAYMENT_SECRET_KEY = os.getenv('PAYMENT_SECRET_KEY')
    PAYMENT_ENVIRONMENT = os.getenv('PAYMENT_ENVIRONMENT', 'sandbox')  # sandbox or production
    PAYMENT_API_VERSION = os.getenv('PAYMENT_API_VERSION', '2023-08-01')
    PAYMENT_RETURN_URL = os.getenv('PAYMENT_RETURN_URL', 'http://localhost:3000/payment-success?order_id={order_id}')
    PAYMENT_NOTIFY_URL = os.getenv('PAYMENT_NOTIFY_URL')
    PAYMENT_WEBHOOK_SECRET = os.getenv('PAYMENT_WEBHOOK_SECRET') or PAYMENT_SECRET_KEY
    PAYMENT_WEBHOOK_MAX_AGE_SECONDS = int(os.getenv('PAYMENT_WEBHOOK_MAX_AGE_SECONDS', '300'))
    PAYMENT_HTTP_TIMEOUT = float(os.getenv('PAYMENT_HTTP_TIMEOUT', '10'))
    PAYMENT_VERIFY_ATTEMPTS = int(os.getenv('PAYMENT_VERIFY_ATTEMPTS', '8'))
    PAYMENT_VERIFY_DELAY_SECONDS = float(os.getenv('PAYMENT_VERIFY_DELAY_SECONDS', '2'))

    # Order lifecycle
    ORDER_REUSE_MINUTES = int(os.getenv('ORDER_REUSE_MINUTES', '30'))
    ORDER_SWEEP_MIN_AGE_MINUTES = int(os.getenv('ORDER_SWEEP_MIN_AGE_MINUTES', '5'))
    ORDER_ABANDON_AFTER_HOURS = int(os.getenv('ORDER_ABANDON_AFTER_HOURS', '24'))

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = 'UTC'
    CELERY_ENABLE_UTC = True
    CELERY_TASK_ALWAYS_EAGER = False
    CELERY_BEAT_SCHEDULE = {
        'sweep-payment-orders': {
            'task': 'tasks.sweep_payment_orders',
            'schedule': timedelta(minutes=5),
        },
        'dispatch-due-reminders': {
            'task': 'tasks.dispatch_due_reminders',
            'schedule': timedelta(minutes=1),
        },
    }

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'app.log')

    # Email Configuration
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
    MAIL_USE_TLS = os.getenv('MAIL_USE_TLS', 'true').lower() == 'true'
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'NephroConsult <no-reply@nephroconsult.com>')
    SUPPORT_EMAIL = os.getenv('SUPPORT_EMAIL', 'support@nephroconsult.com')

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    REQUIRE_PAYMENT_FOR_BOOKING = os.getenv('REQUIRE_PAYMENT_FOR_BOOKING', 'false').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
        'connect_args': {
            'connect_timeout': 10,
            'options': '-c statement_timeout=30000'
        }
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')

    @staticmethod
    def init_app(app):
        """Refuse to boot production with the development secrets"""
        if app.config.get('SECRET_KEY') in (None, '', 'dev-secret-key-change-in-production'):
            raise ValueError("SECRET_KEY environment variable must be set in production and must not be the default value")
        if app.config.get('JWT_SECRET_KEY') in (None, '', 'dev-secret-key-change-in-production'):
            raise ValueError("JWT_SECRET_KEY must be set in production and must not be the default value")
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            raise ValueError("DATABASE_URL environment variable must be set in production")


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REQUIRE_PAYMENT_FOR_BOOKING = False

    PAYMENT_APP_ID = 'test-app-id'
    PAYMENT_SECRET_KEY = 'test-secret-key'
    PAYMENT_WEBHOOK_SECRET = 'test-webhook-secret'
    PAYMENT_VERIFY_DELAY_SECONDS = 0
    DOCTOR_EMAIL = 'doctor@example.com'

    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    MAIL_USERNAME = None
    MAIL_PASSWORD = None


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
