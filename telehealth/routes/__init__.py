from .availability import availability_bp
from .appointment import appointment_bp
from .payments import payments_bp
from .health import health_bp

__all__ = ['availability_bp', 'appointment_bp', 'payments_bp', 'health_bp']
