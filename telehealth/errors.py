"""
Booking and payment error taxonomy.

Each error knows the HTTP status and machine-readable code it maps to, so the
blueprints can hand them straight to the JSON error handler.
"""


class BookingError(Exception):
    status_code = 500
    code = 'booking_error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.details = details

    def to_dict(self):
        payload = {
            'success': False,
            'error': self.message,
            'code': self.code,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(BookingError):
    """Invalid booking request"""
    status_code = 400
    code = 'validation_error'


class NotFoundError(BookingError):
    """Resource not found"""
    status_code = 404
    code = 'not_found'


class SlotConflictError(BookingError):
    """Time slot already booked"""
    status_code = 409
    code = 'already_booked'


class PaymentPendingError(BookingError):
    """Payment is still being confirmed"""
    status_code = 202
    code = 'payment_pending'


class PaymentFailedError(BookingError):
    """Payment failed"""
    status_code = 402
    code = 'payment_failed'


class PaidButUnbookedError(BookingError):
    """Payment received but the slot could not be booked"""
    status_code = 409
    code = 'paid_but_unbooked'


class PaymentProviderError(BookingError):
    """Payment provider unavailable"""
    status_code = 502
    code = 'payment_provider_error'
