"""
Request logging and security headers
"""
import logging
import time

from flask import g, request

logger = logging.getLogger(__name__)


def setup_middleware(app):
    """Install per-request access logging and response security headers"""

    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def after_request(response):
        started = g.pop('request_started', None)
        elapsed_ms = (time.monotonic() - started) * 1000 if started is not None else 0
        logger.info(f"{request.method} {request.path} {response.status_code} "
                    f"{elapsed_ms:.1f}ms - {request.remote_addr}")

        if not app.debug:
            # Prevent clickjacking
            response.headers['X-Frame-Options'] = 'DENY'
            # Prevent MIME type sniffing
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-XSS-Protection'] = '1; mode=block'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response
