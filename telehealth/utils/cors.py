"""
CORS Configuration
Centralized CORS settings for the application
"""

CORS_CONFIG = {
    "methods": ["GET", "POST", "OPTIONS"],
    "allow_headers": [
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept",
        "Origin",
    ],
    "expose_headers": [
        "Content-Type",
        "Authorization",
    ],
    "supports_credentials": True,
    "max_age": 86400,  # 24 hours
}


def init_cors(app):
    """
    Initialize CORS for the API blueprints
    CORS_ORIGINS is a comma-separated list, or * for any origin
    """
    from flask_cors import CORS

    origins = app.config.get('CORS_ORIGINS', '*')
    if origins != '*':
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]

    CORS(app,
         resources={r"/api/*": {"origins": origins}},
         methods=CORS_CONFIG["methods"],
         allow_headers=CORS_CONFIG["allow_headers"],
         expose_headers=CORS_CONFIG["expose_headers"],
         supports_credentials=CORS_CONFIG["supports_credentials"],
         max_age=CORS_CONFIG["max_age"])

    app.logger.info(f"CORS enabled for origins: {origins}")
