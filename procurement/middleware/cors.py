# procurement/middleware/cors.py
from flask_cors import CORS
import logging

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = [
    'Accept',
    'Authorization',
    'Cache-Control',
    'Content-Type',
    'Origin',
    'X-Requested-With',
]


def setup_cors(app):
    """Attach Flask-Cors to the API using the configured origins."""
    origins = app.config.get('CORS_ORIGINS') or []
    CORS(
        app,
        resources={r'/api/*': {'origins': origins}},
        supports_credentials=app.config.get('CORS_SUPPORTS_CREDENTIALS', True),
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'PATCH'],
        allow_headers=ALLOWED_HEADERS,
        expose_headers=['Content-Type', 'Authorization'],
        max_age=86400,
    )
    logger.info(f"CORS configured with {len(origins)} allowed origins")
