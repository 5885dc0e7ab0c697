"""
Routes package for the procurement API.
Each module exposes one Flask blueprint; ``BLUEPRINTS`` lists them with
their URL prefixes in registration order.
"""

from flask import request

from ..errors import ValidationError

BLUEPRINTS = [
    ('auth', 'auth_bp', '/api/auth'),
    ('bid_requests', 'bid_requests_bp', '/api/bid-requests'),
    ('supplier_offers', 'supplier_offers_bp', '/api/supplier-offers'),
    ('supplier', 'supplier_bp', '/api/supplier'),
    ('admin', 'admin_bp', '/api/admin'),
    ('delivery', 'delivery_bp', '/api/delivery'),
    ('payment', 'payment_bp', '/api/payment'),
    ('health', 'health_bp', '/api'),
]


def get_json_body():
    """Request body as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
