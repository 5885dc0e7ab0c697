# procurement/models/__init__.py

from .base import db

# Import order matters: users first, then the tables that reference them.
from .user import User, ROLES
from .supplier_profile import SupplierProfile
from .bid_request import BidRequest, BidItem
from .supplier_offer import (
    SupplierOffer,
    OFFER_PENDING,
    OFFER_ACCEPTED,
    OFFER_REJECTED,
)
from .delivery import Delivery, Payment

__all__ = [
    'db',
    'User',
    'ROLES',
    'SupplierProfile',
    'BidRequest',
    'BidItem',
    'SupplierOffer',
    'OFFER_PENDING',
    'OFFER_ACCEPTED',
    'OFFER_REJECTED',
    'Delivery',
    'Payment',
]
