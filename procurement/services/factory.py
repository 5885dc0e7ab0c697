# procurement/services/factory.py
# Builds services bound to the current app's configuration and session

from flask import current_app

from ..models import db
from .bidding import BiddingService
from .fulfillment import FulfillmentService
from .notifications import NotificationDispatcher
from .selection import SelectionEngine
from .stores import BidStore, OfferStore, UserStore


def get_notifier(app=None):
    """The app-wide dispatcher, created on first use."""
    app = app or current_app._get_current_object()
    notifier = app.extensions.get('notifier')
    if notifier is None:
        notifier = NotificationDispatcher.from_config(app.config)
        app.extensions['notifier'] = notifier
    return notifier


def selection_engine(session=None):
    session = session or db.session
    return SelectionEngine(
        BidStore(session),
        OfferStore(session),
        notifier=get_notifier(),
        default_delivery_time=current_app.config.get('DEFAULT_DELIVERY_TIME', '3'),
    )


def bidding_service(session=None):
    session = session or db.session
    return BiddingService(
        BidStore(session),
        OfferStore(session),
        UserStore(session),
        notifier=get_notifier(),
        timezone_name=current_app.config.get('TIMEZONE', 'Africa/Accra'),
        require_verified_suppliers=current_app.config.get('REQUIRE_VERIFIED_SUPPLIERS', False),
    )


def fulfillment_service(session=None):
    session = session or db.session
    return FulfillmentService(session, BidStore(session))
