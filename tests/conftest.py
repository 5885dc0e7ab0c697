from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal

import pytest
from flask import has_app_context

from procurement.app import create_app
from procurement.middleware.auth import create_access_token
from procurement.models import db, BidItem, BidRequest, SupplierOffer, User, OFFER_PENDING
from procurement.services.formatting import utcnow


class RecordingNotifier:
    """Stands in for NotificationDispatcher and keeps what it was asked to send."""

    def __init__(self, fail=False):
        self.fail = fail
        self.awards = []
        self.new_bids = []

    def notify_award(self, notice):
        if self.fail:
            raise RuntimeError("smtp down")
        self.awards.append(notice)

    def notify_new_bid(self, bid_title, deadline, recipients):
        if self.fail:
            raise RuntimeError("smtp down")
        self.new_bids.append((bid_title, deadline, list(recipients)))

    def shutdown(self, wait=True):
        pass


class Factory:
    """
    Seeds rows and returns their ids.

    Works inside a pushed app context (service tests) or opens a short-lived
    one (HTTP tests, where the client must own the request context).
    """

    def __init__(self, app):
        self.app = app
        self._counter = 0

    @contextmanager
    def _session(self):
        if has_app_context():
            yield db.session
        else:
            with self.app.app_context():
                yield db.session

    def user(self, role='school', email=None, name=None, verified=False, phone=None, password='secret123'):
        self._counter += 1
        email = email or f'{role}{self._counter}@example.com'
        with self._session() as session:
            user = User(email=email, role=role, name=name or f'{role.title()} {self._counter}',
                        verified=verified, phone=phone)
            user.set_password(password)
            session.add(user)
            session.commit()
            return user.id

    def school(self, **kwargs):
        return self.user(role='school', **kwargs)

    def supplier(self, verified=True, **kwargs):
        return self.user(role='supplier', verified=verified, **kwargs)

    def admin(self, **kwargs):
        return self.user(role='admin', verified=True, **kwargs)

    def bid_request(self, school_id, deadline=None, items=None, title='Kitchen supplies'):
        """Returns (bid_request_id, [bid_item_id, ...])."""
        if deadline is None:
            deadline = utcnow() - timedelta(days=1)
        items = items or [('Onions', '100', 'bags')]
        with self._session() as session:
            bid_request = BidRequest(
                school_id=school_id,
                title=title,
                deadline=deadline,
                items=[
                    BidItem(item_name=name, quantity=Decimal(quantity), unit=unit)
                    for name, quantity, unit in items
                ],
            )
            session.add(bid_request)
            session.commit()
            return bid_request.id, [item.id for item in bid_request.items]

    def offer(self, supplier_id, bid_item_id, price, created_at=None, status=OFFER_PENDING,
              delivery_time=None, total_price=None):
        with self._session() as session:
            offer = SupplierOffer(
                supplier_id=supplier_id,
                bid_item_id=bid_item_id,
                price_per_unit=Decimal(str(price)),
                status=status,
                delivery_time=delivery_time,
                total_price=Decimal(str(total_price)) if total_price is not None else None,
                created_at=created_at or utcnow(),
            )
            session.add(offer)
            session.commit()
            return offer.id

    def token(self, user_id):
        with self._session() as session:
            return create_access_token(session.get(User, user_id))

    def headers(self, user_id):
        return {'Authorization': f'Bearer {self.token(user_id)}'}


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def app(notifier):
    app = create_app('testing')
    app.extensions['notifier'] = notifier
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def ctx(app):
    """Pushed app context for tests that call services directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def factory(app):
    return Factory(app)


@pytest.fixture()
def fetch_offer():
    def _fetch(offer_id):
        return db.session.get(SupplierOffer, offer_id, populate_existing=True)
    return _fetch