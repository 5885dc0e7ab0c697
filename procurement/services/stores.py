# procurement/services/stores.py
"""
Query surface over the relational store.

The selection engine and bidding service receive these objects explicitly
instead of touching ``Model.query`` globals, so every read the award logic
depends on is visible here. All stores built for one unit of work must share
the same SQLAlchemy session.
"""

from contextlib import contextmanager
import logging

from sqlalchemy import and_, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import Conflict, Unavailable
from ..models import (
    BidItem,
    BidRequest,
    SupplierOffer,
    User,
    OFFER_ACCEPTED,
    OFFER_PENDING,
    OFFER_REJECTED,
)

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session, description='transaction'):
    """
    Run the block as one transaction on ``session``.

    Commits on success. Integrity violations become Conflict, other store
    failures become Unavailable; domain errors pass through. The session is
    rolled back in every failure case.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Integrity violation during {description}: {e.orig}")
        raise Conflict(f"Conflicting update during {description}")
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store failure during {description}: {e}")
        raise Unavailable(f"Store unavailable during {description}") from e
    except Exception:
        session.rollback()
        raise


class BidStore:
    """Bid requests and their line items."""

    def __init__(self, session):
        self.session = session

    def get_request(self, bid_request_id):
        return self.session.get(BidRequest, bid_request_id)

    def get_item(self, bid_item_id):
        return self.session.get(BidItem, bid_item_id)

    def get_request_for_item(self, bid_item_id):
        stmt = (
            select(BidRequest)
            .join(BidItem, BidItem.bid_request_id == BidRequest.id)
            .where(BidItem.id == bid_item_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def lock_item(self, bid_item_id):
        """Row-lock the item for the rest of the transaction and reload it."""
        stmt = (
            select(BidItem)
            .where(BidItem.id == bid_item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def add_request(self, bid_request):
        self.session.add(bid_request)
        return bid_request

    def active_requests(self, now):
        stmt = (
            select(BidRequest)
            .where(BidRequest.deadline > now)
            .order_by(BidRequest.created_at.desc(), BidRequest.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    def requests_for_school(self, school_id):
        stmt = (
            select(BidRequest)
            .where(BidRequest.school_id == school_id)
            .order_by(BidRequest.created_at.desc(), BidRequest.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    def all_requests(self):
        stmt = select(BidRequest).order_by(BidRequest.created_at.desc(), BidRequest.id.desc())
        return self.session.execute(stmt).scalars().all()

    def items_awaiting_award(self, now):
        """
        Items whose request deadline is strictly before ``now`` and which have
        no accepted offer.
        """
        accepted_exists = exists().where(
            and_(
                SupplierOffer.bid_item_id == BidItem.id,
                SupplierOffer.status == OFFER_ACCEPTED,
            )
        )
        stmt = (
            select(BidItem)
            .join(BidRequest, BidItem.bid_request_id == BidRequest.id)
            .where(BidRequest.deadline < now)
            .where(~accepted_exists)
            .order_by(BidItem.id)
        )
        return self.session.execute(stmt).scalars().all()


class OfferStore:
    """Supplier offers, always read fresh from the database."""

    def __init__(self, session):
        self.session = session

    def get(self, offer_id):
        return self.session.get(SupplierOffer, offer_id, populate_existing=True)

    def add(self, offer):
        self.session.add(offer)
        return offer

    def for_item(self, bid_item_id):
        """Offers on one item in submission order."""
        stmt = (
            select(SupplierOffer)
            .where(SupplierOffer.bid_item_id == bid_item_id)
            .order_by(SupplierOffer.created_at.asc(), SupplierOffer.id.asc())
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().all()

    def find_by_supplier(self, bid_item_id, supplier_id):
        stmt = select(SupplierOffer).where(
            SupplierOffer.bid_item_id == bid_item_id,
            SupplierOffer.supplier_id == supplier_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def accepted_for_item(self, bid_item_id):
        stmt = (
            select(SupplierOffer)
            .where(
                SupplierOffer.bid_item_id == bid_item_id,
                SupplierOffer.status == OFFER_ACCEPTED,
            )
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def accept(self, offer_id, total_price, delivery_time):
        """
        Compare-and-swap a pending offer to accepted.

        Returns True when exactly this call moved the offer out of pending.
        """
        result = self.session.execute(
            update(SupplierOffer)
            .where(
                SupplierOffer.id == offer_id,
                SupplierOffer.status == OFFER_PENDING,
            )
            .values(status=OFFER_ACCEPTED, total_price=total_price, delivery_time=delivery_time)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def reject_siblings(self, bid_item_id, keep_offer_id):
        """Reject every other pending offer on the item in one statement."""
        result = self.session.execute(
            update(SupplierOffer)
            .where(
                SupplierOffer.bid_item_id == bid_item_id,
                SupplierOffer.id != keep_offer_id,
                SupplierOffer.status == OFFER_PENDING,
            )
            .values(status=OFFER_REJECTED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def accepted_for_school(self, school_id):
        stmt = (
            select(SupplierOffer)
            .join(BidItem, SupplierOffer.bid_item_id == BidItem.id)
            .join(BidRequest, BidItem.bid_request_id == BidRequest.id)
            .where(
                BidRequest.school_id == school_id,
                SupplierOffer.status == OFFER_ACCEPTED,
            )
            .order_by(SupplierOffer.created_at.desc(), SupplierOffer.id.desc())
        )
        return self.session.execute(stmt).scalars().all()

    def for_supplier(self, supplier_id, status=None):
        stmt = select(SupplierOffer).where(SupplierOffer.supplier_id == supplier_id)
        if status:
            stmt = stmt.where(SupplierOffer.status == status)
        stmt = stmt.order_by(SupplierOffer.created_at.desc(), SupplierOffer.id.desc())
        return self.session.execute(stmt).scalars().all()


class UserStore:
    def __init__(self, session):
        self.session = session

    def get(self, user_id):
        return self.session.get(User, user_id)

    def verified_suppliers(self):
        stmt = (
            select(User)
            .where(
                User.role == 'supplier',
                User.verified.is_(True),
                User.is_active.is_(True),
            )
            .order_by(User.id)
        )
        return self.session.execute(stmt).scalars().all()
