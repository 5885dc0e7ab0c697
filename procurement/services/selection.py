# procurement/services/selection.py
"""
Offer selection: decides which supplier offer wins each bid item.

Two entry points share one award routine:

* ``select_offer`` - a school explicitly picks an offer after the deadline.
* ``run_auto_selection`` - the daily sweep awards the lowest price on every
  expired item that nobody awarded.

An award is one transaction per bid item: lock the item row, re-read the
offers, move the winner pending -> accepted with a conditional update, then
reject the remaining pending offers. A partial unique index on
``supplier_offers(bid_item_id) WHERE status = 'accepted'`` backs this up, so a
lost race surfaces as Conflict instead of a second accepted offer.
"""

from decimal import Decimal, ROUND_HALF_UP
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import Conflict, Forbidden, InvalidState, NotFound, ProcurementError, Unavailable
from ..models import OFFER_ACCEPTED, OFFER_PENDING, OFFER_REJECTED
from .formatting import CENTS, utcnow, format_datetime, format_decimal
from .notifications import AwardNotice, recipient_for
from .stores import atomic

logger = logging.getLogger(__name__)


def compute_total(price_per_unit, quantity):
    return (Decimal(price_per_unit) * Decimal(quantity)).quantize(CENTS, rounding=ROUND_HALF_UP)


def lowest_offer(offers):
    """
    Cheapest offer by price per unit.

    Ties go to the earliest submission, then the lowest id, so the result
    never depends on the order rows come back in.
    """
    if not offers:
        return None
    return min(offers, key=lambda offer: (Decimal(offer.price_per_unit), offer.created_at, offer.id))


class SelectionEngine:

    def __init__(self, bids, offers, notifier=None, clock=utcnow, default_delivery_time='3'):
        if bids.session is not offers.session:
            raise ValueError("BidStore and OfferStore must share one session")
        self.bids = bids
        self.offers = offers
        self.session = offers.session
        self.notifier = notifier
        self.clock = clock
        self.default_delivery_time = default_delivery_time

    # --- manual path ------------------------------------------------------

    def select_offer(self, offer_id, identity):
        """
        Accept ``offer_id`` on behalf of the school identified by ``identity``
        and reject its siblings.

        Preconditions are checked in order and each failure exits at once:
        NotFound, then Forbidden (caller does not own the bid request), then
        InvalidState (deadline not reached). Selecting the offer that is
        already accepted is a no-op that returns it; any other offer on an
        awarded item raises Conflict.

        Returns:
            SupplierOffer: the accepted offer, freshly loaded
        """
        try:
            offer = self.offers.get(offer_id)
            if offer is None:
                raise NotFound("Offer not found")

            bid_request = self.bids.get_request_for_item(offer.bid_item_id)
            if bid_request is None or bid_request.school_id != identity.id:
                logger.warning(f"User {identity.id} tried to select offer {offer_id} on a bid they do not own")
                raise Forbidden("You are not allowed to select offers for this bid request")

            if bid_request.is_open(self.clock()):
                raise InvalidState("Cannot select an offer before the bid deadline closes")

            if offer.status == OFFER_ACCEPTED:
                logger.info(f"Offer {offer_id} is already accepted; nothing to do")
                return offer
            if offer.status == OFFER_REJECTED:
                raise Conflict("This offer has already been rejected")

            bid_item_id = offer.bid_item_id
            self.session.rollback()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Store failure while loading offer {offer_id}: {e}")
            raise Unavailable("Store unavailable while loading the offer") from e

        notice = None
        with atomic(self.session, f'manual award of offer {offer_id}'):
            item = self.bids.lock_item(bid_item_id)
            if item is None:
                raise NotFound("Bid item not found")

            accepted = self.offers.accepted_for_item(bid_item_id)
            if accepted is not None and accepted.id != offer_id:
                raise Conflict("Another offer has already been accepted for this item")

            if accepted is None:
                target = next((o for o in self.offers.for_item(bid_item_id) if o.id == offer_id), None)
                if target is None or target.status != OFFER_PENDING:
                    raise Conflict("This offer is no longer pending")
                notice = self._apply_award(item, target)

        if notice is not None:
            logger.info(f"Offer {offer_id} accepted for item {bid_item_id} by school {identity.id} (manual)")
            self._notify(notice)
        return self.offers.get(offer_id)

    # --- automatic path ---------------------------------------------------

    def run_auto_selection(self):
        """
        Award the lowest-priced offer on every bid item whose deadline has
        passed without an accepted offer.

        Each item is its own transaction; a failure on one item is logged and
        the sweep moves on. A failing discovery query aborts the run with
        Unavailable. Safe to re-run: awarded items drop out of discovery.

        Returns:
            dict: run summary with counts and the awards made
        """
        now = self.clock()
        try:
            candidate_ids = [item.id for item in self.bids.items_awaiting_award(now)]
            self.session.rollback()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Auto-selection discovery failed: {e}")
            raise Unavailable("Could not load bid items awaiting award") from e

        report = {
            'run_at': format_datetime(now),
            'candidates': len(candidate_ids),
            'awarded': 0,
            'skipped': 0,
            'failed': 0,
            'awards': [],
        }
        logger.info(f"Auto-selection started: {len(candidate_ids)} candidate items")

        for bid_item_id in candidate_ids:
            try:
                award = self._auto_award_item(bid_item_id, now)
            except (ProcurementError, SQLAlchemyError):
                self.session.rollback()
                report['failed'] += 1
                logger.exception(f"Auto-selection failed for item {bid_item_id}")
                continue

            if award is None:
                report['skipped'] += 1
            else:
                report['awarded'] += 1
                report['awards'].append(award)

        logger.info(
            f"Auto-selection completed at {report['run_at']}: {report['candidates']} candidates, "
            f"{report['awarded']} awarded, {report['skipped']} skipped, {report['failed']} failed"
        )
        return report

    def _auto_award_item(self, bid_item_id, now):
        notice = None
        with atomic(self.session, f'auto award for item {bid_item_id}'):
            item = self.bids.lock_item(bid_item_id)
            if item is None:
                return None

            bid_request = self.bids.get_request(item.bid_request_id)
            if bid_request is None or not bid_request.deadline < now:
                return None

            # Someone else may have awarded it since discovery
            if self.offers.accepted_for_item(bid_item_id) is not None:
                return None

            pending = [o for o in self.offers.for_item(bid_item_id) if o.status == OFFER_PENDING]
            winner = lowest_offer(pending)
            if winner is None:
                logger.debug(f"Item {bid_item_id} has no pending offers; skipping")
                return None

            notice = self._apply_award(item, winner, bid_request)
            award = {
                'bid_item_id': bid_item_id,
                'offer_id': winner.id,
                'supplier_id': winner.supplier_id,
                'price_per_unit': format_decimal(winner.price_per_unit),
                'total_price': format_decimal(notice.total_price),
            }

        logger.info(f"Offer {award['offer_id']} selected as winner for item {bid_item_id} (auto)")
        self._notify(notice)
        return award

    # --- shared -----------------------------------------------------------

    def _apply_award(self, item, winner, bid_request=None):
        """Write the award inside the caller's transaction and build the notice."""
        total = compute_total(winner.price_per_unit, item.quantity)
        delivery_time = winner.delivery_time or self.default_delivery_time

        if not self.offers.accept(winner.id, total, delivery_time):
            raise Conflict("This offer is no longer pending")
        rejected = self.offers.reject_siblings(item.id, winner.id)
        logger.debug(f"Rejected {rejected} sibling offers on item {item.id}")

        if bid_request is None:
            bid_request = self.bids.get_request(item.bid_request_id)
        return AwardNotice(
            offer_id=winner.id,
            recipient=recipient_for(winner.supplier),
            item_name=item.item_name,
            quantity=format_decimal(item.quantity),
            unit=item.unit,
            total_price=total,
            bid_title=bid_request.title if bid_request else '',
        )

    def _notify(self, notice):
        if self.notifier is None:
            return
        try:
            self.notifier.notify_award(notice)
        except Exception:
            # The award is already committed
            logger.exception(f"Award notification for offer {notice.offer_id} failed")
