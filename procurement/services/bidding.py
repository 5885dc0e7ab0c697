# procurement/services/bidding.py
# Producers of selection inputs: bid requests from schools, offers from suppliers

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import Conflict, Forbidden, InvalidState, NotFound, Unavailable, ValidationError
from ..models import BidItem, BidRequest, SupplierOffer, OFFER_PENDING
from .formatting import utcnow, parse_deadline, to_decimal, to_id, DEFAULT_TIMEZONE
from .notifications import recipient_for
from .stores import atomic

logger = logging.getLogger(__name__)


def clean_text(value, field_name, required=True, max_length=None):
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    value = value.strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return value


def _positive_decimal(value, field_name):
    try:
        number = to_decimal(value, field_name)
    except ValueError as e:
        raise ValidationError(str(e))
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


class BiddingService:

    def __init__(self, bids, offers, users, notifier=None, clock=utcnow,
                 timezone_name=DEFAULT_TIMEZONE, require_verified_suppliers=False):
        self.bids = bids
        self.offers = offers
        self.users = users
        self.notifier = notifier
        self.clock = clock
        self.timezone_name = timezone_name
        self.require_verified_suppliers = require_verified_suppliers

    def create_bid_request(self, identity, title, description, deadline, items, budget=None):
        """
        Create a bid request with its items in one unit, then announce it to
        every verified supplier. The announcement is best-effort and never
        affects the result.
        """
        if identity.role != 'school':
            raise Forbidden("Only schools can create bid requests")

        title = clean_text(title, 'Title', max_length=200)
        description = clean_text(description, 'Description', required=False)
        if isinstance(budget, (int, float)) and not isinstance(budget, bool):
            budget = str(budget)
        budget = clean_text(budget, 'Budget', required=False, max_length=64)

        try:
            deadline_utc = parse_deadline(deadline, self.timezone_name)
        except ValueError as e:
            raise ValidationError(str(e))
        if deadline_utc <= self.clock():
            raise ValidationError("Deadline must be in the future")

        if not isinstance(items, list) or not items:
            raise ValidationError("At least one item is required")

        bid_items = []
        for index, raw in enumerate(items, start=1):
            if not isinstance(raw, dict):
                raise ValidationError(f"Item {index} must be an object")
            bid_items.append(BidItem(
                item_name=clean_text(raw.get('item_name', raw.get('itemName')), f'Item {index} name', max_length=120),
                quantity=_positive_decimal(raw.get('quantity'), f'Item {index} quantity'),
                unit=clean_text(raw.get('unit'), f'Item {index} unit', max_length=32),
                category=clean_text(raw.get('category'), f'Item {index} category', required=False, max_length=64),
                description=clean_text(raw.get('description'), f'Item {index} description', required=False),
            ))

        with atomic(self.bids.session, 'bid request creation'):
            bid_request = self.bids.add_request(BidRequest(
                school_id=identity.id,
                title=title,
                description=description,
                budget=budget,
                deadline=deadline_utc,
                items=bid_items,
            ))

        logger.info(f"School {identity.id} created bid request {bid_request.id} with {len(bid_items)} items")
        self._announce(bid_request)
        return bid_request

    def submit_offer(self, identity, bid_item_id, price_per_unit, notes=None, delivery_time=None):
        """Record a pending offer from a supplier on an open bid item."""
        if identity.role != 'supplier':
            raise Forbidden("Only suppliers can submit offers")

        if self.require_verified_suppliers:
            supplier = self.users.get(identity.id)
            if supplier is None or not supplier.verified:
                raise Forbidden("Your supplier account has not been verified yet")

        try:
            bid_item_id = to_id(bid_item_id, 'Bid item id')
        except ValueError as e:
            raise ValidationError(str(e))
        price = _positive_decimal(price_per_unit, 'Price per unit')
        notes = clean_text(notes, 'Notes', required=False)
        delivery_time = clean_text(delivery_time, 'Delivery time', required=False, max_length=64)

        try:
            bid_item = self.bids.get_item(bid_item_id)
            if bid_item is None:
                raise NotFound("Bid item not found")
            bid_request = self.bids.get_request(bid_item.bid_request_id)
            if not bid_request.is_open(self.clock()):
                raise InvalidState("Bid deadline has passed")
            if self.offers.find_by_supplier(bid_item_id, identity.id) is not None:
                raise Conflict("You have already submitted an offer for this item")
        except SQLAlchemyError as e:
            self.offers.session.rollback()
            raise Unavailable("Store unavailable while checking the bid item") from e

        # The (supplier, item) unique constraint turns a racing duplicate into Conflict
        with atomic(self.offers.session, 'offer submission'):
            offer = self.offers.add(SupplierOffer(
                supplier_id=identity.id,
                bid_item_id=bid_item_id,
                price_per_unit=price,
                notes=notes,
                delivery_time=delivery_time,
                status=OFFER_PENDING,
                created_at=self.clock(),
            ))

        logger.info(f"Supplier {identity.id} submitted offer {offer.id} on item {bid_item_id}")
        return offer

    def _announce(self, bid_request):
        if self.notifier is None:
            return
        try:
            recipients = [recipient_for(user) for user in self.users.verified_suppliers()]
            self.notifier.notify_new_bid(bid_request.title, bid_request.deadline, recipients)
        except Exception:
            self.users.session.rollback()
            logger.exception(f"Could not announce bid request {bid_request.id} to suppliers")
