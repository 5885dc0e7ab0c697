# procurement/services/fulfillment.py
# After the award: delivery tracking and payment records (no payment gateway)

import logging
import secrets
import string

from sqlalchemy import select

from ..errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from ..models import (
    Delivery,
    Payment,
    SupplierOffer,
    OFFER_ACCEPTED,
)
from ..models.delivery import (
    DELIVERY_CONFIRMED,
    DELIVERY_DELIVERED,
    DELIVERY_IN_PROGRESS,
    PAYMENT_FAILED,
    PAYMENT_METHODS,
    PAYMENT_PAID,
    PAYMENT_PENDING,
)
from .bidding import clean_text
from .formatting import utcnow, to_id
from .selection import compute_total
from .stores import atomic

logger = logging.getLogger(__name__)


def generate_transaction_reference(now=None):
    now = now or utcnow()
    suffix = ''.join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"TXN-{int(now.timestamp() * 1000)}-{suffix}"


def _checked_id(value, field_name):
    try:
        return to_id(value, field_name)
    except ValueError as e:
        raise ValidationError(str(e))


class FulfillmentService:

    def __init__(self, session, bids, clock=utcnow):
        self.session = session
        self.bids = bids
        self.clock = clock

    def _school_id_for_offer(self, offer):
        bid_request = self.bids.get_request_for_item(offer.bid_item_id)
        return bid_request.school_id if bid_request else None

    def _get_delivery(self, delivery_id):
        delivery_id = _checked_id(delivery_id, 'Delivery id')
        delivery = self.session.get(Delivery, delivery_id, populate_existing=True)
        if delivery is None:
            raise NotFound("Delivery not found")
        return delivery

    # --- deliveries -------------------------------------------------------

    def start_delivery(self, identity, offer_id):
        offer_id = _checked_id(offer_id, 'Offer id')
        offer = self.session.get(SupplierOffer, offer_id)
        if offer is None:
            raise NotFound("Offer not found")
        if offer.supplier_id != identity.id:
            raise Forbidden("Only the winning supplier can start this delivery")
        if offer.status != OFFER_ACCEPTED:
            raise InvalidState("Only accepted offers can be delivered")
        existing = self.session.execute(
            select(Delivery).where(Delivery.offer_id == offer_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise Conflict("A delivery already exists for this offer")

        with atomic(self.session, 'delivery start'):
            delivery = Delivery(offer_id=offer_id, status=DELIVERY_IN_PROGRESS)
            self.session.add(delivery)

        logger.info(f"Delivery {delivery.id} started for offer {offer_id}")
        return delivery

    def complete_delivery(self, identity, delivery_id, notes=None):
        notes = clean_text(notes, 'Delivery notes', required=False)
        delivery = self._get_delivery(delivery_id)
        if delivery.offer.supplier_id != identity.id:
            raise Forbidden("Only the delivering supplier can complete this delivery")
        if delivery.status != DELIVERY_IN_PROGRESS:
            raise InvalidState("Delivery is not in progress")

        with atomic(self.session, 'delivery completion'):
            delivery.status = DELIVERY_DELIVERED
            delivery.delivery_notes = notes

        logger.info(f"Delivery {delivery_id} marked as delivered")
        return delivery

    def confirm_delivery(self, identity, delivery_id):
        delivery = self._get_delivery(delivery_id)
        if self._school_id_for_offer(delivery.offer) != identity.id:
            raise Forbidden("Only the ordering school can confirm this delivery")
        if delivery.status != DELIVERY_DELIVERED:
            raise InvalidState("Delivery is not yet marked as completed by the supplier")

        with atomic(self.session, 'delivery confirmation'):
            delivery.status = DELIVERY_CONFIRMED

        logger.info(f"Delivery {delivery_id} confirmed by school {identity.id}")
        return delivery

    # --- payments ---------------------------------------------------------

    def record_payment(self, identity, delivery_id, payment_method):
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")

        delivery = self._get_delivery(delivery_id)
        offer = delivery.offer
        if self._school_id_for_offer(offer) != identity.id:
            raise Forbidden("Only the ordering school can pay for this delivery")
        if delivery.status not in (DELIVERY_DELIVERED, DELIVERY_CONFIRMED):
            raise InvalidState("Payment cannot be made until delivery is completed")
        existing = self.session.execute(
            select(Payment).where(Payment.offer_id == offer.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise Conflict("A payment has already been recorded for this offer")

        total = offer.total_price
        if total is None:
            total = compute_total(offer.price_per_unit, self.bids.get_item(offer.bid_item_id).quantity)

        with atomic(self.session, 'payment record'):
            payment = Payment(
                offer_id=offer.id,
                delivery_id=delivery.id,
                school_id=identity.id,
                total_amount=total,
                payment_method=payment_method,
                status=PAYMENT_PENDING,
                transaction_reference=generate_transaction_reference(self.clock()),
            )
            self.session.add(payment)

        logger.info(f"Payment {payment.transaction_reference} recorded for offer {offer.id}: {total}")
        return payment

    def get_payment(self, identity, reference):
        payment = self.session.execute(
            select(Payment).where(Payment.transaction_reference == reference)
        ).scalar_one_or_none()
        if payment is None:
            raise NotFound("Payment not found")
        if identity.role != 'admin' and payment.school_id != identity.id:
            raise Forbidden("You are not allowed to view this payment")
        return payment

    def update_payment_status(self, reference, status):
        """Record the outcome reported by the payment provider."""
        if status not in (PAYMENT_PAID, PAYMENT_FAILED):
            raise ValidationError("Status must be 'paid' or 'failed'")
        payment = self.session.execute(
            select(Payment).where(Payment.transaction_reference == reference)
        ).scalar_one_or_none()
        if payment is None:
            raise NotFound("Payment not found")
        if payment.status != PAYMENT_PENDING:
            raise InvalidState(f"Payment is already {payment.status}")

        with atomic(self.session, 'payment status update'):
            payment.status = status

        logger.info(f"Payment {reference} marked as {status}")
        return payment
