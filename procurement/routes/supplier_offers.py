# procurement/routes/supplier_offers.py
from flask import Blueprint, jsonify, make_response
from flask_login import login_required
import logging

from ..errors import Forbidden, InvalidState, NotFound
from ..middleware.auth import current_identity, school_required, supplier_required
from ..models import db, OFFER_ACCEPTED
from ..services.formatting import utcnow
from ..services.documents import generate_purchase_order, purchase_order_filename
from ..services.factory import bidding_service, selection_engine
from ..services.stores import BidStore, OfferStore
from . import get_json_body

supplier_offers_bp = Blueprint('supplier_offers', __name__)
logger = logging.getLogger(__name__)


def _offer_with_context(offer, bids):
    """Offer plus the item and bid request it answers"""
    data = offer.to_dict(include_supplier=True)
    item = bids.get_item(offer.bid_item_id)
    bid_request = bids.get_request(item.bid_request_id) if item else None
    data['bid_item'] = item.to_dict() if item else None
    data['bid_request'] = bid_request.to_dict(include_items=False) if bid_request else None
    return data


@supplier_offers_bp.route('', methods=['POST'])
@login_required
@supplier_required
def submit_offer():
    """Submit a price offer for an open bid item"""
    data = get_json_body()
    offer = bidding_service().submit_offer(
        current_identity(),
        bid_item_id=data.get('bid_item_id', data.get('bidItemId')),
        price_per_unit=data.get('price_per_unit', data.get('pricePerUnit')),
        notes=data.get('notes'),
        delivery_time=data.get('delivery_time'),
    )
    return jsonify({'message': 'Offer submitted successfully.', 'offer': offer.to_dict()}), 201


@supplier_offers_bp.route('/available-bids', methods=['GET'])
@login_required
@supplier_required
def get_available_bids():
    """Open bid requests, flagging items the caller already bid on"""
    identity = current_identity()
    bids = BidStore(db.session)
    offers = OfferStore(db.session)

    my_offers = {offer.bid_item_id: offer for offer in offers.for_supplier(identity.id)}
    result = []
    for bid_request in bids.active_requests(utcnow()):
        data = bid_request.to_dict(include_items=False, include_school=True)
        data['items'] = []
        for item in bid_request.items:
            item_data = item.to_dict()
            mine = my_offers.get(item.id)
            item_data['my_offer'] = mine.to_dict() if mine else None
            data['items'].append(item_data)
        result.append(data)
    return jsonify({'available_bids': result})


@supplier_offers_bp.route('/my-offers', methods=['GET'])
@login_required
@supplier_required
def get_my_offers():
    """Every offer the caller has submitted, newest first"""
    bids = BidStore(db.session)
    offers = OfferStore(db.session).for_supplier(current_identity().id)
    return jsonify({'offers': [_offer_with_context(offer, bids) for offer in offers]})


@supplier_offers_bp.route('/my-awards', methods=['GET'])
@login_required
@supplier_required
def get_my_awards():
    """Offers of the caller that won their item"""
    bids = BidStore(db.session)
    offers = OfferStore(db.session).for_supplier(current_identity().id, status=OFFER_ACCEPTED)
    return jsonify({'awards': [_offer_with_context(offer, bids) for offer in offers]})


@supplier_offers_bp.route('/school-payments', methods=['GET'])
@login_required
@school_required
def get_school_payments():
    """Accepted offers on the caller's bid requests, i.e. what the school owes"""
    bids = BidStore(db.session)
    offers = OfferStore(db.session).accepted_for_school(current_identity().id)
    return jsonify({'awarded_offers': [_offer_with_context(offer, bids) for offer in offers]})


@supplier_offers_bp.route('/select/<int:offer_id>', methods=['POST'])
@login_required
@school_required
def select_winning_offer(offer_id):
    """Accept one offer for its bid item and reject the others"""
    offer = selection_engine().select_offer(offer_id, current_identity())
    return jsonify({'message': 'Offer selected successfully.', 'offer': offer.to_dict()})


@supplier_offers_bp.route('/<int:bid_item_id>', methods=['GET'])
@login_required
def get_offers_for_bid_item(bid_item_id):
    """Offers for one item in submission order"""
    if BidStore(db.session).get_item(bid_item_id) is None:
        raise NotFound("Bid item not found")
    offers = OfferStore(db.session).for_item(bid_item_id)
    return jsonify({'offers': [offer.to_dict(include_supplier=True) for offer in offers]})


@supplier_offers_bp.route('/<int:offer_id>/purchase-order', methods=['GET'])
@login_required
def get_purchase_order(offer_id):
    """PDF purchase order for an accepted offer, for the buying school or the winning supplier"""
    identity = current_identity()
    bids = BidStore(db.session)
    offer = OfferStore(db.session).get(offer_id)
    if offer is None:
        raise NotFound("Offer not found")

    bid_item = bids.get_item(offer.bid_item_id)
    bid_request = bids.get_request(bid_item.bid_request_id)
    if identity.id not in (offer.supplier_id, bid_request.school_id):
        raise Forbidden("You are not allowed to view this purchase order")
    if offer.status != OFFER_ACCEPTED:
        raise InvalidState("Purchase orders exist only for accepted offers")

    pdf = generate_purchase_order(offer, bid_item, bid_request, bid_request.school, offer.supplier)
    response = make_response(pdf)
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'attachment; filename={purchase_order_filename(offer)}'
    return response
