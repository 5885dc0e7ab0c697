# procurement/routes/bid_requests.py
from flask import Blueprint, jsonify
from flask_login import login_required
import logging

from ..errors import NotFound
from ..middleware.auth import current_identity, school_required
from ..models import db
from ..services.formatting import utcnow
from ..services.factory import bidding_service
from ..services.stores import BidStore
from . import get_json_body

bid_requests_bp = Blueprint('bid_requests', __name__)
logger = logging.getLogger(__name__)


@bid_requests_bp.route('', methods=['POST'])
@login_required
@school_required
def create_bid_request():
    """Create a bid request with its items and announce it to suppliers"""
    data = get_json_body()
    bid_request = bidding_service().create_bid_request(
        current_identity(),
        title=data.get('title'),
        description=data.get('description'),
        deadline=data.get('deadline'),
        items=data.get('items'),
        budget=data.get('budget'),
    )
    return jsonify({
        'message': 'Bid request created successfully.',
        'bid_request': bid_request.to_dict(),
    }), 201


@bid_requests_bp.route('/active', methods=['GET'])
@login_required
def get_active_bid_requests():
    """Bid requests whose deadline is still in the future"""
    bid_requests = BidStore(db.session).active_requests(utcnow())
    return jsonify({
        'active_bids': [br.to_dict(include_school=True) for br in bid_requests]
    })


@bid_requests_bp.route('/my-bids', methods=['GET'])
@login_required
@school_required
def get_my_bids():
    """The caller's bid requests with items, offers and suppliers nested"""
    bid_requests = BidStore(db.session).requests_for_school(current_identity().id)
    result = []
    for bid_request in bid_requests:
        data = bid_request.to_dict(include_items=False)
        data['items'] = [item.to_dict(include_offers=True) for item in bid_request.items]
        result.append(data)
    return jsonify({'bid_requests': result})


@bid_requests_bp.route('/<int:bid_request_id>', methods=['GET'])
@login_required
def get_bid_request(bid_request_id):
    """A single bid request with its items"""
    bid_request = BidStore(db.session).get_request(bid_request_id)
    if bid_request is None:
        raise NotFound("Bid request not found")
    return jsonify({'bid_request': bid_request.to_dict(include_school=True)})
