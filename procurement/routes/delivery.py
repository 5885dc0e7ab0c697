# procurement/routes/delivery.py
from flask import Blueprint, jsonify
from flask_login import login_required

from ..middleware.auth import current_identity, school_required, supplier_required
from ..services.factory import fulfillment_service
from . import get_json_body

delivery_bp = Blueprint('delivery', __name__)


@delivery_bp.route('/start', methods=['POST'])
@login_required
@supplier_required
def start_delivery():
    data = get_json_body()
    delivery = fulfillment_service().start_delivery(current_identity(), data.get('offer_id'))
    return jsonify({'message': 'Delivery started.', 'delivery': delivery.to_dict()}), 201


@delivery_bp.route('/complete', methods=['POST'])
@login_required
@supplier_required
def complete_delivery():
    data = get_json_body()
    delivery = fulfillment_service().complete_delivery(
        current_identity(), data.get('delivery_id'), notes=data.get('notes')
    )
    return jsonify({'message': 'Delivery marked as completed.', 'delivery': delivery.to_dict()})


@delivery_bp.route('/confirm', methods=['POST'])
@login_required
@school_required
def confirm_delivery():
    data = get_json_body()
    delivery = fulfillment_service().confirm_delivery(current_identity(), data.get('delivery_id'))
    return jsonify({'message': 'Delivery confirmed. Proceed to payment.', 'delivery': delivery.to_dict()})
