# procurement/routes/payment.py
from flask import Blueprint, jsonify
from flask_login import login_required

from ..middleware.auth import admin_required, current_identity, school_required
from ..services.factory import fulfillment_service
from . import get_json_body

payment_bp = Blueprint('payment', __name__)


@payment_bp.route('', methods=['POST'])
@login_required
@school_required
def record_payment():
    """Record a pending payment for a completed delivery"""
    data = get_json_body()
    payment = fulfillment_service().record_payment(
        current_identity(), data.get('delivery_id'), data.get('payment_method')
    )
    return jsonify({
        'message': 'Payment recorded.',
        'payment': payment.to_dict(),
        'reference': payment.transaction_reference,
    }), 201


@payment_bp.route('/<reference>', methods=['GET'])
@login_required
def get_payment(reference):
    payment = fulfillment_service().get_payment(current_identity(), reference)
    return jsonify({'payment': payment.to_dict()})


@payment_bp.route('/<reference>/status', methods=['POST'])
@login_required
@admin_required
def update_payment_status(reference):
    """Record the provider's outcome for a pending payment"""
    data = get_json_body()
    payment = fulfillment_service().update_payment_status(reference, data.get('status'))
    return jsonify({'message': f'Payment marked as {payment.status}.', 'payment': payment.to_dict()})
