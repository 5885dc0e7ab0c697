# procurement/routes/admin.py
from flask import Blueprint, jsonify, request
from flask_login import login_required
import logging

from ..errors import InvalidState, NotFound
from ..models import db, User, SupplierProfile
from ..models.supplier_profile import PROFILE_PENDING, PROFILE_REJECTED, PROFILE_VERIFIED
from ..middleware.auth import admin_required
from ..services.stores import BidStore, atomic

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


def _get_supplier(user_id):
    user = db.session.get(User, user_id)
    if user is None or user.role != 'supplier':
        raise NotFound("Supplier not found")
    return user


@admin_bp.route('/suppliers/pending', methods=['GET'])
@login_required
@admin_required
def get_pending_suppliers():
    """Suppliers whose KYC profile awaits review"""
    profiles = (
        SupplierProfile.query
        .filter_by(verification_status=PROFILE_PENDING)
        .order_by(SupplierProfile.submitted_at.asc())
        .all()
    )
    result = []
    for profile in profiles:
        data = profile.user.to_dict()
        data['profile'] = profile.to_dict()
        result.append(data)
    return jsonify({'suppliers': result})


@admin_bp.route('/suppliers/<int:user_id>', methods=['GET'])
@login_required
@admin_required
def get_supplier(user_id):
    user = _get_supplier(user_id)
    data = user.to_dict()
    data['profile'] = user.supplier_profile.to_dict() if user.supplier_profile else None
    return jsonify({'supplier': data})


@admin_bp.route('/suppliers/<int:user_id>/verify', methods=['POST'])
@login_required
@admin_required
def verify_supplier(user_id):
    """Mark a supplier verified so they receive new-bid announcements"""
    user = _get_supplier(user_id)
    if user.supplier_profile is None:
        raise InvalidState("Supplier has not submitted a profile")

    with atomic(db.session, 'supplier verification'):
        user.verified = True
        user.supplier_profile.verification_status = PROFILE_VERIFIED
        user.supplier_profile.rejection_reason = None

    logger.info(f"Supplier {user_id} verified")
    return jsonify({'message': 'Supplier verified.', 'supplier': user.to_dict()})


@admin_bp.route('/suppliers/<int:user_id>/reject', methods=['POST'])
@login_required
@admin_required
def reject_supplier(user_id):
    user = _get_supplier(user_id)
    if user.supplier_profile is None:
        raise InvalidState("Supplier has not submitted a profile")
    data = request.get_json(silent=True) or {}

    with atomic(db.session, 'supplier rejection'):
        user.verified = False
        user.supplier_profile.verification_status = PROFILE_REJECTED
        user.supplier_profile.rejection_reason = (data.get('reason') or '').strip() or None

    logger.info(f"Supplier {user_id} rejected")
    return jsonify({'message': 'Supplier rejected.', 'supplier': user.to_dict()})


@admin_bp.route('/users', methods=['GET'])
@login_required
@admin_required
def get_users():
    query = User.query
    role = request.args.get('role')
    if role:
        query = query.filter_by(role=role)
    users = query.order_by(User.created_at.desc()).all()
    return jsonify({'users': [user.to_dict() for user in users]})


@admin_bp.route('/bid-requests', methods=['GET'])
@login_required
@admin_required
def get_all_bid_requests():
    bid_requests = BidStore(db.session).all_requests()
    return jsonify({'bid_requests': [br.to_dict(include_school=True) for br in bid_requests]})
