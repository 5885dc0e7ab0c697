# procurement/routes/supplier.py
from flask import Blueprint, jsonify
from flask_login import login_required, current_user
import logging

from ..errors import Conflict, NotFound, ValidationError
from ..middleware.auth import supplier_required
from ..models import db, SupplierProfile
from ..services.stores import atomic
from . import get_json_body

supplier_bp = Blueprint('supplier', __name__)
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('business_name', 'registration_number', 'tax_id', 'contact_person', 'phone_number')
OPTIONAL_FIELDS = (
    'momo_number',
    'bank_account',
    'fda_license_url',
    'registration_certificate_url',
    'owner_id_url',
)


@supplier_bp.route('/profile', methods=['POST'])
@login_required
@supplier_required
def submit_profile():
    """Submit KYC details once; an admin verifies them later"""
    data = get_json_body()

    if current_user.supplier_profile is not None:
        raise Conflict("Profile already submitted")

    missing = [field for field in REQUIRED_FIELDS if not str(data.get(field) or '').strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    values = {field: str(data[field]).strip() for field in REQUIRED_FIELDS}
    values.update({
        field: str(data[field]).strip()
        for field in OPTIONAL_FIELDS
        if data.get(field)
    })

    with atomic(db.session, 'supplier profile submission'):
        profile = SupplierProfile(user_id=current_user.id, **values)
        db.session.add(profile)

    logger.info(f"Supplier {current_user.id} submitted KYC profile {profile.id}")
    return jsonify({'message': 'KYC submitted. Await admin verification.', 'profile': profile.to_dict()}), 201


@supplier_bp.route('/profile', methods=['GET'])
@login_required
@supplier_required
def get_profile():
    profile = current_user.supplier_profile
    if profile is None:
        raise NotFound("No profile submitted yet")
    return jsonify({'profile': profile.to_dict()})
