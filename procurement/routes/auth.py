# procurement/routes/auth.py
import logging
import re

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from ..errors import Conflict, ValidationError
from ..middleware.auth import create_access_token
from ..models import db, User
from ..services.stores import atomic
from . import get_json_body

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
SELF_SERVICE_ROLES = ('school', 'supplier')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a school or supplier account (suppliers start unverified)"""
    data = get_json_body()

    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    role = (data.get('role') or '').strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValidationError("Please enter a valid email address")
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Role must be 'school' or 'supplier'")

    if User.query.filter_by(email=email).first():
        raise Conflict("Email already registered")

    with atomic(db.session, 'registration'):
        user = User(
            email=email,
            role=role,
            name=(data.get('name') or '').strip() or None,
            phone=(data.get('phone') or '').strip() or None,
            verified=False,
        )
        user.set_password(password)
        db.session.add(user)

    logger.info(f"Registered {role} account {user.id} ({email})")
    return jsonify({'message': 'User registered. Await verification.', 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Exchange email and password for a bearer token"""
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.warning(f"Login failed for '{email}'")
        return jsonify({'error': 'Invalid email or password', 'code': 'UNAUTHORIZED'}), 401

    if not user.is_active:
        logger.warning(f"Login refused for disabled account '{email}'")
        return jsonify({'error': 'Account is disabled', 'code': 'UNAUTHORIZED'}), 401

    token = create_access_token(user)
    logger.info(f"User {user.id} logged in")
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Current user, with KYC status for suppliers"""
    data = current_user.to_dict()
    profile = current_user.supplier_profile
    data['supplier_profile'] = (
        {'verification_status': profile.verification_status} if profile else None
    )
    return jsonify({'user': data})
