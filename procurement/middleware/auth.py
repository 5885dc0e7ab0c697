# procurement/middleware/auth.py

from collections import namedtuple
from datetime import timedelta
from functools import wraps
import logging

from flask import current_app, jsonify, request
from flask_login import current_user
from jose import JWTError, jwt

from ..models import db, User
from ..services.formatting import utcnow

logger = logging.getLogger(__name__)

# Explicit caller identity handed to every core operation
Identity = namedtuple('Identity', ['id', 'role'])


def create_access_token(user, expires_delta=None):
    """Issue a signed bearer token carrying the user id and role."""
    if expires_delta is None:
        expires_delta = timedelta(days=current_app.config.get('JWT_EXPIRES_DAYS', 7))
    payload = {
        'sub': str(user.id),
        'role': user.role,
        'verified': user.verified,
        'exp': utcnow() + expires_delta,
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET'],
        algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256'),
    )


def decode_access_token(token):
    """Return the token payload, or None if it is invalid or expired."""
    try:
        return jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')],
        )
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


def load_user_from_request(req):
    """Flask-Login request loader: resolve 'Authorization: Bearer <jwt>'."""
    auth_header = req.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None

    payload = decode_access_token(auth_header.split(' ', 1)[1].strip())
    if not payload or not payload.get('sub'):
        return None

    try:
        user_id = int(payload['sub'])
    except (TypeError, ValueError):
        logger.warning(f"Token subject is not a user id: {payload.get('sub')!r}")
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def current_identity():
    """Identity of the authenticated caller. Use after @login_required."""
    return Identity(id=current_user.id, role=current_user.role)


def roles_required(*roles):
    """
    Decorator to restrict a route to the given roles.
    This must be placed AFTER the @login_required decorator.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'error': 'Authentication required', 'code': 'UNAUTHORIZED'}), 401

            if current_user.role not in roles:
                logger.warning(
                    f"User {current_user.id} (role: {current_user.role}) attempted to access "
                    f"{request.endpoint}, requires {list(roles)}"
                )
                return jsonify({'error': 'Access denied', 'code': 'FORBIDDEN'}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = roles_required('admin')
school_required = roles_required('school')
supplier_required = roles_required('supplier')
