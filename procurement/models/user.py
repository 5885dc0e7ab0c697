# procurement/models/user.py

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .base import db
from ..services.formatting import utcnow, format_datetime

ROLES = ('admin', 'school', 'supplier')


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), index=True, unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120))
    phone = db.Column(db.String(32))
    role = db.Column(db.String(20), nullable=False)  # 'admin', 'school', 'supplier'
    verified = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        """Creates a hashed password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Checks a password against the stored hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def display_name(self):
        if self.supplier_profile and self.supplier_profile.business_name:
            return self.supplier_profile.business_name
        return self.name or self.email

    @property
    def contact_phone(self):
        if self.supplier_profile and self.supplier_profile.phone_number:
            return self.supplier_profile.phone_number
        return self.phone

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'role': self.role,
            'verified': self.verified,
            'is_active': self.is_active,
            'created_at': format_datetime(self.created_at),
        }

    def to_public_dict(self):
        """Subset shown to other parties (e.g. a school viewing offers)."""
        return {
            'id': self.id,
            'name': self.display_name,
            'email': self.email,
            'verified': self.verified,
        }

    def __repr__(self):
        return f'<User id={self.id} email={self.email} role={self.role}>'
