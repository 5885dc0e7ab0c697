# procurement/models/supplier_profile.py

from .base import db
from ..services.formatting import utcnow, format_datetime

PROFILE_PENDING = 'pending'
PROFILE_VERIFIED = 'verified'
PROFILE_REJECTED = 'rejected'


class SupplierProfile(db.Model):
    __tablename__ = 'supplier_profiles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    business_name = db.Column(db.String(200), nullable=False)
    registration_number = db.Column(db.String(64), nullable=False)
    tax_id = db.Column(db.String(64), nullable=False)
    contact_person = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False)
    momo_number = db.Column(db.String(32))
    bank_account = db.Column(db.String(64))
    # URLs issued by the document store; upload happens elsewhere
    fda_license_url = db.Column(db.String(500))
    registration_certificate_url = db.Column(db.String(500))
    owner_id_url = db.Column(db.String(500))
    verification_status = db.Column(db.String(20), default=PROFILE_PENDING, nullable=False)
    rejection_reason = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', backref=db.backref('supplier_profile', uselist=False))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'business_name': self.business_name,
            'registration_number': self.registration_number,
            'tax_id': self.tax_id,
            'contact_person': self.contact_person,
            'phone_number': self.phone_number,
            'momo_number': self.momo_number,
            'bank_account': self.bank_account,
            'fda_license_url': self.fda_license_url,
            'registration_certificate_url': self.registration_certificate_url,
            'owner_id_url': self.owner_id_url,
            'verification_status': self.verification_status,
            'rejection_reason': self.rejection_reason,
            'submitted_at': format_datetime(self.submitted_at),
        }
