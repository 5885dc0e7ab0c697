# procurement/models/delivery.py

from .base import db
from ..services.formatting import utcnow, format_datetime, format_decimal

DELIVERY_IN_PROGRESS = 'in_progress'
DELIVERY_DELIVERED = 'delivered'
DELIVERY_CONFIRMED = 'confirmed'

PAYMENT_PENDING = 'pending'
PAYMENT_PAID = 'paid'
PAYMENT_FAILED = 'failed'
PAYMENT_METHODS = ('mobile_money', 'bank_transfer')


class Delivery(db.Model):
    __tablename__ = 'deliveries'

    id = db.Column(db.Integer, primary_key=True)
    offer_id = db.Column(db.Integer, db.ForeignKey('supplier_offers.id'), unique=True, nullable=False)
    status = db.Column(db.String(20), default=DELIVERY_IN_PROGRESS, nullable=False)
    delivery_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    offer = db.relationship('SupplierOffer')

    def to_dict(self):
        return {
            'id': self.id,
            'offer_id': self.offer_id,
            'status': self.status,
            'delivery_notes': self.delivery_notes,
            'created_at': format_datetime(self.created_at),
            'updated_at': format_datetime(self.updated_at),
        }


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    offer_id = db.Column(db.Integer, db.ForeignKey('supplier_offers.id'), unique=True, nullable=False)
    delivery_id = db.Column(db.Integer, db.ForeignKey('deliveries.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), default=PAYMENT_PENDING, nullable=False)
    transaction_reference = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'offer_id': self.offer_id,
            'delivery_id': self.delivery_id,
            'school_id': self.school_id,
            'total_amount': format_decimal(self.total_amount),
            'payment_method': self.payment_method,
            'status': self.status,
            'transaction_reference': self.transaction_reference,
            'created_at': format_datetime(self.created_at),
        }
