# procurement/models/supplier_offer.py

from sqlalchemy import text

from .base import db
from ..services.formatting import utcnow, format_datetime, format_decimal

OFFER_PENDING = 'pending'
OFFER_ACCEPTED = 'accepted'
OFFER_REJECTED = 'rejected'


class SupplierOffer(db.Model):
    __tablename__ = 'supplier_offers'

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    bid_item_id = db.Column(db.Integer, db.ForeignKey('bid_items.id'), nullable=False, index=True)
    price_per_unit = db.Column(db.Numeric(10, 2), nullable=False)
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), default=OFFER_PENDING, nullable=False)
    total_price = db.Column(db.Numeric(12, 2))
    delivery_time = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    supplier = db.relationship('User', lazy='joined')

    __table_args__ = (
        db.UniqueConstraint('supplier_id', 'bid_item_id', name='uq_offer_supplier_item'),
        # At most one accepted offer per bid item
        db.Index(
            'uq_offer_accepted_per_item',
            'bid_item_id',
            unique=True,
            sqlite_where=text("status = 'accepted'"),
            postgresql_where=text("status = 'accepted'"),
        ),
        db.CheckConstraint('price_per_unit > 0', name='ck_offer_price_positive'),
    )

    def to_dict(self, include_supplier=False):
        data = {
            'id': self.id,
            'supplier_id': self.supplier_id,
            'bid_item_id': self.bid_item_id,
            'price_per_unit': format_decimal(self.price_per_unit),
            'notes': self.notes,
            'status': self.status,
            'total_price': format_decimal(self.total_price),
            'delivery_time': self.delivery_time,
            'created_at': format_datetime(self.created_at),
        }
        if include_supplier and self.supplier:
            data['supplier'] = self.supplier.to_public_dict()
        return data

    def __repr__(self):
        return f'<SupplierOffer id={self.id} item={self.bid_item_id} status={self.status}>'
