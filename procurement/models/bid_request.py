# procurement/models/bid_request.py

from .base import db
from ..services.formatting import utcnow, format_datetime, format_decimal


class BidRequest(db.Model):
    __tablename__ = 'bid_requests'

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    budget = db.Column(db.String(64))
    deadline = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Items point back by foreign key only; use BidStore for reverse lookups
    items = db.relationship('BidItem', lazy='selectin', order_by='BidItem.id',
                            cascade='all, delete-orphan')
    school = db.relationship('User')

    def is_open(self, now):
        return now < self.deadline

    def to_dict(self, include_items=True, include_school=False):
        data = {
            'id': self.id,
            'school_id': self.school_id,
            'title': self.title,
            'description': self.description,
            'budget': self.budget,
            'deadline': format_datetime(self.deadline),
            'created_at': format_datetime(self.created_at),
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        if include_school and self.school:
            data['school'] = self.school.to_public_dict()
        return data

    def __repr__(self):
        return f'<BidRequest id={self.id} title={self.title!r} deadline={self.deadline}>'


class BidItem(db.Model):
    __tablename__ = 'bid_items'

    id = db.Column(db.Integer, primary_key=True)
    bid_request_id = db.Column(db.Integer, db.ForeignKey('bid_requests.id', ondelete='CASCADE'),
                               nullable=False, index=True)
    item_name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Numeric(10, 2), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    category = db.Column(db.String(64))
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    offers = db.relationship('SupplierOffer', lazy='select',
                             order_by='[SupplierOffer.created_at, SupplierOffer.id]')

    def to_dict(self, include_offers=False):
        data = {
            'id': self.id,
            'bid_request_id': self.bid_request_id,
            'item_name': self.item_name,
            'quantity': format_decimal(self.quantity),
            'unit': self.unit,
            'category': self.category,
            'description': self.description,
        }
        if include_offers:
            data['offers'] = [offer.to_dict(include_supplier=True) for offer in self.offers]
        return data

    def __repr__(self):
        return f'<BidItem id={self.id} name={self.item_name!r} qty={self.quantity}>'
