from fieldservice import db
from fieldservice.models.types import GUID, JSONType, iso
import uuid
from datetime import datetime, timezone

class Client(db.Model):
    """Customer record; owns properties, jobs, estimates and invoices"""
    __tablename__ = 'clients'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)

    # Contact Details
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    company_name = db.Column(db.String(255))
    email = db.Column(db.String(255), index=True)
    phone = db.Column(db.String(50))

    # Billing Address
    address_line_1 = db.Column(db.String(255))
    address_line_2 = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(50))
    postal_code = db.Column(db.String(20))

    # Meta
    source = db.Column(db.String(50))
    status = db.Column(db.String(50), default='active', index=True)  # 'active', 'inactive'
    tags = db.Column(JSONType, default=list)
    notes = db.Column(db.Text)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    properties = db.relationship('Property', backref='client', lazy='dynamic', cascade='all, delete-orphan')
    jobs = db.relationship('Job', backref='client', lazy='dynamic', cascade='all, delete-orphan')
    estimates = db.relationship('Estimate', backref='client', lazy='dynamic', cascade='all, delete-orphan')
    invoices = db.relationship('Invoice', backref='client', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self):
        return {
            'id': str(self.id),
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'company_name': self.company_name,
            'email': self.email,
            'phone': self.phone,
            'address_line_1': self.address_line_1,
            'address_line_2': self.address_line_2,
            'city': self.city,
            'state': self.state,
            'postal_code': self.postal_code,
            'source': self.source,
            'status': self.status,
            'tags': self.tags or [],
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Client {self.full_name}>'
