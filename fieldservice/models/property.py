from fieldservice import db
from fieldservice.models.types import GUID, JSONType, iso, as_float
import uuid
from datetime import datetime, timezone

class Property(db.Model):
    """Service address belonging to a client"""
    __tablename__ = 'properties'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    client_id = db.Column(GUID, db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)

    # Address Details
    address_line_1 = db.Column(db.String(255), nullable=False)
    address_line_2 = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(50))
    postal_code = db.Column(db.String(20), index=True)

    # Geo-location
    latitude = db.Column(db.Numeric(10, 8))
    longitude = db.Column(db.Numeric(11, 8))

    # Attributes
    property_type = db.Column(db.String(50))  # 'residential', 'commercial'
    access_instructions = db.Column(db.Text)
    custom_fields = db.Column(JSONType, default=dict)
    notes = db.Column(db.Text)

    # Meta
    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    jobs = db.relationship('Job', backref='property', lazy='dynamic')

    def to_dict(self):
        return {
            'id': str(self.id),
            'client_id': str(self.client_id),
            'address_line_1': self.address_line_1,
            'address_line_2': self.address_line_2,
            'city': self.city,
            'state': self.state,
            'postal_code': self.postal_code,
            'latitude': as_float(self.latitude),
            'longitude': as_float(self.longitude),
            'property_type': self.property_type,
            'access_instructions': self.access_instructions,
            'custom_fields': self.custom_fields or {},
            'notes': self.notes,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Property {self.address_line_1}>'
