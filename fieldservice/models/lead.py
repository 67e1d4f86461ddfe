from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

LEAD_SOURCES = ('phone', 'email', 'website', 'social_media', 'referral', 'walk_in', 'advertisement', 'other')
LEAD_STATUSES = ('new', 'contacted', 'qualified', 'proposal', 'converted', 'lost')
LEAD_PRIORITIES = ('low', 'medium', 'high', 'urgent')

class Lead(db.Model):
    """Prospective customer prior to conversion to a client"""
    __tablename__ = 'leads'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)

    # Contact Details
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100))
    company_name = db.Column(db.String(255))
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    address = db.Column(db.String(255))

    # Pipeline
    source = db.Column(db.Enum(*LEAD_SOURCES, name='lead_source_enum'), nullable=False, index=True)
    status = db.Column(db.Enum(*LEAD_STATUSES, name='lead_status_enum'), default='new', index=True)
    priority = db.Column(db.Enum(*LEAD_PRIORITIES, name='lead_priority_enum'), default='medium')
    service_type = db.Column(db.String(100))
    estimated_value = db.Column(db.Numeric(12, 2))
    notes = db.Column(db.Text)

    # Conversion
    converted_client_id = db.Column(GUID, db.ForeignKey('clients.id', ondelete='SET NULL'))
    converted_at = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'first_name': self.first_name,
            'last_name': self.last_name,
            'company_name': self.company_name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'source': self.source,
            'status': self.status,
            'priority': self.priority,
            'service_type': self.service_type,
            'estimated_value': as_float(self.estimated_value),
            'notes': self.notes,
            'converted_client_id': str(self.converted_client_id) if self.converted_client_id else None,
            'converted_at': iso(self.converted_at),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Lead {self.first_name} {self.last_name or ""}>'
