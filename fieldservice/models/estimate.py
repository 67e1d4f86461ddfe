from fieldservice import db
from fieldservice.models.types import GUID, JSONType, iso, as_float
import uuid
from datetime import datetime, timezone

ESTIMATE_STATUSES = ('draft', 'sent', 'approved', 'declined', 'expired')

class Estimate(db.Model):
    __tablename__ = 'estimates'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    estimate_number = db.Column(db.String(50), unique=True)

    client_id = db.Column(GUID, db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    job_id = db.Column(GUID, db.ForeignKey('jobs.id', ondelete='SET NULL'))

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    line_items = db.Column(JSONType, default=list)
    total = db.Column(db.Numeric(12, 2), default=0)
    status = db.Column(db.String(50), default='draft', index=True)  # see ESTIMATE_STATUSES
    valid_until = db.Column(db.Date)
    sent_at = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'estimate_number': self.estimate_number,
            'client_id': str(self.client_id),
            'job_id': str(self.job_id) if self.job_id else None,
            'title': self.title,
            'description': self.description,
            'line_items': self.line_items or [],
            'total': as_float(self.total) or 0.0,
            'status': self.status,
            'valid_until': iso(self.valid_until),
            'sent_at': iso(self.sent_at),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Estimate {self.estimate_number or self.id}>'
