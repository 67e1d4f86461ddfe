from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

class BillingEvent(db.Model):
    """Money movement (payment or refund) recorded against a job or invoice"""
    __tablename__ = 'billing_events'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    job_id = db.Column(GUID, db.ForeignKey('jobs.id', ondelete='SET NULL'), index=True)
    invoice_id = db.Column(GUID, db.ForeignKey('invoices.id', ondelete='SET NULL'), index=True)

    event_type = db.Column(db.String(50), default='payment')  # 'payment', 'refund'
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(50))  # 'cash', 'check', 'card', 'transfer'
    reference = db.Column(db.String(255))
    notes = db.Column(db.Text)
    occurred_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'job_id': str(self.job_id) if self.job_id else None,
            'invoice_id': str(self.invoice_id) if self.invoice_id else None,
            'event_type': self.event_type,
            'amount': as_float(self.amount),
            'method': self.method,
            'reference': self.reference,
            'notes': self.notes,
            'occurred_at': iso(self.occurred_at),
            'created_at': iso(self.created_at)
        }

    def __repr__(self):
        return f'<BillingEvent {self.event_type} {self.amount}>'
