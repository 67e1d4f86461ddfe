from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

INVOICE_STATUSES = ('draft', 'sent', 'paid', 'overdue', 'void')

class Invoice(db.Model):
    """Customer invoice, usually generated from a completed job"""
    __tablename__ = 'invoices'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    invoice_number = db.Column(db.String(50), unique=True)

    client_id = db.Column(GUID, db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    job_id = db.Column(GUID, db.ForeignKey('jobs.id', ondelete='SET NULL'), index=True)

    status = db.Column(db.String(50), default='draft', index=True)  # see INVOICE_STATUSES
    issue_date = db.Column(db.Date)
    due_date = db.Column(db.Date)

    # Money
    subtotal = db.Column(db.Numeric(12, 2), default=0)
    tax = db.Column(db.Numeric(12, 2), default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(12, 2), default=0)

    notes = db.Column(db.Text)
    sent_at = db.Column(db.DateTime(timezone=True))
    paid_at = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    job = db.relationship('Job', backref=db.backref('invoices', lazy='dynamic'))
    billing_events = db.relationship('BillingEvent', backref='invoice', lazy='dynamic')

    @property
    def balance_due(self):
        return float(self.total or 0) - float(self.amount_paid or 0)

    def to_dict(self):
        return {
            'id': str(self.id),
            'invoice_number': self.invoice_number,
            'client_id': str(self.client_id),
            'job_id': str(self.job_id) if self.job_id else None,
            'status': self.status,
            'issue_date': iso(self.issue_date),
            'due_date': iso(self.due_date),
            'subtotal': as_float(self.subtotal) or 0.0,
            'tax': as_float(self.tax) or 0.0,
            'total': as_float(self.total) or 0.0,
            'amount_paid': as_float(self.amount_paid) or 0.0,
            'balance_due': self.balance_due,
            'notes': self.notes,
            'sent_at': iso(self.sent_at),
            'paid_at': iso(self.paid_at),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Invoice {self.invoice_number or self.id}>'
