from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

JOB_STATUSES = ('draft', 'quote', 'scheduled', 'in_progress', 'completed', 'invoiced', 'cancelled')
JOB_PRIORITIES = ('low', 'normal', 'high', 'emergency')
PAYMENT_STATUSES = ('unpaid', 'partial', 'paid')

class Job(db.Model):
    """Unit of billable work performed for a client"""
    __tablename__ = 'jobs'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    job_number = db.Column(db.String(50), unique=True)

    # Relationships
    client_id = db.Column(GUID, db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    property_id = db.Column(GUID, db.ForeignKey('properties.id', ondelete='SET NULL'))
    lead_id = db.Column(GUID, db.ForeignKey('leads.id', ondelete='SET NULL'))

    # Work Details
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    service_type = db.Column(db.String(100))
    priority = db.Column(db.Enum(*JOB_PRIORITIES, name='priority_enum'), default='normal')
    service_date = db.Column(db.Date, index=True)
    estimated_duration_minutes = db.Column(db.Integer, default=60)

    # Status Workflow
    status = db.Column(db.Enum(*JOB_STATUSES, name='job_status_enum'), default='quote', index=True)
    started_at = db.Column(db.DateTime(timezone=True))
    completed_at = db.Column(db.DateTime(timezone=True))

    # Money
    subtotal = db.Column(db.Numeric(12, 2), default=0)
    tax_rate = db.Column(db.Numeric(5, 4))
    tax = db.Column(db.Numeric(12, 2), default=0)
    total = db.Column(db.Numeric(12, 2), default=0)
    amount_paid = db.Column(db.Numeric(12, 2), default=0)
    payment_status = db.Column(db.Enum(*PAYMENT_STATUSES, name='payment_status_enum'), default='unpaid', index=True)

    notes = db.Column(db.Text)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    line_items = db.relationship('JobLineItem', backref='job', lazy='dynamic', cascade='all, delete-orphan')
    billing_events = db.relationship('BillingEvent', backref='job', lazy='dynamic')
    time_entries = db.relationship('TimeEntry', backref='job', lazy='dynamic')

    def to_dict(self):
        return {
            'id': str(self.id),
            'job_number': self.job_number,
            'client_id': str(self.client_id),
            'property_id': str(self.property_id) if self.property_id else None,
            'lead_id': str(self.lead_id) if self.lead_id else None,
            'title': self.title,
            'description': self.description,
            'service_type': self.service_type,
            'priority': self.priority,
            'service_date': iso(self.service_date),
            'estimated_duration_minutes': self.estimated_duration_minutes,
            'status': self.status,
            'started_at': iso(self.started_at),
            'completed_at': iso(self.completed_at),
            'subtotal': as_float(self.subtotal) or 0.0,
            'tax_rate': as_float(self.tax_rate),
            'tax': as_float(self.tax) or 0.0,
            'total': as_float(self.total) or 0.0,
            'amount_paid': as_float(self.amount_paid) or 0.0,
            'payment_status': self.payment_status,
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Job {self.job_number or self.id}>'


class JobLineItem(db.Model):
    """Priced line on a job; totals roll up into the job"""
    __tablename__ = 'job_line_items'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    job_id = db.Column(GUID, db.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=False)
    item_type = db.Column(db.String(50), default='labor')  # 'labor', 'material', 'other'
    quantity = db.Column(db.Numeric(10, 2), default=1)
    unit_price = db.Column(db.Numeric(12, 2), default=0)
    total = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'job_id': str(self.job_id),
            'description': self.description,
            'item_type': self.item_type,
            'quantity': as_float(self.quantity),
            'unit_price': as_float(self.unit_price),
            'total': as_float(self.total),
            'created_at': iso(self.created_at)
        }

    def __repr__(self):
        return f'<JobLineItem {self.description}>'
