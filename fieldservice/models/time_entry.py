from fieldservice import db
from fieldservice.models.types import GUID, iso, as_float
import uuid
from datetime import datetime, timezone

TIME_ENTRY_STATUSES = ('active', 'completed', 'approved', 'rejected', 'paid')

class TimeEntry(db.Model):
    """Technician clock-in/clock-out record, optionally against a job"""
    __tablename__ = 'time_entries'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    job_id = db.Column(GUID, db.ForeignKey('jobs.id', ondelete='SET NULL'), index=True)

    technician_name = db.Column(db.String(255), nullable=False, index=True)

    # Clock
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True))
    total_hours = db.Column(db.Numeric(8, 2))
    billable_hours = db.Column(db.Numeric(8, 2))

    # Pay
    hourly_rate = db.Column(db.Numeric(10, 2))
    total_amount = db.Column(db.Numeric(12, 2))

    # Approval
    status = db.Column(db.Enum(*TIME_ENTRY_STATUSES, name='time_entry_status_enum'), default='active', index=True)
    approval_notes = db.Column(db.Text)
    approved_at = db.Column(db.DateTime(timezone=True))

    notes = db.Column(db.Text)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'job_id': str(self.job_id) if self.job_id else None,
            'technician_name': self.technician_name,
            'start_time': iso(self.start_time),
            'end_time': iso(self.end_time),
            'total_hours': as_float(self.total_hours),
            'billable_hours': as_float(self.billable_hours),
            'hourly_rate': as_float(self.hourly_rate),
            'total_amount': as_float(self.total_amount),
            'status': self.status,
            'approval_notes': self.approval_notes,
            'approved_at': iso(self.approved_at),
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<TimeEntry {self.technician_name} {self.start_time}>'
