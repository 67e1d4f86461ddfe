from fieldservice import db
from fieldservice.models.types import GUID, iso
import uuid
from datetime import datetime, timezone

ALERT_TYPES = ('lead', 'billing', 'scheduling', 'support', 'security')
ALERT_SEVERITIES = ('low', 'medium', 'high', 'urgent')

class Alert(db.Model):
    """Actionable notice raised from an email insight"""
    __tablename__ = 'alerts'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    email_message_id = db.Column(GUID, db.ForeignKey('email_messages.id', ondelete='CASCADE'), index=True)

    type = db.Column(db.Enum(*ALERT_TYPES, name='alert_type_enum'), nullable=False, index=True)
    severity = db.Column(db.Enum(*ALERT_SEVERITIES, name='alert_severity_enum'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text)
    due_at = db.Column(db.DateTime(timezone=True))

    # Resolution
    resolved = db.Column(db.Boolean, default=False, index=True)
    resolved_at = db.Column(db.DateTime(timezone=True))
    resolution_notes = db.Column(db.Text)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'email_message_id': str(self.email_message_id) if self.email_message_id else None,
            'type': self.type,
            'severity': self.severity,
            'title': self.title,
            'message': self.message,
            'due_at': iso(self.due_at),
            'resolved': self.resolved,
            'resolved_at': iso(self.resolved_at),
            'resolution_notes': self.resolution_notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<Alert {self.type} {self.title}>'
