from fieldservice import db
from fieldservice.models.types import GUID, JSONType, iso
import uuid
from datetime import datetime, timezone

EMAIL_CATEGORIES = ('unreviewed', 'spending', 'billing', 'leads', 'other', 'junk')

class EmailMessage(db.Model):
    """Inbound email with its keyword categorization and optional structured insight"""
    __tablename__ = 'email_messages'

    id = db.Column(GUID, primary_key=True, default=uuid.uuid4)
    external_id = db.Column(db.String(255), unique=True)

    # Message
    sender = db.Column(db.String(255))
    subject = db.Column(db.String(500))
    body_text = db.Column(db.Text)
    body_html = db.Column(db.Text)
    received_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Keyword categorization
    category = db.Column(db.String(50), default='unreviewed', index=True)
    confidence = db.Column(db.Float)
    extracted_data = db.Column(JSONType, default=dict)
    reasoning = db.Column(db.Text)

    # Structured insight (LEAD_NEW, BILLING_INCOMING_INVOICE, ...)
    insight_category = db.Column(db.String(50))
    priority = db.Column(db.String(20))
    is_action_required = db.Column(db.Boolean, default=False)
    summary = db.Column(db.Text)
    insight_details = db.Column(JSONType, default=dict)

    is_read = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    alerts = db.relationship('Alert', backref='email_message', lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': str(self.id),
            'external_id': self.external_id,
            'sender': self.sender,
            'subject': self.subject,
            'body_text': self.body_text,
            'received_at': iso(self.received_at),
            'category': self.category,
            'confidence': self.confidence,
            'extracted_data': self.extracted_data or {},
            'reasoning': self.reasoning,
            'insight_category': self.insight_category,
            'priority': self.priority,
            'is_action_required': self.is_action_required,
            'summary': self.summary,
            'insight_details': self.insight_details or {},
            'is_read': self.is_read,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at)
        }

    def __repr__(self):
        return f'<EmailMessage {self.subject}>'
