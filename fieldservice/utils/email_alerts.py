"""Alert rules for structured email insights"""
import math
import logging

from dateutil import parser as date_parser

from fieldservice import db
from fieldservice.models.alert import Alert
from fieldservice.utils.helpers import ensure_utc, utcnow, format_currency

logger = logging.getLogger(__name__)

INSIGHT_CATEGORIES = (
    'LEAD_NEW',
    'LEAD_FOLLOWUP',
    'BILLING_INCOMING_INVOICE',
    'BILLING_OUTGOING_INVOICE',
    'BILLING_PAYMENT_RECEIVED',
    'BILLING_PAYMENT_ISSUE',
    'SCHEDULING_REQUEST',
    'SCHEDULING_CHANGE',
    'CUSTOMER_SUPPORT',
    'VENDOR_RECEIPT',
    'SYSTEM_SECURITY',
    'NEWSLETTER_PROMO',
    'SPAM_OTHER',
)
INSIGHT_PRIORITIES = ('low', 'medium', 'high', 'urgent')


def _parse_when(value):
    if not value:
        return None
    try:
        return ensure_utc(date_parser.parse(value))
    except (ValueError, OverflowError):
        logger.warning(f"Unparseable insight date: {value!r}")
        return None


def _days_until(when, now):
    return math.ceil((when - now).total_seconds() / 86400)


def _join(*parts):
    return ' '.join(part for part in parts if part)


def get_alert_data_for_category(insight, now=None):
    """
    Alert fields (type, severity, title, message, due_at) for an insight.

    ``insight`` is a mapping with ``category``, ``priority``, ``summary``
    and ``details``. Returns None for categories that never alert.
    """
    now = ensure_utc(now) if now else utcnow()
    category = insight.get('category')
    priority = insight.get('priority')
    summary = insight.get('summary') or ''
    details = insight.get('details') or {}

    amount = format_currency(details.get('amount'))
    invoice_ref = f"({details['invoice_number']})" if details.get('invoice_number') else None

    if category == 'LEAD_NEW':
        severity = priority if priority in ('urgent', 'high') else 'medium'
        return {
            'type': 'lead',
            'severity': severity,
            'title': f"New Lead: {details.get('contact_name') or 'Unknown Contact'}",
            'message': _join(
                f'{summary}.',
                f"Service: {details['job_type']}." if details.get('job_type') else None,
                'URGENT: Emergency request!' if details.get('urgency') == 'emergency' else None,
            ),
            'due_at': _parse_when(details.get('response_deadline')),
        }

    if category == 'LEAD_FOLLOWUP':
        return {
            'type': 'lead',
            'severity': 'urgent' if priority == 'urgent' else 'medium',
            'title': f"Lead Follow-up: {details.get('contact_name') or 'Existing Lead'}",
            'message': summary,
            'due_at': _parse_when(details.get('follow_up_date')),
        }

    if category == 'BILLING_INCOMING_INVOICE':
        vendor = details.get('vendor_name') or 'vendor'
        due_at = _parse_when(details.get('due_date'))
        if due_at:
            days_until_due = _days_until(due_at, now)
            if days_until_due <= 1:
                severity = 'urgent'
            elif days_until_due <= 7:
                severity = 'high'
            else:
                severity = 'medium'
            overdue = days_until_due <= 0
            return {
                'type': 'billing',
                'severity': severity,
                'title': 'Invoice Overdue' if overdue else f'Invoice Due in {days_until_due} days',
                'message': _join(amount, invoice_ref, f"from {vendor} is {'overdue' if overdue else 'due'}."),
                'due_at': due_at,
            }
        return {
            'type': 'billing',
            'severity': 'medium',
            'title': 'New Vendor Invoice',
            'message': _join(amount, invoice_ref, f'received from {vendor}.'),
            'due_at': None,
        }

    if category == 'BILLING_OUTGOING_INVOICE':
        return {
            'type': 'billing',
            'severity': 'low',
            'title': 'Customer Invoice Reply',
            'message': summary,
            'due_at': None,
        }

    if category == 'BILLING_PAYMENT_RECEIVED':
        return {
            'type': 'billing',
            'severity': 'low',
            'title': 'Payment Received',
            'message': _join(
                f'{amount} payment received.',
                f"Applied to {details['invoice_number']}." if details.get('invoice_number') else None,
            ),
            'due_at': None,
        }

    if category == 'BILLING_PAYMENT_ISSUE':
        return {
            'type': 'billing',
            'severity': 'high',
            'title': 'Payment Issue Detected',
            'message': summary,
            'due_at': _parse_when(details.get('due_date')),
        }

    if category == 'SCHEDULING_REQUEST':
        requested = details.get('requested_dates')
        return {
            'type': 'scheduling',
            'severity': 'urgent' if priority == 'urgent' else 'high',
            'title': 'New Scheduling Request',
            'message': _join(
                f'{summary}.',
                f"Requested dates: {', '.join(requested)}" if requested else None,
            ),
            'due_at': _parse_when(details.get('response_deadline')),
        }

    if category == 'SCHEDULING_CHANGE':
        confirmed = _parse_when(details.get('confirmed_date'))
        # A change landing within two days needs immediate attention
        imminent = confirmed is not None and _days_until(confirmed, now) <= 2
        return {
            'type': 'scheduling',
            'severity': 'urgent' if imminent else 'high',
            'title': 'Schedule Change Request',
            'message': summary,
            'due_at': confirmed,
        }

    if category == 'CUSTOMER_SUPPORT':
        if priority == 'urgent':
            severity = 'urgent'
        elif details.get('sentiment') == 'negative':
            severity = 'high'
        else:
            severity = 'medium'
        return {
            'type': 'support',
            'severity': severity,
            'title': 'Customer Support Request',
            'message': summary,
            'due_at': _parse_when(details.get('response_deadline')),
        }

    if category == 'SYSTEM_SECURITY':
        return {
            'type': 'security',
            'severity': 'urgent',
            'title': 'Security Alert',
            'message': summary,
            'due_at': None,
        }

    return None


def generate_alerts_for_email(email_message, now=None):
    """Add alerts for an email's structured insight to the session; the caller commits"""
    if not email_message.is_action_required or not email_message.insight_category:
        return []

    alert_data = get_alert_data_for_category({
        'category': email_message.insight_category,
        'priority': email_message.priority,
        'summary': email_message.summary,
        'details': email_message.insight_details or {},
    }, now=now)

    if not alert_data:
        return []

    alert = Alert(email_message=email_message, resolved=False, **alert_data)
    db.session.add(alert)
    logger.info(f"Raised {alert.severity} {alert.type} alert: {alert.title}")
    return [alert]


def resolve_alert(alert, resolution_notes=None):
    alert.resolved = True
    alert.resolved_at = utcnow()
    alert.resolution_notes = resolution_notes
    return alert
