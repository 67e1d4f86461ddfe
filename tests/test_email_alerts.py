"""
Tests for alert rules on structured email insights
"""
from datetime import datetime, timezone

import pytest

from fieldservice.models.alert import Alert
from fieldservice.models.email_message import EmailMessage
from fieldservice.utils.email_alerts import (
    get_alert_data_for_category,
    generate_alerts_for_email,
    resolve_alert,
)

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)


def insight(category, priority='medium', summary='Summary', **details):
    return {'category': category, 'priority': priority, 'summary': summary, 'details': details}


@pytest.mark.unit
class TestBillingAlerts:
    """Tests for incoming invoice due-date severity"""

    def test_due_in_three_days_is_high(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', vendor_name='Acme Supply', amount=1200,
            invoice_number='INV-9', due_date='2024-06-18'), now=NOW)
        assert data['type'] == 'billing'
        assert data['severity'] == 'high'
        assert data['title'] == 'Invoice Due in 3 days'
        assert data['message'] == '$1,200.00 (INV-9) from Acme Supply is due.'
        assert data['due_at'] == datetime(2024, 6, 18, tzinfo=timezone.utc)

    def test_due_tomorrow_is_urgent(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', due_date='2024-06-16'), now=NOW)
        assert data['severity'] == 'urgent'
        assert data['title'] == 'Invoice Due in 1 days'

    def test_past_due_is_overdue(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', vendor_name='Acme', amount=50, due_date='2024-06-10'), now=NOW)
        assert data['severity'] == 'urgent'
        assert data['title'] == 'Invoice Overdue'
        assert data['message'].endswith('from Acme is overdue.')

    def test_far_due_date_is_medium(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', due_date='2024-07-30'), now=NOW)
        assert data['severity'] == 'medium'

    def test_no_due_date(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', vendor_name='Acme', amount=75), now=NOW)
        assert data['title'] == 'New Vendor Invoice'
        assert data['severity'] == 'medium'
        assert data['due_at'] is None
        assert data['message'] == '$75.00 received from Acme.'

    def test_unparseable_due_date_treated_as_missing(self):
        data = get_alert_data_for_category(insight(
            'BILLING_INCOMING_INVOICE', due_date='whenever'), now=NOW)
        assert data['title'] == 'New Vendor Invoice'

    def test_payment_issue_is_high(self):
        data = get_alert_data_for_category(insight('BILLING_PAYMENT_ISSUE'), now=NOW)
        assert data['severity'] == 'high'


@pytest.mark.unit
class TestOtherAlertCategories:
    """Tests for lead, scheduling, support and security rules"""

    def test_new_lead_low_priority_raised_to_medium(self):
        data = get_alert_data_for_category(insight(
            'LEAD_NEW', priority='low', summary='Wants a fence', contact_name='Bob', job_type='fencing'), now=NOW)
        assert data['type'] == 'lead'
        assert data['severity'] == 'medium'
        assert data['title'] == 'New Lead: Bob'
        assert data['message'] == 'Wants a fence. Service: fencing.'

    def test_new_lead_emergency(self):
        data = get_alert_data_for_category(insight(
            'LEAD_NEW', priority='urgent', summary='Burst pipe', urgency='emergency'), now=NOW)
        assert data['severity'] == 'urgent'
        assert data['title'] == 'New Lead: Unknown Contact'
        assert 'URGENT: Emergency request!' in data['message']

    def test_schedule_change_within_two_days_is_urgent(self):
        data = get_alert_data_for_category(insight(
            'SCHEDULING_CHANGE', confirmed_date='2024-06-16'), now=NOW)
        assert data['severity'] == 'urgent'

    def test_schedule_change_later_is_high(self):
        data = get_alert_data_for_category(insight(
            'SCHEDULING_CHANGE', confirmed_date='2024-06-25'), now=NOW)
        assert data['severity'] == 'high'

    def test_negative_support_is_high(self):
        data = get_alert_data_for_category(insight('CUSTOMER_SUPPORT', sentiment='negative'), now=NOW)
        assert data['type'] == 'support'
        assert data['severity'] == 'high'

    def test_security_always_urgent(self):
        data = get_alert_data_for_category(insight('SYSTEM_SECURITY', priority='low'), now=NOW)
        assert data['severity'] == 'urgent'
        assert data['type'] == 'security'

    @pytest.mark.parametrize('category', ['NEWSLETTER_PROMO', 'SPAM_OTHER', 'VENDOR_RECEIPT'])
    def test_categories_without_alerts(self, category):
        assert get_alert_data_for_category(insight(category), now=NOW) is None


@pytest.mark.integration
class TestGenerateAlerts:
    """Tests for attaching alerts to stored emails"""

    def test_action_required_email_gets_alert(self, db):
        email_message = EmailMessage(
            subject='Security notice', insight_category='SYSTEM_SECURITY',
            is_action_required=True, summary='Unusual login', insight_details={}
        )
        db.session.add(email_message)
        alerts = generate_alerts_for_email(email_message, now=NOW)
        db.session.commit()

        assert len(alerts) == 1
        stored = Alert.query.one()
        assert stored.email_message_id == email_message.id
        assert stored.resolved is False

    def test_no_action_required_means_no_alert(self, db):
        email_message = EmailMessage(
            subject='FYI', insight_category='SYSTEM_SECURITY', is_action_required=False
        )
        db.session.add(email_message)
        assert generate_alerts_for_email(email_message, now=NOW) == []

    def test_resolve_alert(self, db):
        alert = Alert(type='lead', severity='low', title='Follow up')
        db.session.add(alert)
        resolve_alert(alert, 'Called back')
        db.session.commit()

        assert alert.resolved is True
        assert alert.resolved_at is not None
        assert alert.resolution_notes == 'Called back'
