"""
Tests for job endpoints: lifecycle, line items, payments and invoicing
"""
import uuid
from datetime import date
from decimal import Decimal

import pytest

from fieldservice.models.billing_event import BillingEvent
from fieldservice.models.invoice import Invoice
from fieldservice.models.job import Job
from fieldservice.utils.job_automation import derive_payment_status, get_job_suggestions


def create_job(client, owner, **fields):
    payload = {'client_id': str(owner.id), 'title': 'Replace water heater'}
    payload.update(fields)
    return client.post('/api/jobs/', json=payload)


def move(client, job_id, *statuses):
    response = None
    for status in statuses:
        response = client.put(f'/api/jobs/{job_id}/status', json={'status': status})
    return response


@pytest.mark.integration
class TestJobCrud:
    """Tests for creating and listing jobs"""

    def test_create_defaults_to_quote(self, client, make_client):
        response = create_job(client, make_client(), service_date='2024-07-01')
        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == 'quote'
        assert data['job_number'] == 'JOB-00001'
        assert data['service_date'] == '2024-07-01'
        assert data['payment_status'] == 'unpaid'

    def test_job_numbers_increment(self, client, make_client):
        owner = make_client()
        create_job(client, owner)
        assert create_job(client, owner).get_json()['job_number'] == 'JOB-00002'

    def test_number_after_delete_does_not_collide(self, client, make_client):
        owner = make_client()
        first = create_job(client, owner).get_json()
        create_job(client, owner)
        assert client.delete(f"/api/jobs/{first['id']}").status_code == 200

        response = create_job(client, owner)
        assert response.status_code == 201
        assert response.get_json()['job_number'] == 'JOB-00003'

    def test_create_requires_title(self, client, make_client):
        response = client.post('/api/jobs/', json={'client_id': str(make_client().id)})
        assert response.status_code == 400

    def test_create_for_unknown_client(self, client):
        response = client.post('/api/jobs/', json={'client_id': str(uuid.uuid4()), 'title': 'x'})
        assert response.status_code == 404

    def test_cannot_create_completed_job(self, client, make_client):
        assert create_job(client, make_client(), status='completed').status_code == 400

    def test_list_filters_by_status(self, client, make_job):
        make_job(status='scheduled')
        make_job(status='quote')
        data = client.get('/api/jobs/?status=scheduled').get_json()
        assert data['total'] == 1
        assert data['jobs'][0]['status'] == 'scheduled'

    def test_get_job_includes_client_and_line_items(self, client, make_job):
        job = make_job()
        data = client.get(f'/api/jobs/{job.id}').get_json()
        assert data['line_items'] == []
        assert data['client']['name'] == 'Jane Doe'


@pytest.mark.integration
class TestJobStatus:
    """Tests for status transitions"""

    def test_full_lifecycle_stamps_times(self, client, make_job):
        job = make_job()
        response = move(client, job.id, 'scheduled', 'in_progress', 'completed')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'completed'
        assert data['started_at'] is not None
        assert data['completed_at'] is not None

    def test_skipping_ahead_is_rejected(self, client, make_job):
        job = make_job()
        response = move(client, job.id, 'completed')
        assert response.status_code == 409
        assert 'Invalid status transition' in response.get_json()['error']

    def test_cancelled_is_terminal(self, client, make_job):
        job = make_job()
        move(client, job.id, 'cancelled')
        assert move(client, job.id, 'scheduled').status_code == 409

    def test_in_progress_cannot_be_cancelled(self, client, make_job):
        job = make_job(status='in_progress')
        assert move(client, job.id, 'cancelled').status_code == 409

    def test_status_required(self, client, make_job):
        job = make_job()
        assert client.put(f'/api/jobs/{job.id}/status', json={}).status_code == 400


@pytest.mark.integration
class TestLineItemsAndPayments:
    """Tests for totals, payments and invoicing"""

    def test_line_items_roll_up_with_tax(self, client, make_client):
        job_id = create_job(client, make_client(), tax_rate=0.1).get_json()['id']

        client.post(f'/api/jobs/{job_id}/line-items', json={
            'description': 'Labor', 'quantity': 2, 'unit_price': 75
        })
        response = client.post(f'/api/jobs/{job_id}/line-items', json={
            'description': 'Valve', 'item_type': 'material', 'unit_price': 50
        })
        assert response.status_code == 201
        job = response.get_json()['job']
        assert job['subtotal'] == pytest.approx(200.0)
        assert job['tax'] == pytest.approx(20.0)
        assert job['total'] == pytest.approx(220.0)

    def test_deleting_line_item_recalculates(self, client, make_client):
        job_id = create_job(client, make_client()).get_json()['id']
        item = client.post(f'/api/jobs/{job_id}/line-items', json={
            'description': 'Labor', 'quantity': 1, 'unit_price': 100
        }).get_json()['line_item']
        client.post(f'/api/jobs/{job_id}/line-items', json={'description': 'Part', 'unit_price': 25})

        response = client.delete(f"/api/jobs/{job_id}/line-items/{item['id']}")
        assert response.status_code == 200
        assert response.get_json()['total'] == pytest.approx(25.0)

    def test_line_item_requires_price(self, client, make_job):
        job = make_job()
        response = client.post(f'/api/jobs/{job.id}/line-items', json={'description': 'Labor'})
        assert response.status_code == 400

    def test_partial_then_full_payment(self, client, make_job):
        job = make_job(total=300)

        response = client.post(f'/api/jobs/{job.id}/payments', json={'amount': 100, 'method': 'card'})
        assert response.status_code == 201
        assert response.get_json()['job']['payment_status'] == 'partial'

        response = client.post(f'/api/jobs/{job.id}/payments', json={'amount': 200})
        data = response.get_json()
        assert data['job']['payment_status'] == 'paid'
        assert data['job']['amount_paid'] == pytest.approx(300.0)
        assert BillingEvent.query.filter_by(job_id=job.id).count() == 2

    def test_payment_must_be_positive(self, client, make_job):
        job = make_job(total=100)
        assert client.post(f'/api/jobs/{job.id}/payments', json={'amount': -5}).status_code == 400
        assert client.post(f'/api/jobs/{job.id}/payments', json={}).status_code == 400

    @pytest.mark.parametrize('amount', ['NaN', 'Infinity', 'abc'])
    def test_non_numeric_payment_is_400(self, client, make_job, amount):
        job = make_job(total=100)
        response = client.post(f'/api/jobs/{job.id}/payments', json={'amount': amount})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid amount'

    def test_invoice_from_completed_job(self, client, make_job):
        job = make_job(status='completed', subtotal=400, tax=40, total=440)
        response = client.post(f'/api/jobs/{job.id}/invoice')
        assert response.status_code == 201
        invoice = response.get_json()
        assert invoice['status'] == 'sent'
        assert invoice['total'] == pytest.approx(440.0)
        assert invoice['invoice_number'] == 'INV-00001'
        assert invoice['due_date'] is not None
        assert client.get(f'/api/jobs/{job.id}').get_json()['status'] == 'invoiced'

    def test_invoice_requires_completed_job(self, client, make_job):
        job = make_job(status='scheduled')
        assert client.post(f'/api/jobs/{job.id}/invoice').status_code == 409
        assert Invoice.query.count() == 0


@pytest.mark.unit
class TestPaymentStatus:
    """Tests for payment status derivation"""

    @pytest.mark.parametrize('total,paid,expected', [
        (100, 0, 'unpaid'),
        (100, 40, 'partial'),
        (100, 100, 'paid'),
        (100, 120, 'paid'),
        (0, 0, 'unpaid'),
    ])
    def test_derive_payment_status(self, total, paid, expected):
        assert derive_payment_status(total, paid) == expected


@pytest.mark.unit
class TestJobSuggestions:
    """Tests for next-step suggestions"""

    def test_quote(self):
        job = Job(status='quote', payment_status='unpaid')
        assert get_job_suggestions(job) == ['Convert this quote to a scheduled job']

    def test_scheduled_without_service_date(self):
        job = Job(status='scheduled', payment_status='unpaid', service_date=None)
        assert 'Set a service date for this scheduled job' in get_job_suggestions(job)

    def test_scheduled_with_service_date(self):
        job = Job(status='scheduled', payment_status='unpaid', service_date=date(2024, 7, 1))
        assert get_job_suggestions(job) == []

    def test_in_progress(self):
        job = Job(status='in_progress', payment_status='unpaid')
        assert get_job_suggestions(job) == ['Mark this job as completed when work is finished']

    def test_completed(self):
        job = Job(status='completed', payment_status='unpaid')
        assert get_job_suggestions(job) == ['Generate invoice for this completed job']

    def test_unpaid_invoice(self):
        job = Job(status='invoiced', payment_status='unpaid')
        assert get_job_suggestions(job) == ['Record payment when client pays']

    def test_partial_payment_reports_balance(self):
        job = Job(status='invoiced', payment_status='partial', total=Decimal('100'), amount_paid=Decimal('35'))
        assert get_job_suggestions(job) == ['Follow up on remaining balance: $65.00']

    def test_cancelled_has_none(self):
        assert get_job_suggestions(Job(status='cancelled', payment_status='unpaid')) == []


@pytest.mark.integration
class TestJobSuggestionsApi:
    """Tests for /api/jobs/<id>/suggestions"""

    def test_suggestions_follow_status(self, client, make_job):
        job = make_job(status='completed', total=200)
        response = client.get(f'/api/jobs/{job.id}/suggestions')
        assert response.status_code == 200
        data = response.get_json()
        assert data['job_id'] == str(job.id)
        assert data['suggestions'] == ['Generate invoice for this completed job']

    def test_partial_payment_after_invoicing(self, client, make_job):
        job = make_job(status='completed', total=440)
        client.post(f'/api/jobs/{job.id}/invoice')
        client.post(f'/api/jobs/{job.id}/payments', json={'amount': 40})
        suggestions = client.get(f'/api/jobs/{job.id}/suggestions').get_json()['suggestions']
        assert suggestions == ['Follow up on remaining balance: $400.00']

    def test_unknown_job(self, client):
        assert client.get(f'/api/jobs/{uuid.uuid4()}/suggestions').status_code == 404
