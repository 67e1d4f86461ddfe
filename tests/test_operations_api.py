"""
Tests for materials, time entries, invoices and estimates
"""
import pytest

from fieldservice.models.job import Job


@pytest.mark.integration
class TestMaterialsApi:
    """Tests for /api/materials"""

    def create(self, client, **fields):
        payload = {'name': 'Copper pipe', 'category': 'plumbing', 'unit_cost': 12.5,
                   'current_stock': 20, 'reorder_point': 5}
        payload.update(fields)
        return client.post('/api/materials/', json=payload)

    def test_create_material(self, client):
        response = self.create(client, sku='CP-1')
        assert response.status_code == 201
        assert response.get_json()['is_low_stock'] is False

    def test_create_requires_category(self, client):
        assert client.post('/api/materials/', json={'name': 'Pipe'}).status_code == 400

    def test_duplicate_sku(self, client):
        self.create(client, sku='CP-1')
        assert self.create(client, sku='CP-1').status_code == 409

    def test_low_stock_filter(self, client):
        self.create(client, name='Plenty')
        self.create(client, name='Scarce', current_stock=2)
        data = client.get('/api/materials/?low_stock=true').get_json()
        assert data['total'] == 1
        assert data['materials'][0]['name'] == 'Scarce'

    def test_adjust_stock(self, client):
        material = self.create(client).get_json()
        response = client.post(f"/api/materials/{material['id']}/adjust", json={'quantity': -16, 'reason': 'Job use'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['current_stock'] == pytest.approx(4.0)
        assert data['is_low_stock'] is True

    def test_adjust_below_zero_rejected(self, client):
        material = self.create(client).get_json()
        response = client.post(f"/api/materials/{material['id']}/adjust", json={'quantity': -25})
        assert response.status_code == 400

    def test_adjust_rejects_non_finite_quantity(self, client):
        material = self.create(client).get_json()
        response = client.post(f"/api/materials/{material['id']}/adjust", json={'quantity': 'NaN'})
        assert response.status_code == 400

    def test_inventory_summary(self, client):
        self.create(client, name='Pipe')
        self.create(client, name='Drill', category='tools', is_tool=True, unit_cost=100, current_stock=1)
        summary = client.get('/api/materials/summary').get_json()
        assert summary['total_items'] == 2
        assert summary['total_value'] == pytest.approx(20 * 12.5 + 100)
        assert summary['low_stock_count'] == 1
        assert summary['tool_count'] == 1
        assert summary['categories'] == {'plumbing': 1, 'tools': 1}


@pytest.mark.integration
class TestTimeEntriesApi:
    """Tests for /api/time-entries"""

    def test_clock_in_and_out(self, client, make_job):
        job = make_job()
        entry = client.post('/api/time-entries/clock-in', json={
            'technician_name': 'Sam', 'job_id': str(job.id), 'hourly_rate': 40,
            'start_time': '2024-06-15T08:00:00Z'
        })
        assert entry.status_code == 201
        entry_id = entry.get_json()['id']

        response = client.post(f'/api/time-entries/{entry_id}/clock-out', json={'end_time': '2024-06-15T10:30:00Z'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'completed'
        assert data['total_hours'] == pytest.approx(2.5)
        assert data['billable_hours'] == pytest.approx(2.5)
        assert data['total_amount'] == pytest.approx(100.0)

    def test_cannot_clock_in_twice(self, client):
        client.post('/api/time-entries/clock-in', json={'technician_name': 'Sam'})
        response = client.post('/api/time-entries/clock-in', json={'technician_name': 'Sam'})
        assert response.status_code == 409

    def test_end_before_start_rejected(self, client):
        entry_id = client.post('/api/time-entries/clock-in', json={
            'technician_name': 'Sam', 'start_time': '2024-06-15T08:00:00Z'
        }).get_json()['id']
        response = client.post(f'/api/time-entries/{entry_id}/clock-out', json={'end_time': '2024-06-15T07:00:00Z'})
        assert response.status_code == 400

    @pytest.mark.parametrize('hours', ['abc', 'NaN', -1])
    def test_invalid_billable_hours_rejected(self, client, hours):
        entry_id = client.post('/api/time-entries/clock-in', json={
            'technician_name': 'Sam', 'start_time': '2024-06-15T08:00:00Z'
        }).get_json()['id']
        response = client.post(f'/api/time-entries/{entry_id}/clock-out', json={
            'end_time': '2024-06-15T09:00:00Z', 'billable_hours': hours
        })
        assert response.status_code == 400
        assert client.get(f'/api/time-entries/{entry_id}').get_json()['status'] == 'active'

    def test_billable_hours_override(self, client):
        entry_id = client.post('/api/time-entries/clock-in', json={
            'technician_name': 'Sam', 'hourly_rate': 50, 'start_time': '2024-06-15T08:00:00Z'
        }).get_json()['id']
        data = client.post(f'/api/time-entries/{entry_id}/clock-out', json={
            'end_time': '2024-06-15T10:00:00Z', 'billable_hours': '1.5'
        }).get_json()
        assert data['total_hours'] == pytest.approx(2.0)
        assert data['billable_hours'] == pytest.approx(1.5)
        assert data['total_amount'] == pytest.approx(75.0)

    def test_non_finite_hourly_rate_rejected(self, client):
        response = client.post('/api/time-entries/clock-in', json={'technician_name': 'Sam', 'hourly_rate': 'NaN'})
        assert response.status_code == 400

    def test_approve_and_reject(self, client):
        ids = []
        for name in ('Sam', 'Alex'):
            entry_id = client.post('/api/time-entries/clock-in', json={
                'technician_name': name, 'start_time': '2024-06-15T08:00:00Z'
            }).get_json()['id']
            client.post(f'/api/time-entries/{entry_id}/clock-out', json={'end_time': '2024-06-15T09:00:00Z'})
            ids.append(entry_id)

        approved = client.post(f'/api/time-entries/{ids[0]}/approve', json={'notes': 'ok'}).get_json()
        rejected = client.post(f'/api/time-entries/{ids[1]}/reject', json={'notes': 'wrong job'}).get_json()
        assert approved['status'] == 'approved'
        assert approved['approved_at'] is not None
        assert rejected['status'] == 'rejected'

        assert client.get('/api/time-entries/?status=approved').get_json()['total'] == 1

    def test_active_entry_cannot_be_approved(self, client):
        entry_id = client.post('/api/time-entries/clock-in', json={'technician_name': 'Sam'}).get_json()['id']
        assert client.post(f'/api/time-entries/{entry_id}/approve').status_code == 409


@pytest.mark.integration
class TestInvoicesApi:
    """Tests for /api/invoices"""

    def test_create_send_and_pay(self, client, make_client):
        owner = make_client()
        invoice = client.post('/api/invoices/', json={'client_id': str(owner.id), 'total': 500})
        assert invoice.status_code == 201
        invoice = invoice.get_json()
        assert invoice['status'] == 'draft'
        assert invoice['due_date'] is not None

        sent = client.post(f"/api/invoices/{invoice['id']}/send").get_json()
        assert sent['status'] == 'sent'
        assert sent['sent_at'] is not None

        partial = client.post(f"/api/invoices/{invoice['id']}/payments", json={'amount': 200}).get_json()
        assert partial['invoice']['status'] == 'sent'
        assert partial['invoice']['balance_due'] == pytest.approx(300.0)

        paid = client.post(f"/api/invoices/{invoice['id']}/payments", json={'amount': 300}).get_json()
        assert paid['invoice']['status'] == 'paid'
        assert paid['invoice']['paid_at'] is not None

        detail = client.get(f"/api/invoices/{invoice['id']}").get_json()
        assert len(detail['payments']) == 2

    def test_payment_updates_linked_job(self, client, make_job, db):
        job = make_job(status='completed', total=440)
        invoice = client.post(f'/api/jobs/{job.id}/invoice').get_json()
        client.post(f"/api/invoices/{invoice['id']}/payments", json={'amount': 440})
        assert db.session.get(Job, job.id).payment_status == 'paid'

    def test_void_invoice_cannot_be_sent(self, client, make_client):
        invoice = client.post('/api/invoices/', json={'client_id': str(make_client().id), 'total': 10}).get_json()
        client.put(f"/api/invoices/{invoice['id']}", json={'status': 'void'})
        assert client.post(f"/api/invoices/{invoice['id']}/send").status_code == 409

    def test_invalid_status(self, client, make_client):
        invoice = client.post('/api/invoices/', json={'client_id': str(make_client().id), 'total': 10}).get_json()
        assert client.put(f"/api/invoices/{invoice['id']}", json={'status': 'lost'}).status_code == 400

    def test_non_finite_payment_rejected(self, client, make_client):
        invoice = client.post('/api/invoices/', json={'client_id': str(make_client().id), 'total': 10}).get_json()
        response = client.post(f"/api/invoices/{invoice['id']}/payments", json={'amount': 'NaN'})
        assert response.status_code == 400
        assert client.post('/api/invoices/', json={
            'client_id': str(make_client().id), 'total': 'Infinity'
        }).status_code == 400

    def test_filter_by_status(self, client, make_client):
        owner = make_client()
        first = client.post('/api/invoices/', json={'client_id': str(owner.id), 'total': 10}).get_json()
        client.post('/api/invoices/', json={'client_id': str(owner.id), 'total': 20})
        client.post(f"/api/invoices/{first['id']}/send")
        assert client.get('/api/invoices/?status=sent').get_json()['total'] == 1


@pytest.mark.integration
class TestEstimatesApi:
    """Tests for /api/estimates"""

    def test_total_from_line_items(self, client, make_client):
        response = client.post('/api/estimates/', json={
            'client_id': str(make_client().id),
            'title': 'Bathroom remodel',
            'line_items': [
                {'description': 'Tile', 'quantity': 10, 'unit_price': 15},
                {'description': 'Labor', 'quantity': 8, 'unit_price': 60},
            ]
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data['total'] == pytest.approx(630.0)
        assert data['estimate_number'] == 'EST-00001'

    def test_mark_sent(self, client, make_client):
        estimate = client.post('/api/estimates/', json={
            'client_id': str(make_client().id), 'title': 'Fence', 'total': 1200
        }).get_json()
        updated = client.put(f"/api/estimates/{estimate['id']}", json={'status': 'sent'}).get_json()
        assert updated['status'] == 'sent'
        assert updated['sent_at'] is not None
        assert client.get('/api/estimates/?status=sent').get_json()['total'] == 1

    def test_number_after_delete_does_not_collide(self, client, make_client):
        owner = str(make_client().id)
        first = client.post('/api/estimates/', json={'client_id': owner, 'title': 'Deck', 'total': 100}).get_json()
        client.post('/api/estimates/', json={'client_id': owner, 'title': 'Fence', 'total': 200})
        client.delete(f"/api/estimates/{first['id']}")

        response = client.post('/api/estimates/', json={'client_id': owner, 'title': 'Gate', 'total': 300})
        assert response.status_code == 201
        assert response.get_json()['estimate_number'] == 'EST-00003'

    def test_invalid_line_item_price(self, client, make_client):
        response = client.post('/api/estimates/', json={
            'client_id': str(make_client().id), 'title': 'Tile',
            'line_items': [{'description': 'Tile', 'quantity': 2, 'unit_price': 'NaN'}]
        })
        assert response.status_code == 400
