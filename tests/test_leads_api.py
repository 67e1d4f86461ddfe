"""
Tests for lead endpoints, urgency scoring and source analytics
"""
from datetime import datetime, timedelta, timezone

import pytest

from fieldservice.models.client import Client
from fieldservice.models.lead import Lead
from fieldservice.utils.leads import calculate_urgency_score, lead_source_analytics

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestUrgencyScore:
    """Tests for lead urgency scoring"""

    def test_fresh_urgent_walk_in(self):
        lead = Lead(status='new', priority='urgent', source='walk_in',
                    estimated_value=12000, created_at=NOW - timedelta(minutes=10))
        # 50 new + 100 urgent + 50 value + 50 fresh + 30 walk-in
        assert calculate_urgency_score(lead, now=NOW) == 280

    def test_stale_low_priority_lead(self):
        lead = Lead(status='contacted', priority='low', source='email',
                    estimated_value=100, created_at=NOW - timedelta(days=5))
        assert calculate_urgency_score(lead, now=NOW) == -20

    def test_mid_value_phone_lead(self):
        lead = Lead(status='qualified', priority='medium', source='phone',
                    estimated_value=6000, created_at=NOW - timedelta(hours=2))
        # 25 medium + 25 value + 30 age + 20 phone
        assert calculate_urgency_score(lead, now=NOW) == 100

    def test_day_old_lead_gets_no_age_bonus(self):
        lead = Lead(status='contacted', priority='high', source='website',
                    created_at=NOW - timedelta(hours=30))
        assert calculate_urgency_score(lead, now=NOW) == 50


@pytest.mark.unit
class TestLeadAnalytics:
    """Tests for per-source conversion statistics"""

    def test_groups_and_sorts_by_volume(self):
        created = NOW - timedelta(days=10)
        leads = [
            Lead(source='referral', status='converted', estimated_value=1000,
                 created_at=created, converted_at=created + timedelta(days=4)),
            Lead(source='referral', status='new', estimated_value=3000, created_at=created),
            Lead(source='referral', status='lost', estimated_value=0, created_at=created),
            Lead(source='website', status='new', created_at=created),
        ]
        stats = lead_source_analytics(leads)

        assert [s['source'] for s in stats] == ['referral', 'website']
        referral = stats[0]
        assert referral['total'] == 3
        assert referral['converted'] == 1
        assert referral['conversion_rate'] == pytest.approx(100 / 3)
        assert referral['avg_value'] == pytest.approx(2000.0)
        assert referral['avg_time_to_conversion'] == pytest.approx(4.0)

    def test_empty(self):
        assert lead_source_analytics([]) == []


@pytest.mark.integration
class TestLeadsApi:
    """Tests for /api/leads"""

    def test_create_lead(self, client):
        response = client.post('/api/leads/', json={
            'first_name': 'Maria', 'last_name': 'Lopez', 'source': 'website', 'estimated_value': 2500
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == 'new'
        assert data['priority'] == 'medium'

    def test_create_requires_source(self, client):
        assert client.post('/api/leads/', json={'first_name': 'Maria'}).status_code == 400

    def test_create_rejects_unknown_source(self, client):
        response = client.post('/api/leads/', json={'first_name': 'Maria', 'source': 'carrier_pigeon'})
        assert response.status_code == 400

    def test_sort_by_urgency(self, client):
        client.post('/api/leads/', json={'first_name': 'Low', 'source': 'email', 'priority': 'low'})
        client.post('/api/leads/', json={'first_name': 'High', 'source': 'walk_in', 'priority': 'urgent'})

        data = client.get('/api/leads/?sort=urgency').get_json()
        assert data['total'] == 2
        assert [lead['first_name'] for lead in data['leads']] == ['High', 'Low']
        assert data['leads'][0]['urgency_score'] > data['leads'][1]['urgency_score']

    def test_urgency_sort_clamps_page(self, client):
        for name in ('A', 'B', 'C'):
            client.post('/api/leads/', json={'first_name': name, 'source': 'phone'})

        data = client.get('/api/leads/?sort=urgency&page=0&per_page=2').get_json()
        assert len(data['leads']) == 2
        assert data['page'] == 1
        assert data['pages'] == 2

        data = client.get('/api/leads/?sort=urgency&per_page=0').get_json()
        assert data['per_page'] == 1
        assert data['pages'] == 3

    def test_newest_sort_clamps_page(self, client):
        for name in ('A', 'B', 'C'):
            client.post('/api/leads/', json={'first_name': name, 'source': 'phone'})
        data = client.get('/api/leads/?page=0&per_page=2').get_json()
        assert len(data['leads']) == 2
        assert data['page'] == 1
        assert data['pages'] == 2

    def test_convert_lead_creates_client(self, client):
        lead = client.post('/api/leads/', json={
            'first_name': 'Maria', 'last_name': 'Lopez', 'source': 'referral',
            'email': 'maria@example.com', 'phone': '555-222-3333'
        }).get_json()

        response = client.post(f"/api/leads/{lead['id']}/convert")
        assert response.status_code == 201
        data = response.get_json()
        assert data['lead']['status'] == 'converted'
        assert data['lead']['converted_at'] is not None
        assert data['lead']['converted_client_id'] == data['client']['id']
        assert data['client']['email'] == 'maria@example.com'
        assert Client.query.count() == 1

    def test_convert_twice_is_conflict(self, client):
        lead = client.post('/api/leads/', json={
            'first_name': 'Maria', 'last_name': 'Lopez', 'source': 'phone'
        }).get_json()
        client.post(f"/api/leads/{lead['id']}/convert")
        assert client.post(f"/api/leads/{lead['id']}/convert").status_code == 409

    def test_convert_without_last_name(self, client):
        lead = client.post('/api/leads/', json={'first_name': 'Maria', 'source': 'phone'}).get_json()
        assert client.post(f"/api/leads/{lead['id']}/convert").status_code == 400
        response = client.post(f"/api/leads/{lead['id']}/convert", json={'last_name': 'Lopez'})
        assert response.status_code == 201

    def test_analytics_endpoint(self, client):
        client.post('/api/leads/', json={'first_name': 'A', 'source': 'phone'})
        client.post('/api/leads/', json={'first_name': 'B', 'source': 'phone'})
        client.post('/api/leads/', json={'first_name': 'C', 'source': 'email'})

        sources = client.get('/api/leads/analytics').get_json()['sources']
        assert sources[0]['source'] == 'phone'
        assert sources[0]['total'] == 2
