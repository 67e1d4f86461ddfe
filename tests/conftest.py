"""
Pytest configuration and shared fixtures
"""
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import TestingConfig
from fieldservice import create_app, db as _db
from fieldservice.utils.db_init import initialize_database


@pytest.fixture
def app():
    """Application bound to a fresh in-memory database"""
    app = create_app(TestingConfig)
    with app.app_context():
        initialize_database()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_client(db):
    """Factory for persisted Client rows"""
    from fieldservice.models.client import Client

    def _make(**overrides):
        fields = {'first_name': 'Jane', 'last_name': 'Doe', 'email': 'jane@example.com'}
        fields.update(overrides)
        client = Client(**fields)
        db.session.add(client)
        db.session.commit()
        return client

    return _make


@pytest.fixture
def make_job(db, make_client):
    """Factory for persisted Job rows; creates a client when none is given"""
    from fieldservice.models.job import Job

    counter = {'n': 0}

    def _make(client=None, **overrides):
        counter['n'] += 1
        client = client or make_client()
        fields = {
            'job_number': f"JOB-T{counter['n']:04d}",
            'client_id': client.id,
            'title': 'Service call',
            'status': 'quote',
            'subtotal': 0,
            'tax': 0,
            'total': 0,
            'amount_paid': 0,
            'payment_status': 'unpaid',
        }
        fields.update(overrides)
        job = Job(**fields)
        db.session.add(job)
        db.session.commit()
        return job

    return _make


@pytest.fixture
def sample_client_data():
    return {
        'first_name': 'John',
        'last_name': 'Smith',
        'company_name': 'Smith Plumbing Supply',
        'email': 'john@smithsupply.com',
        'phone': '555-123-4567',
        'source': 'referral'
    }
