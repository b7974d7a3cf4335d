"""
Pytest configuration and fixtures for registration ledger tests.
"""
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'
os.environ['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'

from registration.app import create_app
from registration.config import TestingConfig, config
from registration.models import db, Group, Title

ADMIN_HEADERS = {'X-Admin-Token': TestingConfig.ADMIN_TOKEN}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        # Clear all tables before each test
        db.session.remove()

        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


def seed_ledger(groups=None, titles=None):
    """Insert groups ({number: secret}) and titles directly, bypassing the catalog."""
    for number, secret in (groups or {}).items():
        db.session.add(Group(group_number=number, secret_code=secret, is_assigned=False))
    for title in titles or []:
        db.session.add(Title(title=title, assigned=False))
    db.session.commit()


@pytest.fixture
def seed():
    """Direct ledger seeding helper, for use inside an app context."""
    return seed_ledger


@pytest.fixture
def seeded(app, db_session):
    """Group 101 (code S1) and 102 (code S2), titles 'AI Chatbot' and 'Smart Farming'."""
    with app.app_context():
        seed_ledger(
            groups={'101': 'S1', '102': 'S2'},
            titles=['AI Chatbot', 'Smart Farming']
        )
    return app


@pytest.fixture
def registration_payload():
    """Factory for register request bodies."""
    def make(**overrides):
        payload = {
            'leaderEmail': 'x@y.com',
            'leaderName': 'Asha Patil',
            'college': 'COEP',
            'contact': '9876543210',
            'teamName': 'Byte Benders',
            'membersCount': 1,
            'members': [{'name': 'Ravi', 'email': 'ravi@y.com', 'role': 'Developer'}],
            'groupNumber': '101',
            'secretCode': 'S1',
            'projectTitle': 'AI Chatbot',
            'locationMode': 'Offline',
        }
        payload.update(overrides)
        return payload
    return make


@pytest.fixture
def engine(app):
    return app.engine


@pytest.fixture
def catalog(app):
    return app.catalog


@pytest.fixture
def file_app(tmp_path):
    """
    Application on a file-backed SQLite database, so each thread gets its
    own connection and session. Used for concurrency tests.
    """
    class FileConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ledger.db'}"

    config['file-testing'] = FileConfig
    try:
        app = create_app('file-testing')
    finally:
        config.pop('file-testing', None)

    with app.app_context():
        seed_ledger(
            groups={'101': 'S1', '102': 'S2', '103': 'S3'},
            titles=['AI Chatbot', 'Smart Farming', 'Campus Navigator']
        )

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
