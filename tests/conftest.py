"""
Pytest configuration and fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models.database import init_db
from models.entities import User
from core.access_control import AccessControlService


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across the test's connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session whose work is discarded after the test."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.rollback()
    session.close()


def _user(session, username, full_name):
    user = User(username=username, full_name=full_name, email=f"{username}@example.com")
    session.add(user)
    session.flush()
    return user


@pytest.fixture
def alice(session):
    """Owner in most tests."""
    return _user(session, "alice", "Alice Novak")


@pytest.fixture
def bob(session):
    """Non-owner who requests access."""
    return _user(session, "bob", "Bob Lindqvist")


@pytest.fixture
def carol(session):
    """A third user."""
    return _user(session, "carol", "Carol Mendes")


@pytest.fixture
def service(session):
    """Access control service with conservative redaction."""
    return AccessControlService(session, honor_grants=False)


@pytest.fixture
def category(service, alice):
    """Alice's 'Electronics' category."""
    return service.create_resource(alice.id, "category", {
        'name': "Electronics",
        'description': "Mains powered devices"
    })


@pytest.fixture
def product(service, alice, category):
    """Alice's charger with a full GPSR record."""
    return service.create_resource(alice.id, "product", {
        'category_id': category['id'],
        'gpsr_identification_details': "USB-C Charger AC-65",
        'gpsr_warning_phrases': ["Indoor use only"],
        'gpsr_warning_text': "Do not cover while charging.",
        'gpsr_pictograms': ["pictograms/indoor.svg"],
        'gpsr_statement_of_compliance': True,
        'gpsr_online_instructions_url': "https://example.com/ac-65",
        'gpsr_moderation_status': "approved",
    })
