"""
Pytest fixtures for fieldsales backend tests.

Provides test database setup, two independent tenants (admin A and admin B,
each with a manager, an agent and a product) and a test client.
"""

import pytest
from fieldsales import create_app
from fieldsales.extensions import db
from fieldsales.models import Agent, Manager, Product, User
from fieldsales.models.auth import ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER
from fieldsales.services.auth_service import create_user
from fieldsales.services.hierarchy_service import Principal


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'NOTIFICATIONS_ASYNC': False,
        'BCRYPT_ROUNDS': 4,
        'RESEND_API_KEY': None,
        'RESEND_FROM_EMAIL': None,
        'TWILIO_ACCOUNT_SID': None,
        'TWILIO_AUTH_TOKEN': None,
        'TWILIO_FROM_NUMBER': None,
    })

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
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def principal(user: User) -> Principal:
    """Principal exactly as require_auth would build it."""
    return Principal.from_user(user)


def make_login(name: str, email: str, role: str, created_by_admin_id: int | None = None) -> User:
    return create_user(
        name=name,
        email=email,
        password=PASSWORD,
        role=role,
        created_by_admin_id=created_by_admin_id,
        phone="+10000000000",
    )


def make_manager(db_session, admin: User, name: str, email: str) -> Manager:
    make_login(name, email, ROLE_MANAGER, admin.id)
    manager = Manager(admin_id=admin.id, name=name, email=email, phone="+10000000001")
    db_session.add(manager)
    db_session.commit()
    return manager


def make_agent(db_session, admin: User, manager: Manager | None, name: str, email: str) -> Agent:
    make_login(name, email, ROLE_AGENT, admin.id)
    agent = Agent(
        manager_id=manager.id if manager else None,
        owner_admin_id=admin.id,
        name=name,
        email=email,
        phone="+10000000002",
        location="Nairobi",
        government_id=f"GOV-{email}",
    )
    db_session.add(agent)
    db_session.commit()
    return agent


def login_for(email: str) -> User:
    return db.session.query(User).filter_by(email=email).one()


@pytest.fixture(scope='function')
def admin_a(db_session):
    """Admin A: root of the first tenant."""
    return make_login("Admin A", "admin_a@acme.com", ROLE_ADMIN)


@pytest.fixture(scope='function')
def admin_b(db_session):
    """Admin B: root of the second tenant."""
    return make_login("Admin B", "admin_b@beta.com", ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_a(db_session, admin_a):
    return make_manager(db_session, admin_a, "Manager A", "manager_a@acme.com")


@pytest.fixture(scope='function')
def manager_b(db_session, admin_b):
    return make_manager(db_session, admin_b, "Manager B", "manager_b@beta.com")


@pytest.fixture(scope='function')
def agent_a(db_session, admin_a, manager_a):
    return make_agent(db_session, admin_a, manager_a, "Agent A", "agent_a@acme.com")


@pytest.fixture(scope='function')
def agent_b(db_session, admin_b, manager_b):
    return make_agent(db_session, admin_b, manager_b, "Agent B", "agent_b@beta.com")


@pytest.fixture(scope='function')
def product_a(db_session, admin_a):
    """10 units at $5.00 in tenant A."""
    product = Product(owner_admin_id=admin_a.id, name="Product A", price_cents=500, quantity=10)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, admin_b):
    """5 units at $20.00 in tenant B."""
    product = Product(owner_admin_id=admin_b.id, name="Product B", price_cents=2000, quantity=5)
    db_session.add(product)
    db_session.commit()
    return product


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
