"""
Pytest fixtures for Arizona@Work backend tests.

Provides test database setup, department/user/budget/vendor factories,
and a test client with session login.
"""

import pytest
from datetime import date
from decimal import Decimal

from azwork import create_app
from azwork.extensions import db
from azwork.models import Department, Grant, User, Vendor, Budget, BudgetAllocation
from azwork.services.auth_service import hash_password
from azwork.services import permission_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


# =============================================================================
# REFERENCE DATA
# =============================================================================

@pytest.fixture(scope='function')
def finance_dept(db_session):
    dept = Department(name="Finance", slug="Finance")
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture(scope='function')
def workforce_dept(db_session):
    dept = Department(name="Workforce Services", slug="workforce")
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture(scope='function')
def grant(db_session):
    grant = Grant(name="WIOA Adult", grant_code="WIOA-A")
    db_session.add(grant)
    db_session.commit()
    return grant


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user("jdoe", "staff", department) -> User"""
    password_hash = hash_password(TEST_PASSWORD, rounds=4)

    def _make(username, role, department=None, is_active=True):
        user = User(
            username=username,
            password_hash=password_hash,
            role=role,
            department_id=department.id if department else None,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def make_budget(db_session, grant, workforce_dept):
    """Factory: make_budget("Name", "Staff", owner) -> Budget"""
    def _make(name, budget_type, owner=None, fiscal_year_start=date(2024, 7, 1), department=None, grant_obj=None):
        budget = Budget(
            name=name,
            budget_type=budget_type,
            user_id=owner.id if owner else None,
            grant_id=(grant_obj or grant).id,
            department_id=(department or workforce_dept).id,
            fiscal_year_start=fiscal_year_start,
            fiscal_year_end=date(fiscal_year_start.year + 1, 6, 30),
        )
        db_session.add(budget)
        db_session.commit()
        return budget

    return _make


@pytest.fixture(scope='function')
def make_vendor(db_session):
    def _make(name, client_name_required=False, is_active=True):
        vendor = Vendor(name=name, client_name_required=client_name_required, is_active=is_active)
        db_session.add(vendor)
        db_session.commit()
        return vendor

    return _make


@pytest.fixture(scope='function')
def make_allocation(db_session):
    """Factory: insert an allocation directly, bypassing the service."""
    def _make(budget, created_by, vendor=None, **fields):
        values = {
            "transaction_date": date(2024, 8, 15),
            "payment_status": "Unpaid",
            "funding_dw": Decimal("100.00"),
        }
        values.update(fields)
        allocation = BudgetAllocation(
            budget_id=budget.id,
            vendor_id=vendor.id if vendor else None,
            created_by_user_id=created_by.id,
            **values,
        )
        db_session.add(allocation)
        db_session.commit()
        return allocation

    return _make


# =============================================================================
# USERS AND ACTORS
# =============================================================================

@pytest.fixture(scope='function')
def director(make_user, workforce_dept):
    return make_user("director", "director", workforce_dept)


@pytest.fixture(scope='function')
def administrator(make_user):
    return make_user("administrator", "administrator")


@pytest.fixture(scope='function')
def finance_user(make_user, finance_dept):
    return make_user("finance", "azwk_staff", finance_dept)


@pytest.fixture(scope='function')
def staff_a(make_user, workforce_dept):
    return make_user("staff_a", "azwk_staff", workforce_dept)


@pytest.fixture(scope='function')
def staff_b(make_user, workforce_dept):
    return make_user("staff_b", "outside_staff", workforce_dept)


@pytest.fixture(scope='function')
def kiosk_user(make_user):
    return make_user("kiosk", "kiosk")


@pytest.fixture(scope='function')
def actor_for(db_session):
    """Resolve the ActorContext for a user the way require_actor does."""
    def _actor(user):
        return permission_service.load_actor(user.id)
    return _actor


@pytest.fixture(scope='function')
def login(client):
    """Put a user into the test client's session."""
    def _login(user):
        with client.session_transaction() as sess:
            sess["user_id"] = user.id
            sess["active_role"] = user.role
    return _login
