import pytest
import os
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["BOOTSTRAP_ON_STARTUP"] = "false"

from app.database import Base, get_db
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Fresh schema per test. Services commit their own transactions, so each
    test gets new tables instead of an outer rollback.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def roles(db_session):
    """The built-in roles, keyed by name."""
    from app.core.init_system import seed_roles

    roles = seed_roles(db_session)
    db_session.commit()
    return roles


@pytest.fixture(scope="function")
def department(db_session):
    from app.models.department import Department

    dept = Department(name="Engineering", code="ENG", is_active=True)
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture(scope="function")
def make_user(db_session, roles):
    """Factory: make_user("lead@acme.test", "TEAM_LEAD", department=..., manager=...)."""
    from app.models.user import User

    def _make_user(email, role_name, department=None, manager=None, team_lead=None, gender=None, is_active=True):
        user = User(
            email=email,
            full_name=email.split("@")[0].title(),
            role_id=roles[role_name].id,
            department_id=department.id if department else None,
            manager_id=manager.id if manager else None,
            team_lead_id=team_lead.id if team_lead else None,
            gender=gender,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def hr_user(make_user):
    return make_user("hr@acme.test", "HR")


@pytest.fixture(scope="function")
def manager(db_session, make_user, department):
    user = make_user("manager@acme.test", "MANAGER", department=department)
    department.manager_user_id = user.id
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def team_lead(make_user, department, manager):
    return make_user("lead@acme.test", "TEAM_LEAD", department=department, manager=manager)


@pytest.fixture(scope="function")
def employee(make_user, department, manager, team_lead):
    return make_user("employee@acme.test", "EMPLOYEE", department=department, manager=manager, team_lead=team_lead)


@pytest.fixture(scope="function")
def leave_type(db_session):
    from app.models.leave_type import LeaveType

    annual = LeaveType(name="Annual Leave", default_days=Decimal("20"), is_active=True, is_half_day_allowed=True)
    db_session.add(annual)
    db_session.commit()
    return annual


@pytest.fixture(scope="function")
def grant_balance(db_session, leave_type):
    """Factory: entitlement rows for this year and next, so week-spanning dates are covered."""
    from app.models.leave_balance import LeaveBalance

    def _grant(user, days="20", used="0", year=None):
        years = [year] if year else [date.today().year, date.today().year + 1]
        rows = []
        for y in years:
            row = LeaveBalance(
                user_id=user.id,
                leave_type_id=leave_type.id,
                year=y,
                balance=Decimal(days),
                used=Decimal(used),
                carry_forward=Decimal("0"),
            )
            db_session.add(row)
            rows.append(row)
        db_session.commit()
        return rows[0]
    return _grant


@pytest.fixture(scope="function")
def default_workflows(db_session, roles):
    """Short (TEAM_LEAD), Medium (TEAM_LEAD, MANAGER), Long (TEAM_LEAD, MANAGER, HR)."""
    from app.core.init_system import seed_workflows
    from app.models.approval_workflow import ApprovalWorkflow

    seed_workflows(db_session, roles)
    db_session.commit()
    return {w.name: w for w in db_session.query(ApprovalWorkflow).all()}


@pytest.fixture(scope="function")
def next_monday():
    """A Monday strictly in the future whose following week stays in the same year."""
    today = date.today()
    monday = today + timedelta(days=7 - today.weekday())
    if (monday + timedelta(days=7)).year != monday.year:
        monday += timedelta(days=14)
    return monday


@pytest.fixture(scope="function")
def balance_of(db_session, leave_type):
    """Reads the ledger row backing a request's start-date year."""
    from app.models.leave_balance import LeaveBalance

    def _balance_of(user, year):
        db_session.expire_all()
        return (
            db_session.query(LeaveBalance)
            .filter(
                LeaveBalance.user_id == user.id,
                LeaveBalance.leave_type_id == leave_type.id,
                LeaveBalance.year == year,
            )
            .one()
        )
    return _balance_of


@pytest.fixture(scope="function")
def as_user():
    """Identity headers as forwarded by the gateway."""
    def _as_user(user):
        return {"X-User-ID": str(user.id)}
    return _as_user


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
