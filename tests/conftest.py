import os
import sys
import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Keep the app's own startup from creating ./expense.db during tests.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from main import app, get_session  # noqa: E402
from repository import ExpenseRepository  # noqa: E402
from services import ExpenseService  # noqa: E402


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
DBSession = Session


@pytest.fixture(scope="function")
def client():
    """Return a TestClient wired to a fresh in-memory database for each test."""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    def override_get_session():
        with DBSession(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_session, None)


@pytest.fixture
def session():
    """A session on a fresh in-memory database, for repository/service tests."""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    with DBSession(test_engine) as db_session:
        yield db_session


@pytest.fixture
def repository(session):
    return ExpenseRepository(session)


@pytest.fixture
def service(repository):
    return ExpenseService(repository)


@pytest.fixture
def expense_count():
    """Count rows straight from the database, bypassing the app."""
    from sqlmodel import select, func
    from models import Expense

    def _count() -> int:
        with DBSession(test_engine) as db_session:
            return db_session.exec(select(func.count()).select_from(Expense)).one()

    return _count
