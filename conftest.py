"""Root conftest: test env, DB bootstrap and shared fixtures for ALL test paths (tests/, podtrack/api/tests/)."""

import os

import pytest

# Must run before podtrack.api.config / podtrack.api.db are imported
os.environ["ENV"] = "test"
os.environ.setdefault("PYTEST_RUNNING", "1")

from tests._db_bootstrap import prepare_schema, resolve_test_database_url

DATABASE_TEST_URL = resolve_test_database_url()
os.environ["DATABASE_URL"] = DATABASE_TEST_URL

from podtrack.api.db import SessionLocal, clear_tables
from podtrack.api.models import NO_PRIORITY, Pod, User
from podtrack.api.models.base import new_id


@pytest.fixture(scope="session", autouse=True)
def test_db_schema():
    """Build the schema once per session (Alembic on Postgres, ensure_tables on SQLite)."""
    prepare_schema(DATABASE_TEST_URL)


@pytest.fixture(autouse=True)
def clean_db(test_db_schema):
    """Every test starts from empty tables."""
    clear_tables()
    yield
    clear_tables()


@pytest.fixture
def make_user():
    """Factory: insert a user and return its id."""

    def _make(role: str = "REGULAR", email: str | None = None, name: str | None = None, **kw) -> str:
        uid = kw.pop("id", None) or new_id()
        with SessionLocal() as session:
            session.add(User(id=uid, email=email, name=name, role=role, **kw))
            session.commit()
        return uid

    return _make


@pytest.fixture
def make_pod():
    """Factory: insert a pod and return its id. Defaults: active, visible, no priority."""

    def _make(pod: str = "POD-1", **kw) -> str:
        kw.setdefault("priority", NO_PRIORITY)
        pid = kw.pop("id", None) or new_id()
        with SessionLocal() as session:
            session.add(Pod(id=pid, pod=pod, **kw))
            session.commit()
        return pid

    return _make
