"""Pytest fixtures for root-level tests (invariants, architecture, scripts)."""

import pytest

from tests._db_bootstrap import is_postgres, resolve_test_database_url

# Marker for Postgres-only tests (Alembic): skip unless DATABASE_TEST_URL points at Postgres
requires_postgres = pytest.mark.skipif(
    not is_postgres(resolve_test_database_url()),
    reason="DATABASE_TEST_URL not set to a Postgres database",
)
