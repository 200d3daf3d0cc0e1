"""Alembic migrations build the same tables as the models (Postgres only)."""

from sqlalchemy import create_engine, inspect

from podtrack.api.models import Base
from tests._db_bootstrap import resolve_test_database_url, run_alembic_upgrade_head
from tests.conftest import requires_postgres


@requires_postgres
def test_upgrade_head_is_idempotent_and_matches_models() -> None:
    url = resolve_test_database_url()
    run_alembic_upgrade_head(url)
    run_alembic_upgrade_head(url)
    eng = create_engine(url)
    try:
        insp = inspect(eng)
        for table in Base.metadata.sorted_tables:
            cols = {c["name"] for c in insp.get_columns(table.name)}
            assert cols == {c.name for c in table.columns}, table.name
    finally:
        eng.dispose()
