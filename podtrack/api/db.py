"""Database session factory and bootstrap."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from podtrack.api.config import config
from podtrack.api.models import Base

DATABASE_URL = config.DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    """SQLite (local/test) shares one connection so :memory: databases survive across sessions."""
    if url.strip().lower().startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


engine = create_engine(
    DATABASE_URL,
    echo=config.SQL_ECHO,
    **_engine_kwargs(DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Provide a transactional scope. Commit on success; any exception rolls back the whole unit of work."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ensure_tables(bind=None) -> None:
    """Create all tables if they do not exist (checkfirst). SQLite only; Postgres schema is owned by Alembic."""
    bind = bind if bind is not None else engine
    if bind.dialect.name == "postgresql":
        return
    Base.metadata.create_all(bind=bind, checkfirst=True)


def clear_tables(bind=None) -> None:
    """Delete every row, children first. Test-only: transactions are otherwise never deleted."""
    bind = bind if bind is not None else engine
    with bind.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
