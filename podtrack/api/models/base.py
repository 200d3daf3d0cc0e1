"""SQLAlchemy declarative base and shared columns."""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def new_id() -> str:
    """Primary keys are uuid4 strings so SQLite and Postgres store them the same way."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Client-side timestamp default (microsecond precision on every backend)."""
    return datetime.now(timezone.utc)
