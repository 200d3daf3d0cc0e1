"""transactions table. Append-only audit trail: rows are written once and never updated or deleted."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from podtrack.api.models.base import Base, new_id, utcnow


class ImmutableRecordError(RuntimeError):
    """Raised when code tries to update or delete an audit record."""


class Transaction(Base):
    """Audit record: entity_type + entity_id + action, with an opaque JSON snapshot in details."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_entity", "entity_type", "entity_id"),
        Index("ix_transactions_created", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    pod_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


@event.listens_for(Transaction, "before_update")
def _reject_update(mapper, connection, target) -> None:
    raise ImmutableRecordError(f"transaction {target.id} is write-once")


@event.listens_for(Transaction, "before_delete")
def _reject_delete(mapper, connection, target) -> None:
    raise ImmutableRecordError(f"transaction {target.id} cannot be deleted")
