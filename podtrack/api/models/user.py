"""users table. Registered accounts and bulk-imported engineer profiles; merged profiles are tombstones."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from podtrack.api.models.base import Base, new_id, utcnow


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_merged_into", "merged_into_user_id"),
        Index("ix_users_name", "name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="REGULAR")
    is_imported_profile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set => tombstone; never resolved as a canonical identity
    merged_into_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=True
    )
