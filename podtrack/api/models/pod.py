"""pods table. Work items tracked through active -> history; tombstoned via is_deleted, never deleted."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from podtrack.api.models.base import Base, new_id, utcnow

# Reserved: "no priority assigned". Always sorts after every real priority.
NO_PRIORITY = 9999


class Pod(Base):
    __tablename__ = "pods"
    __table_args__ = (
        Index("ix_pods_partition", "is_history", "is_deleted", "should_display"),
        Index("ix_pods_code", "pod"),
        Index("ix_pods_priority_created", "priority", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    pod: Mapped[str] = mapped_column(String(255), nullable=False)
    internal_pod_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    assigned_engineer: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    assigned_engineer_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(64), nullable=False, default="Initial")
    sub_status: Mapped[str] = mapped_column(String(64), nullable=False, default="Assignment")
    org: Mapped[str] = mapped_column(String(64), nullable=False, default="ENG")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_PRIORITY)
    clli: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    state: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    router_type: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    router1: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    router2: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    pod_program_type: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    tenant_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    current_lep_version: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    lep_version_to_be_applied: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    pod_type: Mapped[str] = mapped_column(String(64), nullable=False, default="eUPF")
    pod_type_original: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    special: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    creation_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_calculated_nbd: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pod_workable_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_elapsed_cycle_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workable_cycle_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Lifecycle flags. Not filterable by clients; see services.field_registry.
    is_history: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    should_display: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=True
    )
