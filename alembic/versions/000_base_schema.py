"""Base schema: users, pods, transactions.

Migration 001 adds notifications.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "000_base"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Reserved "no priority" value; must match podtrack.api.models.pod.NO_PRIORITY
NO_PRIORITY = 9999


def upgrade() -> None:
    # 1) users (pods and transactions reference it)
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="REGULAR"),
        sa.Column("is_imported_profile", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("merged_into_user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_users_merged_into", "users", ["merged_into_user_id"], unique=False)
    op.create_index("ix_users_name", "users", ["name"], unique=False)

    # 2) pods
    op.create_table(
        "pods",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("pod", sa.String(255), nullable=False),
        sa.Column("internal_pod_id", sa.String(255), nullable=False, server_default=""),
        sa.Column("type", sa.String(128), nullable=False, server_default=""),
        sa.Column("assigned_engineer", sa.String(320), nullable=False, server_default=""),
        sa.Column("assigned_engineer_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(64), nullable=False, server_default="Initial"),
        sa.Column("sub_status", sa.String(64), nullable=False, server_default="Assignment"),
        sa.Column("org", sa.String(64), nullable=False, server_default="ENG"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text(str(NO_PRIORITY))),
        sa.Column("clli", sa.String(64), nullable=False, server_default=""),
        sa.Column("city", sa.String(128), nullable=False, server_default=""),
        sa.Column("state", sa.String(64), nullable=False, server_default=""),
        sa.Column("router_type", sa.String(64), nullable=False, server_default=""),
        sa.Column("router1", sa.String(128), nullable=False, server_default=""),
        sa.Column("router2", sa.String(128), nullable=False, server_default=""),
        sa.Column("pod_program_type", sa.String(128), nullable=False, server_default=""),
        sa.Column("tenant_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("current_lep_version", sa.String(64), nullable=False, server_default=""),
        sa.Column("lep_version_to_be_applied", sa.String(64), nullable=False, server_default=""),
        sa.Column("pod_type", sa.String(64), nullable=False, server_default="eUPF"),
        sa.Column("pod_type_original", sa.String(128), nullable=False, server_default=""),
        sa.Column("special", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("creation_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sla_calculated_nbd", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pod_workable_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_elapsed_cycle_time", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("workable_cycle_time", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_history", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("should_display", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_pods_partition", "pods", ["is_history", "is_deleted", "should_display"], unique=False)
    op.create_index("ix_pods_code", "pods", ["pod"], unique=False)
    op.create_index("ix_pods_priority_created", "pods", ["priority", "created_at"], unique=False)

    # 3) transactions (append-only audit trail)
    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("pod_id", sa.String(36), nullable=True),
        sa.Column("created_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_transactions_entity", "transactions", ["entity_type", "entity_id"], unique=False)
    op.create_index("ix_transactions_created", "transactions", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("pods")
    op.drop_table("users")
