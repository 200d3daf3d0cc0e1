"""Pod query choke point. Every pod read MUST start from one of these builders.

Provides:
  - partition_where(partition): live pods of one lifecycle partition (is_deleted is always false)
  - visibility_where(role): mandatory should_display clause for role, or None for SUPER_ADMIN
  - select_pods_for_actor(role, partition): Select with partition AND visibility applied
  - select_pods_in_partition(partition): Select with partition only (facet path, no role gate)
Caller filters are added with .where(), which only narrows; nothing here can be widened.
"""

from sqlalchemy import ColumnElement, Select, and_, false, select

from podtrack.api.models.pod import Pod
from podtrack.api.services.visibility import Partition, Role, required_should_display


def live_where() -> ColumnElement[bool]:
    """WHERE is_deleted = false. Tombstoned pods are invisible to every read path."""
    return Pod.is_deleted == false()


def partition_where(partition: Partition) -> ColumnElement[bool]:
    """Return WHERE clause for one lifecycle partition of live pods."""
    return and_(Pod.is_history == partition.is_history, live_where())


def visibility_where(role: str | Role | None) -> ColumnElement[bool] | None:
    """Return the role's mandatory should_display clause, or None when the role sees every row."""
    required = required_should_display(role)
    if required is None:
        return None
    return Pod.should_display == required


def gate_where(role: str | Role | None) -> ColumnElement[bool]:
    """live_where() AND visibility_where(role). For lookups that span both partitions."""
    vis = visibility_where(role)
    return live_where() if vis is None else and_(live_where(), vis)


def select_pods_for_actor(role: str | Role | None, partition: Partition) -> Select[tuple[Pod]]:
    """Select pods of partition that role may see. Add .where() for further filters."""
    stmt = select(Pod).where(partition_where(partition))
    vis = visibility_where(role)
    if vis is not None:
        stmt = stmt.where(vis)
    return stmt


def select_pods_in_partition(partition: Partition) -> Select[tuple[Pod]]:
    """Select pods of partition with no role gate. Facet resolver only."""
    return select(Pod).where(partition_where(partition))
