"""Repository layer: partition- and role-scoped pod queries."""

from podtrack.api.repositories.pod_filters import (
    gate_where,
    live_where,
    partition_where,
    select_pods_for_actor,
    select_pods_in_partition,
    visibility_where,
)

__all__ = [
    "gate_where",
    "live_where",
    "partition_where",
    "select_pods_for_actor",
    "select_pods_in_partition",
    "visibility_where",
]
