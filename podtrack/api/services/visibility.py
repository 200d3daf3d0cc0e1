"""Role-based visibility policy and pod lifecycle partitions.

One table decides which pods a role may see. The predicate it yields is ANDed onto every
row-level pod read and can never be replaced or widened by client filters (should_display
is not a registry field).
"""

import enum

from podtrack.api.services.errors import Forbidden


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    PRIORITY = "PRIORITY"
    ADMIN = "ADMIN"
    REGULAR = "REGULAR"


class Partition(str, enum.Enum):
    """Lifecycle partition of live (non-tombstoned) pods."""

    ACTIVE = "active"
    HISTORY = "history"

    @property
    def is_history(self) -> bool:
        return self is Partition.HISTORY

    @classmethod
    def from_flag(cls, is_history: bool) -> "Partition":
        return cls.HISTORY if is_history else cls.ACTIVE


# Role -> required should_display value. None: no extra predicate.
VISIBILITY_POLICY: dict[Role, bool | None] = {
    Role.SUPER_ADMIN: None,
    Role.PRIORITY: False,
    Role.ADMIN: True,
    Role.REGULAR: True,
}

# Roles allowed to run each privileged pod/user mutation. Anything not listed is open to every role.
MUTATION_ROLES: dict[str, frozenset[Role]] = {
    "update_priority": frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.PRIORITY}),
    "delete": frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    "move_to_active": frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    "toggle_visibility": frozenset({Role.SUPER_ADMIN}),
    "update_role": frozenset({Role.SUPER_ADMIN}),
    "merge_profile": frozenset({Role.SUPER_ADMIN}),
}


def parse_role(value: str | Role | None) -> Role:
    """Return Role for value. Unknown roles fail closed."""
    try:
        return Role(value)
    except ValueError:
        raise Forbidden(f"Unknown role: {value!r}") from None


def required_should_display(role: str | Role | None) -> bool | None:
    """Look up the mandatory should_display value for role (None = sees both)."""
    return VISIBILITY_POLICY[parse_role(role)]


def should_display_for_creator(role: str | Role) -> bool:
    """should_display for a pod created by role: PRIORITY-created pods are hidden from general roles."""
    return parse_role(role) is not Role.PRIORITY


def require_role(role: str | Role | None, action: str) -> Role:
    """Raise Forbidden unless role may perform action."""
    parsed = parse_role(role)
    allowed = MUTATION_ROLES.get(action)
    if allowed is not None and parsed not in allowed:
        raise Forbidden(f"Role {parsed.value} may not {action}")
    return parsed
