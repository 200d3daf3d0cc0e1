"""Pod field registry. The only gate between client-supplied field names and SQL columns."""

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstrumentedAttribute

from podtrack.api.models.pod import Pod
from podtrack.api.services.errors import InvalidField

# Lifecycle flags and the surrogate key are never client-filterable.
HIDDEN_FIELDS = frozenset({"id", "is_history", "is_deleted", "should_display"})

FILTERABLE_FIELDS: frozenset[str] = frozenset(
    attr.key for attr in sa_inspect(Pod).column_attrs if attr.key not in HIDDEN_FIELDS
)


def validate(field_name: object) -> bool:
    """True if field_name is a declared, client-visible pod field."""
    return isinstance(field_name, str) and field_name in FILTERABLE_FIELDS


def require_field(field_name: object) -> str:
    """Return field_name if registered. Raises InvalidField otherwise."""
    if not validate(field_name):
        raise InvalidField(field_name)
    return field_name


def column_for(field_name: object) -> InstrumentedAttribute:
    """Return the Pod column for a registered field. Raises InvalidField for anything else."""
    return getattr(Pod, require_field(field_name))
