"""SQLAlchemy models. Pod reads MUST go through repositories.pod_filters (partition + visibility)."""

from podtrack.api.models.base import Base
from podtrack.api.models.notification import Notification
from podtrack.api.models.pod import NO_PRIORITY, Pod
from podtrack.api.models.transaction import ImmutableRecordError, Transaction
from podtrack.api.models.user import User

__all__ = [
    "Base",
    "ImmutableRecordError",
    "NO_PRIORITY",
    "Notification",
    "Pod",
    "Transaction",
    "User",
]
