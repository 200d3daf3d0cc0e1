"""Audit trail recorder.

record() runs inside the caller's unit of work and is flushed before the mutation it documents.
If it fails, AuditWriteFailed propagates, get_db() rolls back, and the mutation never becomes
visible. There is no update or delete path for transactions.
"""

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from podtrack.api.models.transaction import Transaction
from podtrack.api.services.errors import AuditWriteFailed, InvalidPayload

logger = logging.getLogger(__name__)


def serialize_details(details: Any) -> str:
    """JSON text for details. Strings are stored as-is (already serialized by the caller)."""
    if isinstance(details, str):
        return details
    try:
        return json.dumps(details, default=str, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise InvalidPayload("details is not serializable") from e


def _write(session: Session, txn: Transaction) -> None:
    session.add(txn)
    session.flush([txn])


def record(
    session: Session,
    entity_type: str,
    entity_id: str,
    action: str,
    details: Any,
    actor_id: str,
    pod_id: str | None = None,
) -> Transaction:
    """Write one audit record in session and flush it. Raises AuditWriteFailed on any store error."""
    if not entity_type or not entity_id or not action:
        raise InvalidPayload("entity_type, entity_id and action are required")
    if not actor_id:
        raise AuditWriteFailed("Audit record requires an actor")
    txn = Transaction(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        details=serialize_details(details),
        pod_id=pod_id,
        created_by_id=actor_id,
    )
    try:
        _write(session, txn)
    except SQLAlchemyError as e:
        logger.error(
            "audit write failed entity_type=%s entity_id=%s action=%s actor=%s: %s",
            entity_type,
            entity_id,
            action,
            actor_id,
            e,
        )
        raise AuditWriteFailed() from e
    logger.info("audit %s %s/%s by %s", action, entity_type, entity_id, actor_id)
    return txn
