"""Repository layer. Every public function takes the actor as its first argument; guard raises if missing.

RULE: Repo is the ONLY place allowed to run DB reads/writes (session.execute, get_db).
Pod row reads MUST start from repositories.pod_filters (select_pods_for_actor / gate_where), so
partition, tombstone and role visibility are applied before any caller filter.

GUARD: Every function MUST call require_actor(actor) before any DB access (load_actor excepted:
it is how the actor is built).
AUDIT: Every mutation calls audit.record(...) in the same unit of work, before changing rows.
"""

import functools
import logging
import reprlib
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import ColumnElement, func, inspect as sa_inspect, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from podtrack.api.db import get_db
from podtrack.api.models.base import new_id
from podtrack.api.models.notification import Notification
from podtrack.api.models.pod import NO_PRIORITY, Pod
from podtrack.api.models.transaction import Transaction
from podtrack.api.models.user import User
from podtrack.api.repositories.pod_filters import (
    gate_where,
    partition_where,
    select_pods_for_actor,
    select_pods_in_partition,
    visibility_where,
)
from podtrack.api.services import audit
from podtrack.api.services.actor_guard import Actor, require_actor
from podtrack.api.services.engineers import (
    CanonicalIdentity,
    display_name_for,
    engineer_name_lookup,
    resolve_engineers,
)
from podtrack.api.services.errors import Conflict, InvalidPayload, NotFound, StoreFailure
from podtrack.api.services.field_registry import column_for
from podtrack.api.services.filters import Criterion, facet_clauses, row_search_clauses
from podtrack.api.services.pagination import Page, PageRequest, ordering_for, total_pages
from podtrack.api.services.visibility import (
    Partition,
    Role,
    parse_role,
    require_role,
    should_display_for_creator,
)

logger = logging.getLogger(__name__)

POD_COLUMNS: tuple[str, ...] = tuple(attr.key for attr in sa_inspect(Pod).column_attrs)

# Set by the store, not by callers.
_SERVER_MANAGED = frozenset(
    {"id", "is_history", "is_deleted", "should_display", "created_by_id", "created_at", "updated_at", "completed_date"}
)


def _call_context(args: tuple, kwargs: dict) -> str:
    """actor=<user id> plus the remaining arguments, each repr shortened for the log line."""
    parts: list[str] = []
    rest = list(args)
    if rest and isinstance(rest[0], Actor):
        actor = rest.pop(0)
        parts.append(f"actor={actor.user_id} role={actor.role.value}")
    parts.extend(reprlib.repr(a) for a in rest)
    parts.extend(f"{k}={reprlib.repr(v)}" for k, v in kwargs.items())
    return " ".join(parts)


def _store_op(fn):
    """Log and wrap unexpected SQLAlchemy errors as StoreFailure. Domain errors pass through untouched."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("store failure in %s (%s)", fn.__name__, _call_context(args, kwargs))
            raise StoreFailure() from e

    return wrapper


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _pod_to_dict(pod: Pod) -> dict[str, Any]:
    return {key: getattr(pod, key) for key in POD_COLUMNS}


def _select_live_identities():
    """Non-merged users in creation order (the dedup resolver's "input order")."""
    return select(User).where(User.merged_into_user_id.is_(None)).order_by(User.created_at.asc(), User.id.asc())


def _canonical_engineers(session: Session) -> list[CanonicalIdentity]:
    return resolve_engineers(session.scalars(_select_live_identities()).all())


def _get_visible_pod(session: Session, actor: Actor, pod_id: str) -> Pod:
    """Live pod by id that actor may see, either partition. NotFound otherwise."""
    pod = session.scalars(select(Pod).where(Pod.id == pod_id, gate_where(actor.role))).first()
    if pod is None:
        raise NotFound("POD not found")
    return pod


def _get_visible_pod_by_code(session: Session, actor: Actor, code: str, partition: Partition) -> Pod:
    stmt = (
        select_pods_for_actor(actor.role, partition)
        .where(Pod.pod == code)
        .order_by(*ordering_for(partition))
    )
    pod = session.scalars(stmt).first()
    if pod is None:
        raise NotFound("POD not found" if partition is Partition.ACTIVE else "POD not found in history")
    return pod


def _active_code_exists(session: Session, code: str) -> bool:
    """Active-partition code uniqueness is global, independent of the caller's visibility."""
    stmt = select(Pod.id).where(partition_where(Partition.ACTIVE), Pod.pod == code).limit(1)
    return session.execute(stmt).first() is not None


def _get_live_user(session: Session, user_id: str) -> User:
    user = session.scalars(select(User).where(User.id == user_id, User.merged_into_user_id.is_(None))).first()
    if user is None:
        raise NotFound("User not found")
    return user


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------


@_store_op
def load_actor(user_id: str | None) -> Actor | None:
    """Resolve a live (non-merged) user into an Actor. None if unknown or tombstoned."""
    if not user_id or not str(user_id).strip():
        return None
    with get_db() as session:
        user = session.scalars(
            select(User).where(User.id == str(user_id).strip(), User.merged_into_user_id.is_(None))
        ).first()
        if user is None:
            return None
        return Actor(user_id=user.id, role=parse_role(user.role), email=user.email, name=user.name)


# ---------------------------------------------------------------------------
# Pod search and facets
# ---------------------------------------------------------------------------


@_store_op
def search_pods(
    actor: Actor | None,
    partition: Partition,
    criteria: Sequence[Criterion],
    page: PageRequest,
) -> Page[dict[str, Any]]:
    """Paginated row search under the actor's visibility gate.
    Count and page share one filtered statement. Rows carry assigned_engineer_name."""
    actor = require_actor(actor)
    stmt = select_pods_for_actor(actor.role, partition)
    clauses = row_search_clauses(criteria)
    if clauses:
        stmt = stmt.where(*clauses)
    count_stmt = select(func.count()).select_from(stmt.subquery())
    page_stmt = stmt.order_by(*ordering_for(partition)).limit(page.page_size).offset(page.offset)
    with get_db() as session:
        total = session.execute(count_stmt).scalar_one()
        pods = list(session.scalars(page_stmt).all())
        identities = session.scalars(_select_live_identities()).all() if any(p.assigned_engineer for p in pods) else []
    lookup = engineer_name_lookup(identities)
    rows = [
        {**_pod_to_dict(p), "assigned_engineer_name": display_name_for(lookup, p.assigned_engineer)}
        for p in pods
    ]
    return Page(
        rows=rows,
        total_count=total,
        total_pages=total_pages(total, page.page_size),
        current_page=page.page,
    )


@_store_op
def list_field_options(
    actor: Actor | None,
    field: str,
    criteria: Sequence[Criterion],
    partition: Partition,
) -> list[Any]:
    """Distinct non-null, non-empty values of field under the cascading facet filters, ascending.
    NOTE: no role visibility gate here (options may include values from rows the role cannot list)."""
    require_actor(actor)
    col = column_for(field)
    stmt = select_pods_in_partition(partition)
    clauses = facet_clauses(criteria)
    if clauses:
        stmt = stmt.where(*clauses)
    stmt = stmt.with_only_columns(col).distinct().order_by(col.asc())
    with get_db() as session:
        values = session.scalars(stmt).all()
    return [v for v in values if v is not None and v != ""]


@_store_op
def list_engineers(actor: Actor | None) -> list[CanonicalIdentity]:
    """Canonical engineer roster, recomputed from the live identity set."""
    require_actor(actor)
    with get_db() as session:
        return _canonical_engineers(session)


@_store_op
def get_active_pods_overview(actor: Actor | None) -> dict[str, Any]:
    """Active pods the actor may see (ordered by code) plus distinct filter values and the engineer roster."""
    actor = require_actor(actor)
    stmt = select_pods_for_actor(actor.role, Partition.ACTIVE).order_by(Pod.pod.asc(), Pod.id.asc())
    with get_db() as session:
        pods = list(session.scalars(stmt).all())
        canonicals = _canonical_engineers(session)

    def _distinct(attr: str) -> list[str]:
        return sorted({getattr(p, attr) for p in pods if getattr(p, attr)})

    return {
        "pods": [_pod_to_dict(p) for p in pods],
        "orgs": _distinct("org"),
        "pod_program_types": _distinct("pod_program_type"),
        "pod_types": _distinct("pod_type_original"),
        "engineers": canonicals,
    }


@_store_op
def find_duplicate_codes(actor: Actor | None, codes: Sequence[str]) -> list[str]:
    """Codes from codes that already exist among live active pods."""
    require_actor(actor)
    wanted = sorted({c.strip() for c in codes if c and c.strip()})
    if not wanted:
        return []
    stmt = (
        select(Pod.pod)
        .where(partition_where(Partition.ACTIVE), Pod.pod.in_(wanted))
        .distinct()
        .order_by(Pod.pod.asc())
    )
    with get_db() as session:
        return list(session.scalars(stmt).all())


# ---------------------------------------------------------------------------
# Pod mutations (audit first, then change)
# ---------------------------------------------------------------------------


def _resolve_assigned_engineer(session: Session, actor: Actor, value: str) -> str:
    """Map an engineer name to a registered user's email; otherwise ensure an imported profile exists.
    Emails (contain "@") are stored unchanged."""
    value = value.strip()
    if not value or "@" in value:
        return value
    same_name = func.lower(User.name) == value.lower()
    registered = session.scalars(
        select(User)
        .where(same_name, User.is_imported_profile.is_(False), User.merged_into_user_id.is_(None))
        .order_by(User.created_at.asc(), User.id.asc())
    ).first()
    if registered is not None and registered.email:
        return registered.email
    imported = session.scalars(
        select(User).where(same_name, User.is_imported_profile.is_(True), User.merged_into_user_id.is_(None))
    ).first()
    if imported is None:
        profile = User(id=new_id(), name=value, is_imported_profile=True, role=Role.REGULAR.value)
        audit.record(
            session,
            "User",
            profile.id,
            "create_imported_profile",
            {"name": value},
            actor.user_id,
        )
        session.add(profile)
        logger.info("created imported profile %s for engineer %r", profile.id, value)
    return value


def _notify_assigned_engineer(session: Session, actor: Actor, pod: Pod, txn: Transaction) -> None:
    if not pod.assigned_engineer:
        return
    recipients = session.scalars(
        select(User).where(User.email == pod.assigned_engineer, User.merged_into_user_id.is_(None))
    ).all()
    for user in recipients:
        session.add(
            Notification(
                user_id=user.id,
                message=f"Pod {pod.pod} has been assigned to you",
                pod_id=pod.id,
                transaction_id=txn.id,
                created_by_id=actor.user_id,
            )
        )


def _clean_pod_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Caller-settable columns of a new pod, without nulls. The code is trimmed and required."""
    fields = {k: v for k, v in data.items() if k in POD_COLUMNS and k not in _SERVER_MANAGED and v is not None}
    code = (fields.get("pod") or "").strip()
    if not code:
        raise InvalidPayload("pod is required")
    fields["pod"] = code
    fields.setdefault("priority", NO_PRIORITY)
    return fields


def _new_pod(actor: Actor, fields: dict[str, Any], is_history: bool = False) -> Pod:
    return Pod(
        id=new_id(),
        is_history=is_history,
        is_deleted=False,
        should_display=should_display_for_creator(actor.role),
        created_by_id=actor.user_id,
        **fields,
    )


def _snapshot(pod: Pod) -> dict[str, Any]:
    return {k: getattr(pod, k) for k in POD_COLUMNS if getattr(pod, k, None) is not None}


@_store_op
def create_pod(actor: Actor | None, data: dict[str, Any]) -> Pod:
    """Create an active pod. should_display follows the creator's role. Audit action: create."""
    actor = require_actor(actor)
    fields = _clean_pod_fields(data)
    code = fields["pod"]
    with get_db() as session:
        if _active_code_exists(session, code):
            raise Conflict(f'A POD with ID "{code}" already exists in the active PODs.')
        if fields.get("assigned_engineer"):
            fields["assigned_engineer"] = _resolve_assigned_engineer(session, actor, fields["assigned_engineer"])
            if not fields.get("assigned_engineer_date"):
                fields["assigned_engineer_date"] = _now()
        pod = _new_pod(actor, fields)
        txn = audit.record(session, "Pod", pod.id, "create", _snapshot(pod), actor.user_id, pod_id=pod.id)
        session.add(pod)
        session.flush()
        _notify_assigned_engineer(session, actor, pod, txn)
        logger.info("created pod %s (%s) by %s", pod.id, code, actor.user_id)
        return pod


@_store_op
def import_pods(actor: Actor | None, items: Sequence[dict[str, Any]], is_history: bool) -> list[dict[str, Any]]:
    """Bulk import in one unit of work; any failure rolls back the whole batch.

    History imports always create a new row, so a code may repeat. Active imports skip codes that
    already exist among live active pods, including codes created earlier in the same batch.
    Returns one {pod, action, id} entry per item, action "created" or "skipped".
    Audit action: import, one record per created pod.
    """
    actor = require_actor(actor)
    prepared = [_clean_pod_fields(item) for item in items]
    results: list[dict[str, Any]] = []
    with get_db() as session:
        for fields in prepared:
            code = fields["pod"]
            if not is_history and _active_code_exists(session, code):
                results.append({"pod": code, "action": "skipped", "id": None})
                continue
            if fields.get("assigned_engineer"):
                fields["assigned_engineer"] = _resolve_assigned_engineer(session, actor, fields["assigned_engineer"])
            pod = _new_pod(actor, fields, is_history=is_history)
            audit.record(session, "Pod", pod.id, "import", _snapshot(pod), actor.user_id, pod_id=pod.id)
            session.add(pod)
            session.flush()
            results.append({"pod": code, "action": "created", "id": pod.id})
    created = sum(1 for r in results if r["action"] == "created")
    logger.info(
        "imported %d pod(s), skipped %d (history=%s) by %s",
        created,
        len(results) - created,
        is_history,
        actor.user_id,
    )
    return results


# Changed through their own operations, never through update_pod.
_NOT_EDITABLE = _SERVER_MANAGED | {"pod", "priority"}
_NULLABLE = frozenset(attr.key for attr in sa_inspect(Pod).column_attrs if attr.columns[0].nullable)


@_store_op
def update_pod(actor: Actor | None, pod_id: str, changes: dict[str, Any]) -> Pod:
    """Edit the business fields of a pod the actor may see. Audit action: update (changed fields only).

    The code is immutable and priority has its own operation. assigned_engineer goes through the
    same name resolution as create; assigned_engineer_date is set the first time an engineer is
    assigned, and a new assignee is notified. A request that changes nothing writes nothing.
    """
    actor = require_actor(actor)
    blocked = sorted(k for k in changes if k in _NOT_EDITABLE or k not in POD_COLUMNS)
    if blocked:
        raise InvalidPayload(f"Fields cannot be edited: {', '.join(blocked)}")
    nulls = sorted(k for k, v in changes.items() if v is None and k not in _NULLABLE)
    if nulls:
        raise InvalidPayload(f"Fields cannot be null: {', '.join(nulls)}")
    with get_db() as session:
        pod = _get_visible_pod(session, actor, pod_id)
        updates = dict(changes)
        engineer = updates.get("assigned_engineer")
        if engineer is not None:
            engineer = engineer.strip()
            if engineer != pod.assigned_engineer:
                engineer = _resolve_assigned_engineer(session, actor, engineer)
            updates["assigned_engineer"] = engineer
        diff = {k: v for k, v in updates.items() if getattr(pod, k) != v}
        reassigned = bool(diff.get("assigned_engineer"))
        if reassigned and pod.assigned_engineer_date is None and "assigned_engineer_date" not in diff:
            diff["assigned_engineer_date"] = _now()
        if not diff:
            return pod
        txn = audit.record(
            session,
            "Pod",
            pod.id,
            "update",
            {"before": {k: getattr(pod, k) for k in diff}, "after": diff},
            actor.user_id,
            pod_id=pod.id,
        )
        for key, value in diff.items():
            setattr(pod, key, value)
        if reassigned:
            _notify_assigned_engineer(session, actor, pod, txn)
        logger.info("updated pod %s (%s) fields=%s by %s", pod.id, pod.pod, sorted(diff), actor.user_id)
        return pod


@_store_op
def duplicate_pod(actor: Actor | None, pod_id: str) -> Pod:
    """Copy a pod the actor may see (usually from history) into a new active pod with the same code.
    Conflict if the code is already active. Audit action: create_duplicate."""
    actor = require_actor(actor)
    with get_db() as session:
        source = _get_visible_pod(session, actor, pod_id)
        if _active_code_exists(session, source.pod):
            raise Conflict(f"POD {source.pod} already exists on the main page. Cannot duplicate.")
        fields = {k: getattr(source, k) for k in POD_COLUMNS if k not in _SERVER_MANAGED}
        fields["assigned_engineer_date"] = _now() if fields.get("assigned_engineer") else None
        pod = _new_pod(actor, fields)
        audit.record(
            session,
            "Pod",
            pod.id,
            "create_duplicate",
            {"original_pod": source.pod, "source_pod_id": source.id, "created_pod_id": pod.id},
            actor.user_id,
            pod_id=pod.id,
        )
        session.add(pod)
        session.flush()
        logger.info("duplicated pod %s into %s (%s)", source.id, pod.id, pod.pod)
        return pod


@_store_op
def update_pod_priority(actor: Actor | None, pod_id: str, priority: int | None) -> Pod:
    """Set (or clear, with None) a pod's priority. Audit action: update_priority."""
    actor = require_actor(actor)
    require_role(actor.role, "update_priority")
    new_priority = NO_PRIORITY if priority is None else priority
    if not 0 <= new_priority <= NO_PRIORITY:
        raise InvalidPayload(f"priority must be between 0 and {NO_PRIORITY}")
    with get_db() as session:
        pod = _get_visible_pod(session, actor, pod_id)
        audit.record(
            session,
            "Pod",
            pod.id,
            "update_priority",
            {"before": {"priority": pod.priority}, "after": {"priority": new_priority}},
            actor.user_id,
            pod_id=pod.id,
        )
        pod.priority = new_priority
        return pod


@_store_op
def complete_pod(actor: Actor | None, code: str) -> Pod:
    """Move an active pod to history with status Complete. Audit action: complete."""
    actor = require_actor(actor)
    with get_db() as session:
        pod = _get_visible_pod_by_code(session, actor, code, Partition.ACTIVE)
        completed = _now()
        audit.record(
            session,
            "Pod",
            pod.id,
            "complete",
            {
                "before": {"status": pod.status, "completed_date": pod.completed_date, "is_history": False},
                "after": {"status": "Complete", "completed_date": completed, "is_history": True},
            },
            actor.user_id,
            pod_id=pod.id,
        )
        pod.status = "Complete"
        pod.is_history = True
        pod.completed_date = completed
        logger.info("completed pod %s (%s)", pod.id, pod.pod)
        return pod


@_store_op
def move_pod_to_history(actor: Actor | None, pod_id: str) -> Pod:
    """Archive an active pod whose status is already Complete; completed_date is kept if set.
    Conflict for any other status. Audit action: move_to_history."""
    actor = require_actor(actor)
    with get_db() as session:
        pod = session.scalars(select_pods_for_actor(actor.role, Partition.ACTIVE).where(Pod.id == pod_id)).first()
        if pod is None:
            raise NotFound("POD not found")
        if pod.status != "Complete":
            raise Conflict("POD must have status 'Complete' before it can be moved to history")
        completed = pod.completed_date or _now()
        audit.record(
            session,
            "Pod",
            pod.id,
            "move_to_history",
            {
                "before": {"is_history": False, "completed_date": pod.completed_date},
                "after": {"is_history": True, "completed_date": completed},
            },
            actor.user_id,
            pod_id=pod.id,
        )
        pod.is_history = True
        pod.completed_date = completed
        logger.info("moved pod %s (%s) to history", pod.id, pod.pod)
        return pod


@_store_op
def move_pod_to_active(actor: Actor | None, code: str) -> Pod:
    """Reopen the most recently completed history pod with code. Conflict if the code is already active."""
    actor = require_actor(actor)
    require_role(actor.role, "move_to_active")
    with get_db() as session:
        pod = _get_visible_pod_by_code(session, actor, code, Partition.HISTORY)
        if _active_code_exists(session, code):
            raise Conflict(f'A POD with ID "{code}" already exists in the active PODs.')
        audit.record(
            session,
            "Pod",
            pod.id,
            "move_to_active",
            {
                "before": {"is_history": True, "completed_date": pod.completed_date},
                "after": {"is_history": False, "completed_date": None},
            },
            actor.user_id,
            pod_id=pod.id,
        )
        pod.is_history = False
        pod.completed_date = None
        return pod


@_store_op
def toggle_pod_visibility(actor: Actor | None, pod_id: str) -> Pod:
    """Flip should_display. SUPER_ADMIN only. Audit action: toggle_visibility."""
    actor = require_actor(actor)
    require_role(actor.role, "toggle_visibility")
    with get_db() as session:
        pod = _get_visible_pod(session, actor, pod_id)
        audit.record(
            session,
            "Pod",
            pod.id,
            "toggle_visibility",
            {"previous_visibility": pod.should_display, "new_visibility": not pod.should_display},
            actor.user_id,
            pod_id=pod.id,
        )
        pod.should_display = not pod.should_display
        return pod


@_store_op
def delete_pod(actor: Actor | None, pod_id: str) -> None:
    """Tombstone a pod (is_deleted = true). The audit record keeps the full snapshot."""
    actor = require_actor(actor)
    require_role(actor.role, "delete")
    with get_db() as session:
        pod = _get_visible_pod(session, actor, pod_id)
        audit.record(session, "Pod", pod.id, "delete", _pod_to_dict(pod), actor.user_id, pod_id=pod.id)
        pod.is_deleted = True
        logger.info("deleted pod %s (%s) by %s", pod.id, pod.pod, actor.user_id)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@_store_op
def list_users(actor: Actor | None, page: PageRequest) -> Page[User]:
    """Live (non-merged) users, newest first."""
    require_actor(actor)
    live = User.merged_into_user_id.is_(None)
    with get_db() as session:
        total = session.execute(select(func.count()).select_from(User).where(live)).scalar_one()
        users = list(
            session.scalars(
                select(User)
                .where(live)
                .order_by(User.created_at.desc(), User.id.asc())
                .limit(page.page_size)
                .offset(page.offset)
            ).all()
        )
    return Page(rows=users, total_count=total, total_pages=total_pages(total, page.page_size), current_page=page.page)


@_store_op
def update_user_role(actor: Actor | None, user_id: str, role: Role) -> User:
    """Change a live user's role. SUPER_ADMIN only. Audit action: update_role."""
    actor = require_actor(actor)
    require_role(actor.role, "update_role")
    with get_db() as session:
        user = _get_live_user(session, user_id)
        audit.record(
            session,
            "User",
            user.id,
            "update_role",
            {"old_role": user.role, "new_role": role.value},
            actor.user_id,
        )
        user.role = role.value
        return user


def _merge_identifiers(user: User) -> list[str]:
    """Values a pod's assigned_engineer may hold for user (compared case-insensitively)."""
    return [v.lower() for v in (user.name, user.email, user.id) if v]


@_store_op
def merge_users(actor: Actor | None, user_ids: Sequence[str], primary_user_id: str) -> dict[str, Any]:
    """Merge secondary profiles into a registered primary.

    Each secondary becomes a tombstone (merged_into_user_id = primary). Pods assigned to or created
    by a secondary, and its notifications, move to the primary; profiles previously merged into a
    secondary are re-pointed at the primary so merges never chain. Audit records are not rewritten.
    One merge_profile audit record per secondary, written before that secondary changes.
    """
    actor = require_actor(actor)
    require_role(actor.role, "merge_profile")
    ids = list(dict.fromkeys(user_ids))
    if len(ids) < 2:
        raise InvalidPayload("At least 2 users must be selected to merge")
    if primary_user_id not in ids:
        raise InvalidPayload("Primary user must be in the selected users")
    with get_db() as session:
        users = {
            u.id: u
            for u in session.scalars(
                select(User).where(User.id.in_(ids), User.merged_into_user_id.is_(None))
            ).all()
        }
        if len(users) != len(ids):
            raise NotFound("One or more users not found")
        primary = users[primary_user_id]
        if not primary.email:
            raise InvalidPayload("Primary user must be a registered user with an email address")
        primary_name = primary.name or primary.email.split("@")[0]

        merged: list[str] = []
        for sid in ids:
            if sid == primary_user_id:
                continue
            secondary = users[sid]
            identifiers = _merge_identifiers(secondary)
            audit.record(
                session,
                "User",
                sid,
                "merge_profile",
                {
                    "merged_into_user_id": primary_user_id,
                    "primary_user_name": primary_name,
                    "secondary_user_name": secondary.name or secondary.email,
                    "identifiers": identifiers,
                },
                actor.user_id,
            )
            secondary.merged_into_user_id = primary_user_id
            session.execute(
                update(User).where(User.merged_into_user_id == sid).values(merged_into_user_id=primary_user_id)
            )
            session.execute(
                update(Pod)
                .where(func.lower(Pod.assigned_engineer).in_(identifiers))
                .values(assigned_engineer=primary.email)
                .execution_options(synchronize_session=False)
            )
            session.execute(
                update(Pod).where(Pod.created_by_id == sid).values(created_by_id=primary_user_id)
            )
            session.execute(
                update(Notification).where(Notification.user_id == sid).values(user_id=primary_user_id)
            )
            session.execute(
                update(Notification)
                .where(Notification.created_by_id == sid)
                .values(created_by_id=primary_user_id)
            )
            merged.append(sid)
        logger.info("merged users %s into %s", merged, primary_user_id)
        return {"primary_user_id": primary_user_id, "merged_user_ids": merged}


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@_store_op
def create_transaction(
    actor: Actor | None,
    entity_type: str,
    entity_id: str,
    action: str,
    details: Any,
    pod_id: str | None = None,
) -> Transaction:
    """Standalone audit write. actor_id always comes from the authenticated actor."""
    actor = require_actor(actor)
    with get_db() as session:
        return audit.record(session, entity_type, entity_id, action, details, actor.user_id, pod_id=pod_id)


def _transaction_visibility(role: Role) -> ColumnElement[bool] | None:
    """Hide audit records of pods the role cannot see. Tombstoned pods keep their history visible."""
    vis = visibility_where(role)
    if vis is None:
        return None
    return or_(Transaction.pod_id.is_(None), Transaction.pod_id.in_(select(Pod.id).where(vis)))


@_store_op
def list_transactions(
    actor: Actor | None,
    page: PageRequest,
    entity_type: str | None = None,
    entity_id: str | None = None,
) -> Page[dict[str, Any]]:
    """Audit records newest first, each with created_by {id, email, name} (None if the user is gone)."""
    actor = require_actor(actor)
    stmt = select(Transaction)
    if entity_type:
        stmt = stmt.where(Transaction.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(Transaction.entity_id == entity_id)
    vis = _transaction_visibility(actor.role)
    if vis is not None:
        stmt = stmt.where(vis)
    count_stmt = select(func.count()).select_from(stmt.subquery())
    page_stmt = (
        stmt.order_by(Transaction.created_at.desc(), Transaction.id.asc())
        .limit(page.page_size)
        .offset(page.offset)
    )
    with get_db() as session:
        total = session.execute(count_stmt).scalar_one()
        txns = list(session.scalars(page_stmt).all())
        creator_ids = {t.created_by_id for t in txns}
        creators = {
            u.id: {"id": u.id, "email": u.email, "name": u.name}
            for u in session.scalars(select(User).where(User.id.in_(creator_ids))).all()
        } if creator_ids else {}
    rows = [
        {
            "id": t.id,
            "entity_type": t.entity_type,
            "entity_id": t.entity_id,
            "action": t.action,
            "details": t.details,
            "pod_id": t.pod_id,
            "created_by_id": t.created_by_id,
            "created_at": t.created_at,
            "created_by": creators.get(t.created_by_id),
        }
        for t in txns
    ]
    return Page(rows=rows, total_count=total, total_pages=total_pages(total, page.page_size), current_page=page.page)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@_store_op
def list_notifications(actor: Actor | None, page: PageRequest) -> tuple[Page[dict[str, Any]], int]:
    """Actor's notifications newest first, plus the unread count."""
    actor = require_actor(actor)
    mine = Notification.user_id == actor.user_id
    with get_db() as session:
        total = session.execute(select(func.count()).select_from(Notification).where(mine)).scalar_one()
        unread = session.execute(
            select(func.count()).select_from(Notification).where(mine, Notification.read.is_(False))
        ).scalar_one()
        rows = session.execute(
            select(Notification, User.email)
            .outerjoin(User, Notification.created_by_id == User.id)
            .where(mine)
            .order_by(Notification.created_at.desc(), Notification.id.asc())
            .limit(page.page_size)
            .offset(page.offset)
        ).all()
    items = [
        {
            "id": n.id,
            "message": n.message,
            "created_at": n.created_at,
            "read": n.read,
            "pod_id": n.pod_id,
            "created_by_email": email or "System",
        }
        for n, email in rows
    ]
    page_out = Page(rows=items, total_count=total, total_pages=total_pages(total, page.page_size), current_page=page.page)
    return page_out, unread


@_store_op
def mark_notification_read(actor: Actor | None, notification_id: str) -> None:
    """Mark one of the actor's notifications read. NotFound if it belongs to someone else."""
    actor = require_actor(actor)
    with get_db() as session:
        n = session.scalars(
            select(Notification).where(Notification.id == notification_id, Notification.user_id == actor.user_id)
        ).first()
        if n is None:
            raise NotFound("Notification not found")
        n.read = True


@_store_op
def mark_notifications_read(actor: Actor | None, notification_ids: Sequence[str]) -> int:
    """Mark many of the actor's notifications read. Ids owned by others are ignored. Returns rows updated."""
    actor = require_actor(actor)
    if not notification_ids:
        raise InvalidPayload("Invalid notification IDs")
    with get_db() as session:
        result = session.execute(
            update(Notification)
            .where(Notification.id.in_(list(notification_ids)), Notification.user_id == actor.user_id)
            .values(read=True)
        )
        return result.rowcount or 0
