"""Every mutation writes exactly one audit record in the same unit of work; if the audit write
fails the mutation does not apply."""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from podtrack.api.db import SessionLocal
from podtrack.api.main import app
from podtrack.api.models import Pod, Transaction, User
from podtrack.api.services import audit
from tests._auth import auth

client = TestClient(app)

FAILED = {"detail": "Audit write failed; change not applied"}


@pytest.fixture
def failing_audit(monkeypatch):
    def _boom(session, txn):
        raise OperationalError("INSERT INTO transactions", {}, Exception("connection reset"))

    monkeypatch.setattr(audit, "_write", _boom)


def _transactions() -> list[Transaction]:
    with SessionLocal() as session:
        return list(session.scalars(select(Transaction).order_by(Transaction.created_at)).all())


def _pod(pod_id: str) -> Pod:
    with SessionLocal() as session:
        return session.get(Pod, pod_id)


def test_priority_update_rolls_back_when_audit_fails(make_user, make_pod, failing_audit) -> None:
    uid = make_user(role="ADMIN", email="a@example.com")
    pid = make_pod("P-1", priority=7)
    resp = client.patch(f"/pods/{pid}/priority", json={"priority": 1}, headers=auth(uid))
    assert resp.status_code == 500
    assert resp.json() == FAILED
    assert _pod(pid).priority == 7
    assert _transactions() == []


def test_create_rolls_back_when_audit_fails(make_user, failing_audit) -> None:
    uid = make_user(email="a@example.com")
    resp = client.post("/pods", json={"pod": "NEW-1", "assigned_engineer": "Brand New Person"}, headers=auth(uid))
    assert resp.status_code == 500
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Pod)) == 0
        assert session.scalar(select(func.count()).select_from(User)) == 1


def test_complete_and_delete_roll_back_when_audit_fails(make_user, make_pod, failing_audit) -> None:
    uid = make_user(role="ADMIN", email="a@example.com")
    pid = make_pod("P-1")
    assert client.post("/pods/P-1/complete", headers=auth(uid)).status_code == 500
    assert client.delete(f"/pods/{pid}", headers=auth(uid)).status_code == 500
    pod = _pod(pid)
    assert pod.is_history is False and pod.is_deleted is False and pod.status == "Initial"


def test_role_change_rolls_back_when_audit_fails(make_user, failing_audit) -> None:
    sa = make_user(role="SUPER_ADMIN", email="sa@example.com")
    target = make_user(role="REGULAR", email="t@example.com")
    assert client.put(f"/users/{target}/role", json={"role": "ADMIN"}, headers=auth(sa)).status_code == 500
    with SessionLocal() as session:
        assert session.get(User, target).role == "REGULAR"


def test_successful_mutation_writes_one_record_with_actor(make_user, make_pod) -> None:
    uid = make_user(role="ADMIN", email="a@example.com")
    pid = make_pod("P-1", priority=7)
    resp = client.patch(f"/pods/{pid}/priority", json={"priority": 2}, headers=auth(uid))
    assert resp.status_code == 200
    assert resp.json()["priority"] == 2
    (txn,) = _transactions()
    assert (txn.entity_type, txn.entity_id, txn.action, txn.pod_id) == ("Pod", pid, "update_priority", pid)
    assert txn.created_by_id == uid
    assert json.loads(txn.details) == {"before": {"priority": 7}, "after": {"priority": 2}}


def test_delete_snapshot_keeps_the_pod(make_user, make_pod) -> None:
    uid = make_user(role="ADMIN", email="a@example.com")
    pid = make_pod("P-1", city="Dallas")
    assert client.delete(f"/pods/{pid}", headers=auth(uid)).status_code == 200
    (txn,) = _transactions()
    snapshot = json.loads(txn.details)
    assert txn.action == "delete"
    assert snapshot["pod"] == "P-1" and snapshot["city"] == "Dallas"
    assert _pod(pid).is_deleted is True


def test_transaction_author_comes_from_auth(make_user) -> None:
    uid = make_user(email="a@example.com")
    other = make_user(email="b@example.com")
    body = {"entity_type": "Pod", "entity_id": "p1", "action": "note", "details": {"k": 1}}
    assert client.post("/transactions", json={**body, "created_by_id": other}, headers=auth(uid)).status_code == 400
    assert _transactions() == []
    resp = client.post("/transactions", json=body, headers=auth(uid))
    assert resp.status_code == 201
    assert resp.json()["created_by_id"] == uid
    assert resp.json()["details"] == '{"k": 1}'


def test_edit_rolls_back_when_audit_fails(make_user, make_pod, failing_audit) -> None:
    uid = make_user(email="a@example.com")
    pid = make_pod("P-1", city="Dallas")
    resp = client.put(f"/pods/{pid}", json={"city": "Austin"}, headers=auth(uid))
    assert resp.status_code == 500
    assert resp.json() == FAILED
    assert _pod(pid).city == "Dallas"
    assert _transactions() == []


def test_import_rolls_back_the_whole_batch_when_audit_fails(make_user, failing_audit) -> None:
    uid = make_user(email="a@example.com")
    payload = {"pods": [{"pod": "I-1"}, {"pod": "I-2"}]}
    assert client.post("/pods/import", json=payload, headers=auth(uid)).status_code == 500
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Pod)) == 0


def test_duplicate_and_move_to_history_roll_back_when_audit_fails(make_user, make_pod, failing_audit) -> None:
    uid = make_user(email="a@example.com")
    src = make_pod("P-1", is_history=True)
    done = make_pod("P-2", status="Complete")
    assert client.post(f"/pods/{src}/duplicate", headers=auth(uid)).status_code == 500
    assert client.post(f"/pods/{done}/move-to-history", headers=auth(uid)).status_code == 500
    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Pod)) == 2
    assert _pod(done).is_history is False


def test_edit_writes_one_record_with_actor(make_user, make_pod) -> None:
    uid = make_user(email="a@example.com")
    pid = make_pod("P-1", city="Dallas")
    assert client.put(f"/pods/{pid}", json={"city": "Austin", "notes": "rack 4"}, headers=auth(uid)).status_code == 200
    (txn,) = _transactions()
    assert (txn.action, txn.pod_id, txn.created_by_id) == ("update", pid, uid)
    assert json.loads(txn.details)["after"] == {"city": "Austin", "notes": "rack 4"}
