"""Audit trail: append-only records, listing order, filters and visibility."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from podtrack.api.db import SessionLocal
from podtrack.api.main import app
from podtrack.api.models import ImmutableRecordError, Transaction
from tests._auth import auth

client = TestClient(app)


def _write(uid: str, entity_id: str, action: str = "note", pod_id: str | None = None) -> dict:
    body = {"entity_type": "Pod", "entity_id": entity_id, "action": action, "details": {"n": entity_id}, "pod_id": pod_id}
    resp = client.post("/transactions", json=body, headers=auth(uid))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_records_cannot_be_updated_or_deleted(make_user) -> None:
    uid = make_user(email="a@example.com")
    txn_id = _write(uid, "p1")["id"]
    with SessionLocal() as session:
        txn = session.get(Transaction, txn_id)
        txn.action = "rewritten"
        with pytest.raises(ImmutableRecordError):
            session.commit()
        session.rollback()
        session.delete(session.get(Transaction, txn_id))
        with pytest.raises(ImmutableRecordError):
            session.commit()
    with SessionLocal() as session:
        assert session.get(Transaction, txn_id).action == "note"


def test_list_newest_first_with_creator(make_user) -> None:
    uid = make_user(email="a@example.com", name="Ann")
    for i in range(3):
        _write(uid, f"p{i}")
    body = client.get("/transactions", headers=auth(uid)).json()
    assert body["total_count"] == 3
    assert [t["entity_id"] for t in body["transactions"]] == ["p2", "p1", "p0"]
    assert body["transactions"][0]["created_by"] == {"id": uid, "email": "a@example.com", "name": "Ann"}


def test_list_filters_and_pages(make_user) -> None:
    uid = make_user(email="a@example.com")
    for i in range(5):
        _write(uid, "p1")
    _write(uid, "p2")
    body = client.get("/transactions?entity_type=Pod&entity_id=p1&page=2&page_size=2", headers=auth(uid)).json()
    assert body["total_count"] == 5
    assert body["total_pages"] == 3
    assert body["current_page"] == 2
    assert len(body["transactions"]) == 2
    assert client.get("/transactions?entity_type=User", headers=auth(uid)).json()["total_count"] == 0


def test_records_of_hidden_pods_follow_pod_visibility(make_user, make_pod) -> None:
    regular = make_user(role="REGULAR", email="r@example.com")
    sa = make_user(role="SUPER_ADMIN", email="sa@example.com")
    hidden = make_pod("H-1", should_display=False)
    shown = make_pod("S-1")
    _write(sa, hidden, pod_id=hidden)
    _write(sa, shown, pod_id=shown)
    _write(sa, "user-x")
    seen = {t["entity_id"] for t in client.get("/transactions", headers=auth(regular)).json()["transactions"]}
    assert seen == {shown, "user-x"}
    assert client.get("/transactions", headers=auth(sa)).json()["total_count"] == 3


def test_missing_fields_rejected(make_user) -> None:
    uid = make_user(email="a@example.com")
    resp = client.post("/transactions", json={"entity_type": "Pod", "entity_id": "", "action": "x", "details": {}}, headers=auth(uid))
    assert resp.status_code == 400
    with SessionLocal() as session:
        assert session.scalars(select(Transaction)).all() == []
