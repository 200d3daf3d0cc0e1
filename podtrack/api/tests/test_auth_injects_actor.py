"""Tests for auth middleware: actor resolution from the Authorization header or auth cookie.

Uses /debug/actor (ENV=test only) so only actor resolution runs.
"""

from fastapi.testclient import TestClient

from podtrack.api.main import app
from tests._auth import auth, jwt_auth, jwt_token

client = TestClient(app)


def test_bearer_actor_injects_actor_and_role(make_user) -> None:
    uid = make_user(role="ADMIN", email="admin@example.com")
    resp = client.get("/debug/actor", headers=auth(uid))
    assert resp.status_code == 200
    assert resp.json() == {"user_id": uid, "role": "ADMIN"}


def test_without_header_returns_401() -> None:
    resp = client.get("/debug/actor")
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Unauthorized"}


def test_invalid_bearer_returns_401() -> None:
    assert client.get("/debug/actor", headers={"Authorization": "Bearer invalid"}).status_code == 401
    assert client.get("/debug/actor", headers={"Authorization": "Basic abc"}).status_code == 401


def test_unknown_user_returns_401() -> None:
    assert client.get("/debug/actor", headers=auth("no-such-user")).status_code == 401


def test_merged_user_returns_401(make_user) -> None:
    primary = make_user(email="p@example.com")
    merged = make_user(name="Old Profile", is_imported_profile=True, merged_into_user_id=primary)
    assert client.get("/debug/actor", headers=auth(merged)).status_code == 401


def test_protected_routes_reject_before_running() -> None:
    assert client.get("/search/pods").status_code == 401
    assert client.post("/pods", json={"pod": "X"}).status_code == 401
    assert client.get("/transactions").status_code == 401


def test_health_needs_no_auth() -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_jwt_sub_claim(make_user) -> None:
    uid = make_user(role="PRIORITY", email="p@example.com")
    resp = client.get("/debug/actor", headers=jwt_auth(uid))
    assert resp.status_code == 200
    assert resp.json()["role"] == "PRIORITY"


def test_jwt_legacy_user_id_claim(make_user) -> None:
    uid = make_user(email="p@example.com")
    assert client.get("/debug/actor", headers=jwt_auth(uid, claim="userId")).status_code == 200


def test_jwt_with_wrong_secret_or_expired_returns_401(make_user) -> None:
    uid = make_user(email="p@example.com")
    assert client.get("/debug/actor", headers=jwt_auth(uid, secret="not-the-secret")).status_code == 401
    assert client.get("/debug/actor", headers=jwt_auth(uid, expires_in=-60)).status_code == 401


def test_auth_cookie(make_user) -> None:
    uid = make_user(email="p@example.com")
    cookie_client = TestClient(app, cookies={"auth_token": jwt_token(uid)})
    resp = cookie_client.get("/debug/actor")
    assert resp.status_code == 200
    assert resp.json()["user_id"] == uid


def test_actor_in_query_is_ignored(make_user) -> None:
    me = make_user(role="REGULAR", email="me@example.com")
    boss = make_user(role="SUPER_ADMIN", email="boss@example.com")
    resp = client.get(f"/debug/actor?actor_id={boss}&user_id={boss}", headers=auth(me))
    assert resp.json()["user_id"] == me


def test_bearer_actor_rejected_in_production(monkeypatch, make_user) -> None:
    uid = make_user(email="p@example.com")
    monkeypatch.setenv("ENV", "production")
    assert client.get("/debug/actor", headers=auth(uid)).status_code == 401
    assert client.get("/debug/actor", headers=jwt_auth(uid)).status_code == 200
