"""Notifications: recipient-only listing and read marking."""

from fastapi.testclient import TestClient

from podtrack.api.main import app
from tests._auth import auth

client = TestClient(app)


def _assign(creator: str, code: str, engineer: str) -> None:
    resp = client.post("/pods", json={"pod": code, "assigned_engineer": engineer}, headers=auth(creator))
    assert resp.status_code == 201, resp.text


def test_assignment_notifies_and_marks_read(make_user) -> None:
    creator = make_user(email="boss@example.com")
    eng = make_user(email="eng@example.com", name="Eng")
    _assign(creator, "P-1", "eng@example.com")
    _assign(creator, "P-2", "eng@example.com")

    body = client.get("/notifications", headers=auth(eng)).json()
    assert body["total_count"] == 2 and body["unread_count"] == 2
    first = body["notifications"][0]
    assert first["created_by_email"] == "boss@example.com"
    assert first["read"] is False
    assert "assigned to you" in first["message"]

    assert client.post(f"/notifications/{first['id']}/read", headers=auth(eng)).status_code == 200
    assert client.get("/notifications", headers=auth(eng)).json()["unread_count"] == 1
    assert client.get("/notifications", headers=auth(creator)).json()["total_count"] == 0


def test_cannot_mark_someone_elses_notification(make_user) -> None:
    creator = make_user(email="boss@example.com")
    eng = make_user(email="eng@example.com")
    _assign(creator, "P-1", "eng@example.com")
    nid = client.get("/notifications", headers=auth(eng)).json()["notifications"][0]["id"]
    assert client.post(f"/notifications/{nid}/read", headers=auth(creator)).status_code == 404
    resp = client.post("/notifications/mark-read", json={"ids": [nid]}, headers=auth(creator))
    assert resp.json()["message"].startswith("0 ")
    assert client.get("/notifications", headers=auth(eng)).json()["unread_count"] == 1


def test_mark_many_read(make_user) -> None:
    creator = make_user(email="boss@example.com")
    eng = make_user(email="eng@example.com")
    for i in range(3):
        _assign(creator, f"P-{i}", "eng@example.com")
    ids = [n["id"] for n in client.get("/notifications", headers=auth(eng)).json()["notifications"]]
    resp = client.post("/notifications/mark-read", json={"ids": ids[:2]}, headers=auth(eng))
    assert resp.status_code == 200
    assert resp.json()["message"].startswith("2 ")
    assert client.get("/notifications", headers=auth(eng)).json()["unread_count"] == 1
    assert client.post("/notifications/mark-read", json={"ids": []}, headers=auth(eng)).status_code == 400
