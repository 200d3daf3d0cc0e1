"""Role visibility is applied to every row-level pod read and cannot be widened by client filters.

Seeds one visible, one hidden and one tombstoned pod per partition and checks what each role sees.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from podtrack.api.main import app
from tests._auth import auth

client = TestClient(app)

DONE = datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def seeded(make_user, make_pod):
    users = {role: make_user(role=role, email=f"{role.lower()}@example.com") for role in
             ("SUPER_ADMIN", "PRIORITY", "ADMIN", "REGULAR")}
    pods = {
        "visible": make_pod("VIS-1", should_display=True),
        "hidden": make_pod("HID-1", should_display=False),
        "deleted": make_pod("DEL-1", should_display=True, is_deleted=True),
        "h_visible": make_pod("VIS-H", should_display=True, is_history=True, completed_date=DONE),
        "h_hidden": make_pod("HID-H", should_display=False, is_history=True, completed_date=DONE),
        "h_deleted": make_pod("DEL-H", should_display=False, is_history=True, is_deleted=True, completed_date=DONE),
    }
    return users, pods


def _codes(user_id: str, query: str = "") -> set[str]:
    resp = client.get(f"/search/pods?{query}", headers=auth(user_id))
    assert resp.status_code == 200, resp.text
    return {row["pod"] for row in resp.json()["rows"]}


@pytest.mark.parametrize(
    "role,active,history",
    [
        ("SUPER_ADMIN", {"VIS-1", "HID-1"}, {"VIS-H", "HID-H"}),
        ("PRIORITY", {"HID-1"}, {"HID-H"}),
        ("ADMIN", {"VIS-1"}, {"VIS-H"}),
        ("REGULAR", {"VIS-1"}, {"VIS-H"}),
    ],
)
def test_each_role_sees_its_partition_slice(seeded, role, active, history) -> None:
    users, _ = seeded
    assert _codes(users[role]) == active
    assert _codes(users[role], "is_history=true") == history


@pytest.mark.parametrize("field", ["should_display", "is_deleted", "is_history", "id"])
def test_lifecycle_flags_cannot_be_filtered(seeded, field) -> None:
    users, _ = seeded
    resp = client.get(f"/search/pods?field0={field}&value0=false", headers=auth(users["REGULAR"]))
    assert resp.status_code == 400


def test_filters_only_narrow(seeded) -> None:
    users, _ = seeded
    assert _codes(users["REGULAR"], "field0=pod&value0=HID") == set()
    assert _codes(users["PRIORITY"], "field0=pod&value0=VIS") == set()


def test_tombstones_never_listed(seeded) -> None:
    users, _ = seeded
    for uid in users.values():
        for q in ("", "is_history=true", "field0=pod&value0=DEL"):
            assert not {"DEL-1", "DEL-H"} & _codes(uid, q)
        active = client.get("/pods/active", headers=auth(uid)).json()["pods"]
        assert "DEL-1" not in {p["pod"] for p in active}


def test_active_overview_applies_visibility(seeded) -> None:
    users, _ = seeded
    codes = lambda uid: {p["pod"] for p in client.get("/pods/active", headers=auth(uid)).json()["pods"]}
    assert codes(users["REGULAR"]) == {"VIS-1"}
    assert codes(users["PRIORITY"]) == {"HID-1"}
    assert codes(users["SUPER_ADMIN"]) == {"VIS-1", "HID-1"}


def test_mutating_an_invisible_pod_is_not_found(seeded) -> None:
    users, pods = seeded
    resp = client.patch(f"/pods/{pods['hidden']}/priority", json={"priority": 1}, headers=auth(users["ADMIN"]))
    assert resp.status_code == 404
    resp = client.post("/pods/HID-1/complete", headers=auth(users["REGULAR"]))
    assert resp.status_code == 404


def test_tombstoned_pod_is_not_found_even_for_super_admin(seeded) -> None:
    users, pods = seeded
    sa = auth(users["SUPER_ADMIN"])
    assert client.patch(f"/pods/{pods['deleted']}/priority", json={"priority": 1}, headers=sa).status_code == 404
    assert client.delete(f"/pods/{pods['deleted']}", headers=sa).status_code == 404
    assert client.post("/pods/DEL-1/complete", headers=sa).status_code == 404
