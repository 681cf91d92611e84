import pytest

from daycare import identity
from daycare.identity import IdentityUser
from daycare.models import Client, Pet, Staff

ACCOUNTS = {
    "admin-uid": IdentityUser(id="admin-uid", email="admin@example.com"),
    "staff-uid": IdentityUser(id="staff-uid", email="staff@example.com"),
    "client-uid": IdentityUser(id="client-uid", email="client@example.com"),
    "other-client-uid": IdentityUser(id="other-client-uid", email="other@example.com"),
    "new-uid": IdentityUser(id="new-uid", email="new@example.com"),
}


@pytest.fixture
def accounts(monkeypatch):
    monkeypatch.setattr(identity, "list_users", lambda: list(ACCOUNTS.values()))
    monkeypatch.setattr(identity, "get_user", lambda user_id: ACCOUNTS.get(user_id))


def test_list_users_with_roles(client, users, headers, accounts):
    response = client.get("/api/users", headers=headers("admin"))
    assert response.status_code == 200

    by_id = {u["id"]: u for u in response.json()}
    assert by_id["admin-uid"]["role"] == "admin"
    assert by_id["staff-uid"]["role"] == "staff"
    assert by_id["staff-uid"]["first_name"] == "Sam"
    assert by_id["client-uid"]["role"] == "client"
    assert by_id["new-uid"]["role"] == "unknown"


def test_users_admin_only(client, users, headers, accounts):
    assert client.get("/api/users", headers=headers("staff")).status_code == 403


def test_admin_cannot_change_own_role(client, users, headers, accounts):
    response = client.post(
        "/api/users", json={"userId": "admin-uid", "targetRole": "client"}, headers=headers("admin")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Admins cannot change their own role"}


def test_unknown_user_role_change(client, users, headers, accounts):
    response = client.post(
        "/api/users", json={"userId": "ghost-uid", "targetRole": "staff"}, headers=headers("admin")
    )
    assert response.status_code == 404


def test_invalid_target_role(client, users, headers, accounts):
    response = client.post(
        "/api/users", json={"userId": "new-uid", "targetRole": "owner"}, headers=headers("admin")
    )
    assert response.status_code == 400


def test_promote_client_to_staff(client, users, headers, accounts, db):
    response = client.post(
        "/api/users",
        json={"userId": "other-client-uid", "targetRole": "staff"},
        headers=headers("admin"),
    )
    assert response.json() == {"success": True, "message": "User role updated to staff"}

    assert db.query(Client).filter(Client.user_id == "other-client-uid").first() is None
    assert db.query(Staff).filter(Staff.user_id == "other-client-uid").one().role == "staff"


def test_demote_staff_to_client(client, users, headers, accounts, db):
    response = client.post(
        "/api/users", json={"userId": "staff-uid", "targetRole": "client"}, headers=headers("admin")
    )
    assert response.status_code == 200

    assert db.query(Staff).filter(Staff.user_id == "staff-uid").first() is None
    demoted = db.query(Client).filter(Client.user_id == "staff-uid").one()
    assert demoted.email == "staff@example.com"
    db.expire_all()
    # the staff member's assigned client is released
    assert db.get(Client, users.client.id).default_staff_id is None


def test_role_change_blocked_by_linked_pets(client, users, headers, accounts, db):
    db.add(Pet(client_id=users.client.id, name="Rex"))
    db.commit()

    response = client.post(
        "/api/users", json={"userId": "client-uid", "targetRole": "staff"}, headers=headers("admin")
    )
    assert response.status_code == 409
    assert response.json()["error"].startswith("Cannot change role")


def test_update_staff_user(client, users, headers):
    response = client.put(
        "/api/users/staff-uid",
        json={"phone": "07700 900000", "notes": "Has a van licence"},
        headers=headers("admin"),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["profile"] == {
        "user_id": "staff-uid",
        "first_name": "Sam",
        "last_name": "Walker",
        "phone": "07700 900000",
    }
    assert body["staff"]["notes"] == "Has a van licence"
    assert body["staff"]["role"] == "staff"


def test_update_user_rejects_clients_and_empty_bodies(client, users, headers):
    admin = headers("admin")

    not_staff = client.put("/api/users/client-uid", json={"notes": "x"}, headers=admin)
    assert not_staff.status_code == 400
    assert not_staff.json() == {"error": "Can only update staff or admin users"}

    empty = client.put("/api/users/staff-uid", json={}, headers=admin)
    assert empty.status_code == 400
    assert empty.json() == {"error": "No update fields provided"}
