from daycare.models import Profile


def test_profile_created_on_first_save(client, users, headers):
    nobody = headers("nobody")
    assert client.get("/api/profile", headers=nobody).status_code == 404

    saved = client.put(
        "/api/profile",
        json={"first_name": "Nina", "postcode": "AB1 2CD", "latitude": 51.5},
        headers=nobody,
    )
    assert saved.status_code == 200
    assert saved.json()["first_name"] == "Nina"
    assert saved.json()["email_allow_informational"] is True

    fetched = client.get("/api/profile", headers=nobody).json()
    assert fetched["user_id"] == "nobody-uid"
    assert fetched["postcode"] == "AB1 2CD"


def test_profile_update_keeps_other_fields(client, users, headers):
    response = client.put("/api/profile", json={"phone": "0123"}, headers=headers("client"))
    assert response.json()["first_name"] == "Casey"
    assert response.json()["phone"] == "0123"


def test_profile_rejects_out_of_range_coordinates(client, users, headers):
    response = client.put("/api/profile", json={"longitude": 200}, headers=headers("client"))
    assert response.status_code == 400
    assert response.json()["error"].startswith("longitude:")


def test_null_email_preferences_ignored(client, users, headers):
    response = client.put(
        "/api/profile", json={"email_allow_promotional": None}, headers=headers("client")
    )
    assert response.status_code == 400


def test_profile_requires_sign_in(client):
    assert client.get("/api/profile").status_code == 401


def test_mark_welcome_sent(client, users, headers, db):
    response = client.post("/api/mark-welcome-sent", headers=headers("nobody"))
    assert response.json() == {"success": True}

    profile = db.query(Profile).filter(Profile.user_id == "nobody-uid").one()
    assert profile.welcome_email_sent is True
