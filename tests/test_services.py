def test_services_listed_by_name_for_any_user(client, users, headers):
    admin = headers("admin")
    client.post("/api/services", json={"name": "Field Hire", "service_type": "Field Hire"}, headers=admin)
    client.post("/api/services", json={"name": "Daycare", "default_price": 25}, headers=admin)

    response = client.get("/api/services", headers=headers("client"))
    assert response.status_code == 200
    services = response.json()
    assert [s["name"] for s in services] == ["Daycare", "Field Hire"]
    assert services[0]["service_type"] == "Daycare"
    assert services[0]["default_price"] == 25


def test_service_type_must_be_known(client, users, headers):
    response = client.post(
        "/api/services", json={"name": "Grooming", "service_type": "Spa"}, headers=headers("admin")
    )
    assert response.status_code == 400


def test_service_update(client, users, headers):
    admin = headers("admin")
    service_id = client.post("/api/services", json={"name": "Daycare"}, headers=admin).json()["id"]
    client.post("/api/services", json={"name": "Field Hire"}, headers=admin)

    empty = client.put(f"/api/services/{service_id}", json={}, headers=admin)
    assert empty.status_code == 400
    assert empty.json() == {"error": "No update fields provided or fields are invalid"}

    updated = client.put(
        f"/api/services/{service_id}", json={"description": "Full day", "default_price": 30}, headers=admin
    )
    assert updated.json()["description"] == "Full day"

    clash = client.put(f"/api/services/{service_id}", json={"name": "Field Hire"}, headers=admin)
    assert clash.status_code == 409
    assert clash.json() == {"error": 'Service name "Field Hire" already exists.'}

    missing = client.put("/api/services/999", json={"name": "Other"}, headers=admin)
    assert missing.status_code == 404


def test_service_in_use_cannot_be_deleted(client, users, headers, daycare_setup):
    admin = headers("admin")
    response = client.delete(f"/api/services/{daycare_setup.service.id}", headers=admin)
    assert response.status_code == 409
    assert response.json() == {
        "error": "Cannot delete service: It is used in 1 service availability rule(s)."
    }


def test_unused_service_deleted(client, users, headers):
    admin = headers("admin")
    service_id = client.post("/api/services", json={"name": "Daycare"}, headers=admin).json()["id"]

    assert client.delete(f"/api/services/{service_id}", headers=admin).json() == {"success": True}
    assert client.delete(f"/api/services/{service_id}", headers=admin).status_code == 404
