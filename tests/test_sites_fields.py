from daycare.models import Field, Site


def test_site_crud(client, users, headers):
    admin = headers("admin")

    created = client.post("/api/sites", json={"name": "  Meadow Farm ", "address": "1 Lane"}, headers=admin)
    assert created.status_code == 201
    site = created.json()
    assert site["name"] == "Meadow Farm"
    assert site["is_active"] is True

    listed = client.get("/api/sites", headers=headers("staff"))
    assert [s["name"] for s in listed.json()] == ["Meadow Farm"]

    updated = client.put(f"/api/sites/{site['id']}", json={"is_active": False}, headers=admin)
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    deleted = client.delete(f"/api/sites/{site['id']}", headers=admin)
    assert deleted.json() == {"success": True}
    assert client.put(f"/api/sites/{site['id']}", json={"name": "x"}, headers=admin).status_code == 404


def test_site_update_requires_fields(client, users, headers, db):
    site = Site(name="Meadow Farm")
    db.add(site)
    db.commit()

    response = client.put(f"/api/sites/{site.id}", json={}, headers=headers("admin"))
    assert response.status_code == 400


def test_site_with_fields_cannot_be_deleted(client, users, headers, db):
    site = Site(name="Meadow Farm")
    db.add(site)
    db.commit()
    db.add(Field(site_id=site.id, name="Top Field"))
    db.commit()

    response = client.delete(f"/api/sites/{site.id}", headers=headers("admin"))
    assert response.status_code == 409
    assert "field" in response.json()["error"]


def test_field_crud_and_site_filter(client, users, headers, db):
    north, south = Site(name="North"), Site(name="South")
    db.add_all([north, south])
    db.commit()
    admin = headers("admin")

    created = client.post(
        "/api/fields",
        json={"site_id": north.id, "name": "Paddock", "capacity": 6},
        headers=admin,
    )
    assert created.status_code == 201
    field_id = created.json()["id"]
    client.post("/api/fields", json={"site_id": south.id, "name": "Orchard"}, headers=admin)

    north_fields = client.get(f"/api/fields?site_id={north.id}", headers=headers("staff")).json()
    assert [f["name"] for f in north_fields] == ["Paddock"]

    moved = client.put(f"/api/fields/{field_id}", json={"site_id": 999}, headers=admin)
    assert moved.status_code == 400
    assert moved.json() == {"error": "Invalid site_id: 999 does not exist."}

    renamed = client.put(f"/api/fields/{field_id}", json={"capacity": 8}, headers=admin)
    assert renamed.json()["capacity"] == 8

    assert client.delete(f"/api/fields/{field_id}", headers=admin).json() == {"success": True}
    assert client.delete(f"/api/fields/{field_id}", headers=admin).status_code == 404


def test_field_used_by_rule_cannot_be_deleted(client, users, headers, daycare_setup):
    response = client.delete(f"/api/fields/{daycare_setup.field.id}", headers=headers("admin"))
    assert response.status_code == 409
    assert response.json()["error"].startswith("Cannot delete field")


def test_field_negative_capacity_rejected(client, users, headers, db):
    site = Site(name="North")
    db.add(site)
    db.commit()

    response = client.post(
        "/api/fields", json={"site_id": site.id, "capacity": -1}, headers=headers("admin")
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("capacity:")
