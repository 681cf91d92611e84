import pytest

from daycare import storage
from daycare.models import Pet, PetImage

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
def bucket(monkeypatch):
    """In-memory stand-in for the R2 bucket"""
    objects = {}

    def put_object(key, body, content_type):
        objects[key] = (body, content_type)

    def delete_object(key):
        objects.pop(key, None)

    monkeypatch.setattr(storage, "put_object", put_object)
    monkeypatch.setattr(storage, "delete_object", delete_object)
    monkeypatch.setattr(storage, "generate_presigned_url", lambda key: f"https://r2.example.com/{key}?sig=1")
    return objects


@pytest.fixture
def rex(db, users):
    pet = Pet(client_id=users.client.id, name="Rex", is_confirmed=True)
    db.add(pet)
    db.commit()
    return pet


def upload(client, headers, pet_id, role="staff", content=JPEG, content_type="image/jpeg", caption="Zoomies"):
    return client.post(
        f"/api/pets/{pet_id}/images",
        files={"file": ("rex.jpg", content, content_type)},
        data={"caption": caption},
        headers=headers(role),
    )


def test_staff_upload_stores_object_and_metadata(client, db, users, headers, rex, bucket):
    response = upload(client, headers, rex.id)
    assert response.status_code == 201
    body = response.json()

    key = body["storage_object_path"]
    assert key.startswith(f"pet_{rex.id}/") and key.endswith(".jpg")
    assert bucket[key] == (JPEG, "image/jpeg")
    assert body["uploaded_by_staff_id"] == users.staff.id
    assert body["caption"] == "Zoomies"
    assert body["file_name"] == "rex.jpg"
    assert body["size_bytes"] == len(JPEG)
    assert body["image_url"] == f"https://r2.example.com/{key}?sig=1"


def test_clients_cannot_upload(client, users, headers, rex, bucket):
    assert upload(client, headers, rex.id, role="client").status_code == 403
    assert bucket == {}


def test_upload_validation(client, users, headers, rex, bucket):
    pdf = upload(client, headers, rex.id, content=b"%PDF-1.7", content_type="application/pdf")
    assert pdf.status_code == 400

    empty = upload(client, headers, rex.id, content=b"")
    assert empty.status_code == 400
    assert empty.json() == {"error": "No file provided for upload."}

    assert upload(client, headers, 999).status_code == 404
    assert bucket == {}


def test_list_images_newest_first(client, users, headers, rex, bucket):
    first = upload(client, headers, rex.id, caption="Morning").json()
    second = upload(client, headers, rex.id, caption="Afternoon").json()

    staff_view = client.get(f"/api/pets/{rex.id}/images", headers=headers("staff")).json()
    assert [i["id"] for i in staff_view] == [second["id"], first["id"]]
    assert all(i["image_url"] for i in staff_view)

    owner_view = client.get(f"/api/pets/{rex.id}/images", headers=headers("client"))
    assert owner_view.status_code == 200
    assert len(owner_view.json()) == 2

    stranger = client.get(f"/api/pets/{rex.id}/images", headers=headers("other-client"))
    assert stranger.status_code == 404


def test_listing_survives_signing_failure(client, users, headers, rex, bucket, monkeypatch):
    upload(client, headers, rex.id)

    def broken(key):
        raise RuntimeError("r2 unavailable")

    monkeypatch.setattr(storage, "generate_presigned_url", broken)
    [image] = client.get(f"/api/pets/{rex.id}/images", headers=headers("staff")).json()
    assert image["image_url"] is None


def test_delete_image(client, db, users, headers, rex, bucket):
    image = upload(client, headers, rex.id).json()

    assert client.delete(f"/api/pets/{rex.id}/images/{image['id']}", headers=headers("client")).status_code == 403

    response = client.delete(f"/api/pets/{rex.id}/images/{image['id']}", headers=headers("staff"))
    assert response.json() == {"message": "Image deleted successfully"}
    assert bucket == {}
    assert db.query(PetImage).count() == 0

    missing = client.delete(f"/api/pets/{rex.id}/images/{image['id']}", headers=headers("staff"))
    assert missing.status_code == 404


def test_deleting_pet_removes_its_photos(client, db, users, headers, rex, bucket):
    upload(client, headers, rex.id)

    response = client.delete(f"/api/pets/{rex.id}", headers=headers("client"))
    assert response.status_code == 200
    assert bucket == {}
    assert db.query(PetImage).count() == 0


def test_staff_pets_are_assigned_clients_pets(client, db, users, headers, rex):
    db.add(Pet(client_id=users.other_client.id, name="Bella"))
    db.commit()

    response = client.get("/api/staff/pets", headers=headers("staff"))
    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Rex"]

    assert client.get("/api/staff/pets", headers=headers("client")).status_code == 403
