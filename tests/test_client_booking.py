from datetime import time

import pytest

from daycare.domain.bookings.repository import BookingRepository
from daycare.models import Booking, StaffAvailability, Vehicle


@pytest.fixture
def book(client, headers, daycare_setup, booking_day):
    """Submit a client booking request for pets on booking_day 09:00-12:00 local time"""

    def _book(*pet_groups, token="client", start="09:00", end="12:00"):
        items = [
            {
                "service_id": daycare_setup.service.id,
                "start_time": f"{booking_day}T{start}:00",
                "end_time": f"{booking_day}T{end}:00",
                "pet_ids": [p.id for p in pets],
            }
            for pets in pet_groups
        ]
        return client.post("/api/client-booking", json={"bookings": items}, headers=headers(token))

    return _book


@pytest.fixture
def staff_vehicle_rule(db, users, daycare_setup, booking_day):
    """Switch the daycare rule to staff/vehicle capacity and give Sam a 2-seat van and working hours"""
    daycare_setup.rule.use_staff_vehicle_capacity = True
    van = Vehicle(make="Ford", model="Transit", pet_capacity=2)
    db.add(van)
    db.commit()
    users.staff.default_vehicle_id = van.id
    db.add(
        StaffAvailability(
            staff_id=users.staff.id,
            start_time=time(7, 0),
            end_time=time(18, 0),
            days_of_week=[booking_day.isoweekday()],
        )
    )
    db.commit()
    return van


def test_single_booking_confirmed(book, daycare_setup, notifications, db):
    rex, bella, _ = daycare_setup.pets

    response = book([rex, bella])
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "All bookings created successfully."
    assert body["failedBookings"] == []
    [booking] = body["successfulBookings"]
    assert booking["service_name"] == "Daycare"
    assert booking["pets"] == "Rex, Bella"
    assert booking["time"] == "9:00 am - 12:00 pm"

    stored = db.get(Booking, booking["booking_id"])
    assert stored.status == "confirmed"
    assert stored.max_capacity == 2
    assert stored.booking_field_ids == [daycare_setup.field.id]

    [(kind, args, _)] = notifications
    assert kind == "notify_booking_confirmed"
    assert args[0] == "client@example.com"
    assert args[1] == "Casey Jones"


def test_full_field_rejects_booking(book, daycare_setup, notifications):
    rex, bella, _ = daycare_setup.pets
    assert book([rex, bella]).status_code == 201

    response = book([rex])
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "No bookings could be created."
    assert body["successfulBookings"] == []
    assert body["failedBookings"][0]["error"].startswith("Not enough capacity")
    assert notifications[-1][0] == "notify_booking_summary"


def test_partial_success_returns_207(book, daycare_setup, notifications):
    rex, _, pip = daycare_setup.pets

    response = book([rex], [pip])
    assert response.status_code == 207
    body = response.json()
    assert len(body["successfulBookings"]) == 1
    assert body["failedBookings"][0]["error"] == "Pets must be confirmed before booking: Pip"
    assert body["failedBookings"][0]["input"]["pet_ids"] == [pip.id]

    [(kind, args, _)] = notifications
    assert kind == "notify_booking_summary"
    successes, errors = args[2], args[3]
    assert len(successes) == 1
    assert errors[0]["error"].startswith("Pets must be confirmed")


def test_cannot_book_other_clients_pets(book, daycare_setup, notifications):
    response = book([daycare_setup.pets[0]], token="other-client")
    assert response.status_code == 400
    assert response.json()["failedBookings"][0]["error"] == (
        "One or more pets not found or do not belong to you"
    )


def test_booking_outside_service_hours(book, daycare_setup, notifications):
    response = book([daycare_setup.pets[0]], start="17:00", end="18:00")
    assert response.status_code == 400
    assert response.json()["failedBookings"][0]["error"] == (
        "No availability for this service at the requested time"
    )


def test_client_booking_requires_client(client, users, headers):
    item = {
        "service_id": 1,
        "start_time": "2030-01-07T09:00:00",
        "end_time": "2030-01-07T10:00:00",
        "pet_ids": [1],
    }
    response = client.post("/api/client-booking", json={"bookings": [item]}, headers=headers("staff"))
    assert response.status_code == 404


def test_empty_booking_request_rejected(client, users, headers):
    response = client.post("/api/client-booking", json={"bookings": []}, headers=headers("client"))
    assert response.status_code == 400


def test_staff_capacity_needs_vehicle(book, db, daycare_setup, notifications):
    daycare_setup.rule.use_staff_vehicle_capacity = True
    db.commit()

    response = book([daycare_setup.pets[0]])
    assert response.status_code == 400
    assert response.json()["failedBookings"][0]["error"] == "Your assigned staff member has no vehicle"


def test_staff_capacity_needs_default_staff(book, db, users, daycare_setup, notifications):
    daycare_setup.rule.use_staff_vehicle_capacity = True
    users.client.default_staff_id = None
    db.commit()

    response = book([daycare_setup.pets[0]])
    assert response.json()["failedBookings"][0]["error"] == (
        "No default staff member is assigned to your account"
    )


def test_staff_vehicle_booking_assigns_staff(book, db, daycare_setup, staff_vehicle_rule, notifications):
    rex, bella, _ = daycare_setup.pets

    response = book([rex])
    assert response.status_code == 201
    booking_id = response.json()["successfulBookings"][0]["booking_id"]

    stored = db.get(Booking, booking_id)
    assert stored.assigned_staff_id == "staff-uid"
    assert stored.vehicle_id == staff_vehicle_rule.id
    assert stored.max_capacity == 2

    # one seat left in the van
    full = book([rex, bella])
    assert full.status_code == 400
    assert full.json()["failedBookings"][0]["error"] == (
        "Not enough capacity: 1 place(s) left for 2 pet(s)"
    )


def test_staff_blackout_blocks_booking(book, db, users, daycare_setup, staff_vehicle_rule, booking_day, notifications):
    db.add(
        StaffAvailability(
            staff_id=users.staff.id,
            start_time=time(11, 0),
            end_time=time(13, 0),
            specific_date=booking_day,
            is_available=False,
        )
    )
    db.commit()

    response = book([daycare_setup.pets[0]])
    assert response.json()["failedBookings"][0]["error"] == (
        "Your assigned staff member is not available at this time"
    )


@pytest.fixture
def row_locks(monkeypatch):
    """Record the rows a booking locks before its capacity check"""
    locked = []
    monkeypatch.setattr(
        BookingRepository, "lock_fields", staticmethod(lambda db, ids: locked.append(("fields", ids)))
    )
    monkeypatch.setattr(
        BookingRepository, "lock_staff", staticmethod(lambda db, staff_id: locked.append(("staff", staff_id)))
    )
    return locked


def test_field_booking_locks_rule_fields(book, daycare_setup, notifications, row_locks):
    rex, _, _ = daycare_setup.pets

    assert book([rex]).status_code == 201
    assert row_locks == [("fields", [daycare_setup.field.id])]


def test_vehicle_booking_locks_staff_row(book, users, daycare_setup, staff_vehicle_rule, notifications, row_locks):
    rex, _, _ = daycare_setup.pets

    assert book([rex]).status_code == 201
    assert row_locks == [("staff", users.staff.id)]
