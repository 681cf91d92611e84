from datetime import time, timedelta

import pytest

from daycare.models import StaffAvailability, Vehicle


def slots_url(service_id, start, end=None):
    return f"/api/available-slots?service_id={service_id}&start_date={start}&end_date={end or start}"


@pytest.fixture
def van_for_staff(db, users, booking_day):
    van = Vehicle(make="Ford", model="Transit", pet_capacity=4)
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


def test_field_capacity_slot(client, daycare_setup, booking_day):
    response = client.get(slots_url(daycare_setup.service.id, booking_day))
    assert response.status_code == 200
    [slot] = response.json()
    assert slot["rule_id"] == daycare_setup.rule.id
    assert slot["date"] == booking_day.isoformat()
    assert slot["total_capacity"] == 2
    assert slot["remaining_capacity"] == 2
    assert slot["uses_staff_capacity"] is False
    assert slot["price_per_pet"] == 25.0
    assert slot["zero_capacity_reason"] is None


def test_slot_capacity_drops_after_booking(client, headers, daycare_setup, booking_day, notifications):
    rex = daycare_setup.pets[0]
    booked = client.post(
        "/api/client-booking",
        json={
            "bookings": [
                {
                    "service_id": daycare_setup.service.id,
                    "start_time": f"{booking_day}T10:00:00",
                    "end_time": f"{booking_day}T11:00:00",
                    "pet_ids": [rex.id],
                }
            ]
        },
        headers=headers("client"),
    )
    assert booked.status_code == 201

    [slot] = client.get(slots_url(daycare_setup.service.id, booking_day)).json()
    assert slot["remaining_capacity"] == 1


def test_slots_only_on_rule_days(client, daycare_setup, booking_day):
    week = client.get(
        slots_url(daycare_setup.service.id, booking_day, booking_day + timedelta(days=6))
    ).json()
    assert [s["date"] for s in week] == [booking_day.isoformat()]


def test_override_price_and_capacity(client, db, daycare_setup, booking_day):
    daycare_setup.rule.override_price = 30.0
    daycare_setup.rule.base_capacity = 5
    db.commit()

    [slot] = client.get(slots_url(daycare_setup.service.id, booking_day)).json()
    assert slot["price_per_pet"] == 30.0
    assert slot["total_capacity"] == 5


def test_past_and_same_day_dates_return_nothing(client, daycare_setup, booking_day):
    past = booking_day - timedelta(days=14)
    assert client.get(slots_url(daycare_setup.service.id, past)).json() == []


@pytest.mark.parametrize(
    "start, end, message",
    [
        ("2030-13-01", "2030-01-02", "Invalid date format. Use YYYY-MM-DD"),
        ("07/01/2030", "2030-01-02", "Invalid date format. Use YYYY-MM-DD"),
        ("2030-01-05", "2030-01-02", "start_date must be on or before end_date"),
        ("2030-01-01", "2030-06-01", "Date range cannot exceed 93 days"),
    ],
)
def test_invalid_date_ranges(client, daycare_setup, start, end, message):
    response = client.get(slots_url(daycare_setup.service.id, start, end))
    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_unknown_service(client, users):
    response = client.get(slots_url(999, "2030-01-01"))
    assert response.status_code == 404
    assert response.json() == {"error": "Service not found"}


def test_missing_query_parameters(client, users):
    assert client.get("/api/available-slots?service_id=1").status_code == 400


def test_staff_capacity_without_default_staff(client, db, daycare_setup, booking_day):
    daycare_setup.rule.use_staff_vehicle_capacity = True
    db.commit()

    [slot] = client.get(slots_url(daycare_setup.service.id, booking_day)).json()
    assert slot["uses_staff_capacity"] is True
    assert slot["remaining_capacity"] == 0
    assert slot["zero_capacity_reason"] == "no_default_staff"
    assert slot["other_staff_potentially_available"] is False


def test_staff_capacity_without_vehicle(client, db, headers, daycare_setup, booking_day):
    daycare_setup.rule.use_staff_vehicle_capacity = True
    db.commit()

    [slot] = client.get(
        slots_url(daycare_setup.service.id, booking_day), headers=headers("client")
    ).json()
    assert slot["zero_capacity_reason"] == "no_vehicle_assigned"


def test_staff_capacity_from_vehicle(client, db, headers, daycare_setup, booking_day, van_for_staff):
    daycare_setup.rule.use_staff_vehicle_capacity = True
    db.commit()

    [slot] = client.get(
        slots_url(daycare_setup.service.id, booking_day), headers=headers("client")
    ).json()
    assert slot["total_capacity"] == 4
    assert slot["remaining_capacity"] == 4
    assert slot["zero_capacity_reason"] is None

    # without a default staff member, another staff member's van may still have room
    [anonymous] = client.get(slots_url(daycare_setup.service.id, booking_day)).json()
    assert anonymous["zero_capacity_reason"] == "no_default_staff"
    assert anonymous["other_staff_potentially_available"] is True


def test_inactive_service_has_no_slots(client, db, daycare_setup, booking_day):
    daycare_setup.service.is_active = False
    db.commit()

    response = client.get(slots_url(daycare_setup.service.id, booking_day))
    assert response.status_code == 404
    assert response.json() == {"error": "Service not found"}
