"""Availability service - Slot generation and capacity rules

A ServiceAvailability rule describes a daily window in business local time,
repeating on ISO weekdays or fixed to one date. Capacity for a slot comes
either from the rule's fields (or its base_capacity) or, when the rule uses
staff/vehicle capacity, from the pet capacity of the staff member's vehicle.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceAvailability, Staff, StaffAvailability
from ...shared.timeutils import local_to_utc, to_business_time, utc_today
from .repository import AvailabilityRepository

logger = logging.getLogger(__name__)

# Reasons reported when a slot has no remaining capacity
NO_DEFAULT_STAFF = "no_default_staff"
NO_VEHICLE = "no_vehicle_assigned"
STAFF_UNAVAILABLE = "staff_unavailable"
VEHICLE_FULL = "vehicle_full"
FULLY_BOOKED = "fully_booked"


def rule_applies_on(rule, day: date) -> bool:
    """A dated rule applies only on its date, a weekly rule on its ISO weekdays."""
    if rule.specific_date is not None:
        return rule.specific_date == day
    return day.isoweekday() in (rule.days_of_week or [])


def window_contains(rule, start: time, end: time) -> bool:
    return rule.start_time <= start and end <= rule.end_time


def window_overlaps(rule, start: time, end: time) -> bool:
    return rule.start_time < end and start < rule.end_time


@dataclass
class SlotCapacity:
    capacity: Optional[int]  # None means no limit configured
    booked: int = 0
    reason: Optional[str] = None

    @property
    def remaining(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(self.capacity - self.booked, 0)

    def fits(self, pets: int) -> bool:
        return self.remaining is None or self.remaining >= pets


class AvailabilityService:
    """Service layer for availability and capacity"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    # ------------------------------------------------------------------
    # Rule matching
    # ------------------------------------------------------------------

    def find_matching_rule(
        self, service_id: int, start: datetime, end: datetime
    ) -> Optional[ServiceAvailability]:
        """
        Active rule whose window contains the booking, in business local time.

        Rules fixed to the booking's date win over weekly rules.
        """
        local_start = to_business_time(start)
        local_end = to_business_time(end)
        if local_start.date() != local_end.date():
            return None

        day = local_start.date()
        candidates = [
            rule
            for rule in self.repo.get_active_rules(self.db, service_id)
            if rule_applies_on(rule, day)
            and window_contains(rule, local_start.time(), local_end.time())
        ]
        candidates.sort(key=lambda r: r.specific_date is None)
        return candidates[0] if candidates else None

    def staff_is_available(self, staff_id: int, start: datetime, end: datetime) -> bool:
        """
        Working hours must cover the whole booking and no blackout may overlap it.
        """
        local_start = to_business_time(start)
        local_end = to_business_time(end)
        day = local_start.date()
        rules: list[StaffAvailability] = [
            r for r in self.repo.get_staff_rules(self.db, staff_id) if rule_applies_on(r, day)
        ]

        if any(
            not r.is_available and window_overlaps(r, local_start.time(), local_end.time())
            for r in rules
        ):
            return False
        return any(
            r.is_available and window_contains(r, local_start.time(), local_end.time())
            for r in rules
        )

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def staff_capacity(self, staff: Optional[Staff], start: datetime, end: datetime) -> SlotCapacity:
        if staff is None:
            return SlotCapacity(capacity=0, reason=NO_DEFAULT_STAFF)
        if staff.default_vehicle is None:
            return SlotCapacity(capacity=0, reason=NO_VEHICLE)
        if not self.staff_is_available(staff.id, start, end):
            return SlotCapacity(capacity=0, reason=STAFF_UNAVAILABLE)

        bookings = self.repo.get_overlapping_bookings(
            self.db, start, end, assigned_staff_user_id=staff.user_id
        )
        booked = self.repo.count_pets(self.db, [b.id for b in bookings])
        capacity = SlotCapacity(capacity=staff.default_vehicle.pet_capacity or 0, booked=booked)
        if capacity.remaining == 0:
            capacity.reason = VEHICLE_FULL
        return capacity

    def field_capacity(self, rule: ServiceAvailability, start: datetime, end: datetime) -> SlotCapacity:
        """
        Capacity of the rule's fields: base_capacity when set, otherwise the sum
        of field capacities (unlimited if any field has none).
        """
        rule_fields = set(rule.field_ids or [])
        if rule.base_capacity is not None:
            total = rule.base_capacity
        else:
            fields = self.repo.get_fields(self.db, list(rule_fields))
            if not fields or any(f.capacity is None for f in fields):
                total = None
            else:
                total = sum(f.capacity for f in fields)

        sharing = [
            b
            for b in self.repo.get_overlapping_bookings(self.db, start, end)
            if rule_fields.intersection(b.booking_field_ids or [])
        ]
        capacity = SlotCapacity(
            capacity=total, booked=self.repo.count_pets(self.db, [b.id for b in sharing])
        )
        if capacity.remaining == 0:
            capacity.reason = FULLY_BOOKED
        return capacity

    def rule_capacity(
        self, rule: ServiceAvailability, start: datetime, end: datetime, staff: Optional[Staff]
    ) -> SlotCapacity:
        if rule.use_staff_vehicle_capacity:
            return self.staff_capacity(staff, start, end)
        return self.field_capacity(rule, start, end)

    def other_staff_available(
        self, start: datetime, end: datetime, exclude_staff_id: Optional[int] = None
    ) -> bool:
        for staff in self.repo.get_staff_with_vehicles(self.db):
            if staff.id == exclude_staff_id:
                continue
            if (self.staff_capacity(staff, start, end).remaining or 0) > 0:
                return True
        return False

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def calculate_available_slots(
        self,
        service: Service,
        start_date: date,
        end_date: date,
        default_staff: Optional[Staff] = None,
        today: Optional[date] = None,
    ) -> list[dict]:
        """
        One slot per matching active rule per date in [start_date, end_date].

        Only dates after today are returned; same-day booking is not offered.
        """
        today = today or utc_today()
        rules = self.repo.get_active_rules(self.db, service.id)
        slots = []

        day = max(start_date, today + timedelta(days=1))
        while day <= end_date:
            for rule in rules:
                if not rule_applies_on(rule, day):
                    continue

                slot_start = local_to_utc(day, rule.start_time)
                slot_end = local_to_utc(day, rule.end_time)
                capacity = self.rule_capacity(rule, slot_start, slot_end, default_staff)

                other_staff = False
                if rule.use_staff_vehicle_capacity and capacity.remaining == 0:
                    other_staff = self.other_staff_available(
                        slot_start, slot_end, default_staff.id if default_staff else None
                    )

                price = rule.override_price if rule.override_price is not None else service.default_price
                slots.append(
                    {
                        "rule_id": rule.id,
                        "date": day,
                        "start_time": slot_start,
                        "end_time": slot_end,
                        "total_capacity": capacity.capacity,
                        "remaining_capacity": capacity.remaining,
                        "uses_staff_capacity": rule.use_staff_vehicle_capacity,
                        "field_ids": list(rule.field_ids or []),
                        "price_per_pet": price,
                        "zero_capacity_reason": capacity.reason if capacity.remaining == 0 else None,
                        "other_staff_potentially_available": other_staff,
                    }
                )
            day += timedelta(days=1)

        logger.info(
            f"📅 {len(slots)} slots for service {service.id} between {start_date} and {end_date}"
        )
        return slots
