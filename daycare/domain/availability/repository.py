"""Availability repository - Database reads for rules, staff and overlapping bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, BookingPet, Field, ServiceAvailability, Staff, StaffAvailability

CANCELLED = "cancelled"


class AvailabilityRepository:
    """Repository for availability lookups"""

    @staticmethod
    def get_active_rules(db: Session, service_id: int) -> list[ServiceAvailability]:
        return (
            db.query(ServiceAvailability)
            .filter(
                ServiceAvailability.service_id == service_id,
                ServiceAvailability.is_active.is_(True),
            )
            .order_by(ServiceAvailability.start_time, ServiceAvailability.id)
            .all()
        )

    @staticmethod
    def get_staff_rules(db: Session, staff_id: int) -> list[StaffAvailability]:
        return db.query(StaffAvailability).filter(StaffAvailability.staff_id == staff_id).all()

    @staticmethod
    def get_fields(db: Session, field_ids: list[int]) -> list[Field]:
        if not field_ids:
            return []
        return db.query(Field).filter(Field.id.in_(field_ids)).all()

    @staticmethod
    def get_overlapping_bookings(
        db: Session,
        start: datetime,
        end: datetime,
        assigned_staff_user_id: Optional[str] = None,
    ) -> list[Booking]:
        """Non-cancelled bookings that intersect [start, end)"""
        query = db.query(Booking).filter(
            Booking.status != CANCELLED,
            Booking.start_time < end,
            Booking.end_time > start,
        )
        if assigned_staff_user_id is not None:
            query = query.filter(Booking.assigned_staff_id == assigned_staff_user_id)
        return query.all()

    @staticmethod
    def count_pets(db: Session, booking_ids: list[int]) -> int:
        if not booking_ids:
            return 0
        return (
            db.query(func.count(BookingPet.id))
            .filter(BookingPet.booking_id.in_(booking_ids))
            .scalar()
        ) or 0

    @staticmethod
    def get_staff_with_vehicles(db: Session) -> list[Staff]:
        return (
            db.query(Staff)
            .options(joinedload(Staff.default_vehicle))
            .filter(Staff.default_vehicle_id.isnot(None))
            .all()
        )
