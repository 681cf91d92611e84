"""Booking service - Business logic for bookings"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import AuthInfo
from ...email_templates import format_booking_date, format_time_range
from ...models import Booking, Client, Field, Pet, Service
from ...shared.db_errors import raise_for_integrity_error
from ...shared.timeutils import as_utc
from ..availability.service import NO_VEHICLE, STAFF_UNAVAILABLE, AvailabilityService
from .repository import BookingRepository
from .schemas import (
    AdminBookingRequest,
    BookingCreate,
    BookingListItem,
    BookingUpdate,
    ClientBookingItem,
    MyBookingResponse,
    PetRef,
)

logger = logging.getLogger(__name__)


class BookingRejected(Exception):
    """A single client booking request that cannot be fulfilled"""


def client_display_name(client: Optional[Client]) -> Optional[str]:
    if client is None:
        return None
    if client.profile and client.profile.full_name:
        return client.profile.full_name
    return client.email


def describe_booking(service_name: str, booking: Booking, pets: list[Pet]) -> dict:
    """Booking details as shown in emails"""
    return {
        "service_name": service_name,
        "date": format_booking_date(booking.start_time),
        "time": format_time_range(booking.start_time, booking.end_time),
        "pets": ", ".join(p.name for p in pets),
    }


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability = AvailabilityService(db)

    # ------------------------------------------------------------------
    # Staff management
    # ------------------------------------------------------------------

    def list_bookings(self, assigned_staff_id: Optional[str] = None) -> list[BookingListItem]:
        items = []
        for booking in self.repo.list_bookings(self.db, assigned_staff_id):
            client = booking.client_links[0].client if booking.client_links else None
            items.append(
                BookingListItem.from_booking(
                    booking,
                    client_id=client.id if client else None,
                    client_name=client_display_name(client),
                    pet_names=[link.pet.name for link in booking.pet_links if link.pet],
                )
            )
        return items

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def _check_fields_exist(self, field_ids: list[int]) -> None:
        found = {f.id for f in self.db.query(Field.id).filter(Field.id.in_(field_ids)).all()}
        missing = [fid for fid in field_ids if fid not in found]
        if missing:
            raise HTTPException(
                status_code=400, detail=f"Invalid field_id: {missing[0]} does not exist."
            )

    def create_booking(self, data: BookingCreate) -> Booking:
        self._check_fields_exist(data.field_ids)
        booking_data = data.model_dump(exclude={"field_ids"})
        try:
            booking = self.repo.add_booking(
                self.db, [], [], booking_field_ids=data.field_ids, **booking_data
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise_for_integrity_error(e, foreign_key="Invalid vehicle_id: vehicle does not exist.")
        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} created")
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate) -> tuple[Booking, bool]:
        """
        Apply a partial update.

        Returns the booking and whether this update cancelled it.
        """
        updates = data.model_dump(exclude_unset=True, exclude={"cancellation_reason"})
        if not updates:
            raise HTTPException(
                status_code=400, detail="No update fields provided or fields are invalid"
            )

        booking = self.get_booking(booking_id)

        if "field_ids" in updates:
            field_ids = updates.pop("field_ids")
            if field_ids is None:
                raise HTTPException(status_code=400, detail="field_ids cannot be empty")
            self._check_fields_exist(field_ids)
            updates["booking_field_ids"] = field_ids

        for key in ("start_time", "end_time", "status"):
            if key in updates and updates[key] is None:
                raise HTTPException(status_code=400, detail=f"{key} cannot be null")

        start = updates.get("start_time", booking.start_time)
        end = updates.get("end_time", booking.end_time)
        if as_utc(end) <= as_utc(start):
            raise HTTPException(status_code=400, detail="End time must be after start time")

        was_cancelled = booking.status == "cancelled"
        try:
            booking = self.repo.update_booking(self.db, booking, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise_for_integrity_error(e, foreign_key="Invalid vehicle_id: vehicle does not exist.")

        logger.info(f"✅ Booking {booking.id} updated: {sorted(updates)}")
        return booking, booking.status == "cancelled" and not was_cancelled

    def delete_booking(self, booking_id: int) -> None:
        booking = self.get_booking(booking_id)
        self.repo.delete_booking(self.db, booking)
        logger.info(f"🗑️ Booking {booking_id} deleted")

    def set_paid(self, booking_id: int, is_paid: bool) -> Booking:
        booking = self.get_booking(booking_id)
        return self.repo.update_booking(self.db, booking, is_paid=is_paid)

    def cancellation_notice(self, booking: Booking) -> dict:
        """Arguments for email_service.notify_booking_cancelled"""
        recipients = [
            {"email": link.client.email, "name": client_display_name(link.client)}
            for link in booking.client_links
            if link.client
        ]
        return {
            "recipients": recipients,
            "service_name": booking.service_type or "Booking",
            "date_text": format_booking_date(booking.start_time),
            "time_text": format_time_range(booking.start_time, booking.end_time),
        }

    # ------------------------------------------------------------------
    # Client self-service
    # ------------------------------------------------------------------

    def my_bookings(self, client_id: int) -> list[MyBookingResponse]:
        return [
            MyBookingResponse(
                booking_id=b.id,
                start_time=b.start_time,
                end_time=b.end_time,
                service_type=b.service_type,
                status=b.status,
                field_ids=b.booking_field_ids or [],
                pets=[PetRef(id=link.pet.id, name=link.pet.name) for link in b.pet_links if link.pet],
            )
            for b in self.repo.get_client_bookings(self.db, client_id)
        ]

    def _book_for_client(self, client: Client, item: ClientBookingItem) -> dict:
        if item.end_time <= item.start_time:
            raise BookingRejected("End time must be after start time")

        pet_ids = list(dict.fromkeys(item.pet_ids))
        pets = self.repo.get_client_pets(self.db, client.id, pet_ids)
        if len(pets) != len(pet_ids):
            raise BookingRejected("One or more pets not found or do not belong to you")
        unconfirmed = [p.name for p in pets if not p.is_confirmed]
        if unconfirmed:
            raise BookingRejected(
                f"Pets must be confirmed before booking: {', '.join(unconfirmed)}"
            )

        service = self.repo.get_service(self.db, item.service_id)
        if not service or not service.is_active:
            raise BookingRejected(f"Service {item.service_id} not found")

        rule = self.availability.find_matching_rule(service.id, item.start_time, item.end_time)
        if not rule:
            raise BookingRejected("No availability for this service at the requested time")

        assigned_staff_id = None
        vehicle_id = None
        if rule.use_staff_vehicle_capacity:
            staff = client.default_staff
            if staff is None:
                raise BookingRejected("No default staff member is assigned to your account")
            # serialize bookings against this staff member's vehicle until commit
            self.repo.lock_staff(self.db, staff.id)
            capacity = self.availability.staff_capacity(staff, item.start_time, item.end_time)
            if capacity.reason == NO_VEHICLE:
                raise BookingRejected("Your assigned staff member has no vehicle")
            if capacity.reason == STAFF_UNAVAILABLE:
                raise BookingRejected("Your assigned staff member is not available at this time")
            assigned_staff_id = staff.user_id
            vehicle_id = staff.default_vehicle_id
        else:
            self.repo.lock_fields(self.db, list(rule.field_ids or []))
            capacity = self.availability.field_capacity(rule, item.start_time, item.end_time)

        if not capacity.fits(len(pets)):
            raise BookingRejected(
                f"Not enough capacity: {capacity.remaining} place(s) left for {len(pets)} pet(s)"
            )

        booking = self.repo.add_booking(
            self.db,
            [client.id],
            [p.id for p in pets],
            booking_field_ids=list(rule.field_ids or []),
            start_time=item.start_time,
            end_time=item.end_time,
            service_type=service.name,
            status="confirmed",
            is_paid=False,
            max_capacity=capacity.capacity,
            assigned_staff_id=assigned_staff_id,
            vehicle_id=vehicle_id,
        )
        self.db.commit()
        logger.info(f"✅ Client {client.id} booked {service.name} (booking {booking.id})")
        return describe_booking(service.name, booking, pets) | {"booking_id": booking.id}

    def create_client_bookings(
        self, info: AuthInfo, items: list[ClientBookingItem]
    ) -> tuple[int, dict, dict]:
        """
        Attempt every requested booking independently.

        Returns (status_code, body, contact): 201 when all succeed, 207 when
        some do, 400 when none do. contact holds the client email and name
        for the notification emails.
        """
        client = self.repo.get_client(self.db, info.client_id)
        successes, failures = [], []

        for item in items:
            try:
                successes.append(self._book_for_client(client, item))
            except BookingRejected as e:
                self.db.rollback()
                logger.warning(f"⚠️ Booking rejected for client {client.id}: {e}")
                failures.append({"input": item.model_dump(mode="json"), "error": str(e)})
            except IntegrityError as e:
                self.db.rollback()
                logger.error(f"❌ Booking insert failed for client {client.id}: {e.orig}")
                failures.append({"input": item.model_dump(mode="json"), "error": "Could not save booking"})

        if successes and not failures:
            status_code, message = 201, "All bookings created successfully."
        elif successes:
            status_code, message = 207, "Some bookings could not be created."
        else:
            status_code, message = 400, "No bookings could be created."

        return status_code, {
            "message": message,
            "successfulBookings": successes,
            "failedBookings": failures,
        }, {"email": client.email, "name": client_display_name(client)}

    def create_admin_booking(self, data: AdminBookingRequest) -> Booking:
        """
        Book on behalf of a client. Capacity is not enforced; staff and vehicle
        are assigned when the rule uses them and the client has a default staff
        member with a vehicle.
        """
        client = self.repo.get_client(self.db, data.client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")

        pet_ids = list(dict.fromkeys(data.pet_ids))
        pets = self.repo.get_client_pets(self.db, client.id, pet_ids)
        if len(pets) != len(pet_ids):
            raise HTTPException(
                status_code=400, detail="One or more pets do not belong to this client"
            )

        service: Optional[Service] = self.repo.get_service(self.db, data.service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        rule = self.availability.find_matching_rule(service.id, data.start_time, data.end_time)
        if not rule:
            raise HTTPException(
                status_code=400,
                detail="No matching availability rule for this service at the requested time",
            )

        assigned_staff_id = None
        vehicle_id = None
        if rule.use_staff_vehicle_capacity:
            staff = client.default_staff
            if staff and staff.default_vehicle_id:
                assigned_staff_id = staff.user_id
                vehicle_id = staff.default_vehicle_id
            else:
                logger.warning(
                    f"⚠️ Client {client.id} has no default staff with a vehicle - booking unassigned"
                )

        try:
            booking = self.repo.add_booking(
                self.db,
                [client.id],
                [p.id for p in pets],
                booking_field_ids=list(rule.field_ids or []),
                start_time=data.start_time,
                end_time=data.end_time,
                service_type=service.name,
                status="confirmed",
                is_paid=False,
                assigned_staff_id=assigned_staff_id,
                vehicle_id=vehicle_id,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise_for_integrity_error(e)

        self.db.refresh(booking)
        logger.info(f"✅ Admin booking {booking.id} created for client {client.id}")
        return booking
