"""Booking repository - Database operations for bookings and their links"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, BookingClient, BookingPet, Client, Field, Pet, Service, Staff


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def list_bookings(db: Session, assigned_staff_id: Optional[str] = None) -> list[Booking]:
        """All bookings, newest first, with clients and pets loaded"""
        query = db.query(Booking).options(
            joinedload(Booking.client_links).joinedload(BookingClient.client).joinedload(Client.profile),
            joinedload(Booking.pet_links).joinedload(BookingPet.pet),
        )
        if assigned_staff_id:
            query = query.filter(Booking.assigned_staff_id == assigned_staff_id)
        return query.order_by(Booking.start_time.desc()).all()

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_client_bookings(db: Session, client_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .join(BookingClient, BookingClient.booking_id == Booking.id)
            .options(joinedload(Booking.pet_links).joinedload(BookingPet.pet))
            .filter(BookingClient.client_id == client_id)
            .order_by(Booking.start_time.desc())
            .all()
        )

    @staticmethod
    def add_booking(
        db: Session, client_ids: list[int], pet_ids: list[int], **booking_data
    ) -> Booking:
        """Stage a booking with its client and pet links. The caller commits."""
        booking = Booking(**booking_data)
        booking.client_links = [BookingClient(client_id=cid) for cid in client_ids]
        booking.pet_links = [BookingPet(pet_id=pid) for pid in pet_ids]
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def update_booking(db: Session, booking: Booking, **updates) -> Booking:
        for key, value in updates.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

    @staticmethod
    def get_client(db: Session, client_id: int) -> Optional[Client]:
        return (
            db.query(Client)
            .options(joinedload(Client.profile), joinedload(Client.default_staff))
            .filter(Client.id == client_id)
            .first()
        )

    @staticmethod
    def get_client_pets(db: Session, client_id: int, pet_ids: list[int]) -> list[Pet]:
        if not pet_ids:
            return []
        return db.query(Pet).filter(Pet.client_id == client_id, Pet.id.in_(pet_ids)).all()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def lock_fields(db: Session, field_ids: list[int]) -> None:
        """Hold the fields' rows until commit so capacity checks on them run one at a time"""
        if field_ids:
            db.query(Field.id).filter(Field.id.in_(field_ids)).order_by(Field.id).with_for_update().all()

    @staticmethod
    def lock_staff(db: Session, staff_id: int) -> None:
        db.query(Staff.id).filter(Staff.id == staff_id).with_for_update().first()
