"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictBool, field_validator, model_validator

from ...shared.timeutils import as_utc, from_client_input

BOOKING_STATUSES = ("open", "confirmed", "completed", "cancelled")


def _validate_status(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in BOOKING_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(BOOKING_STATUSES)}")
    return value


class BookingCreate(BaseModel):
    """Booking created by staff (field hire or ad hoc session)"""

    field_ids: list[int] = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    service_type: Optional[str] = None
    status: str = "open"
    max_capacity: Optional[int] = Field(None, ge=0)
    assigned_staff_id: Optional[str] = None
    vehicle_id: Optional[int] = None
    assignment_notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return from_client_input(v) if v else v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _validate_status(v)

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class BookingUpdate(BaseModel):
    field_ids: Optional[list[int]] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    service_type: Optional[str] = None
    status: Optional[str] = None
    max_capacity: Optional[int] = Field(None, ge=0)
    assigned_staff_id: Optional[str] = None
    vehicle_id: Optional[int] = None
    assignment_notes: Optional[str] = None
    # Included in cancellation emails, not stored
    cancellation_reason: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return from_client_input(v) if v else v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _validate_status(v)


class BookingPaidUpdate(BaseModel):
    is_paid: StrictBool


class BookingResponse(BaseModel):
    id: int
    field_ids: list[int] = []
    start_time: datetime
    end_time: datetime
    service_type: Optional[str] = None
    status: str
    is_paid: bool
    max_capacity: Optional[int] = None
    assigned_staff_id: Optional[str] = None
    vehicle_id: Optional[int] = None
    assignment_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def ensure_utc(cls, v):
        return as_utc(v) if v else v

    @classmethod
    def from_booking(cls, booking, **extra):
        return cls(
            id=booking.id,
            field_ids=booking.booking_field_ids or [],
            start_time=booking.start_time,
            end_time=booking.end_time,
            service_type=booking.service_type,
            status=booking.status,
            is_paid=booking.is_paid,
            max_capacity=booking.max_capacity,
            assigned_staff_id=booking.assigned_staff_id,
            vehicle_id=booking.vehicle_id,
            assignment_notes=booking.assignment_notes,
            created_at=booking.created_at,
            **extra,
        )


class BookingListItem(BookingResponse):
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    pet_names: list[str] = []


class PetRef(BaseModel):
    id: int
    name: str


class MyBookingResponse(BaseModel):
    booking_id: int
    start_time: datetime
    end_time: datetime
    service_type: Optional[str] = None
    status: str
    field_ids: list[int] = []
    pets: list[PetRef] = []

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_utc(cls, v):
        return as_utc(v)


class ClientBookingItem(BaseModel):
    service_id: int
    start_time: datetime
    end_time: datetime
    pet_ids: list[int] = Field(..., min_length=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return from_client_input(v)


class ClientBookingRequest(BaseModel):
    bookings: list[ClientBookingItem] = Field(..., min_length=1)


class AdminBookingRequest(BaseModel):
    client_id: int
    pet_ids: list[int] = Field(..., min_length=1)
    service_id: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return from_client_input(v)

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self
