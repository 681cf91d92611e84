"""Booking router - FastAPI endpoints for bookings"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import (
    AuthInfo,
    get_session_db,
    require_admin,
    require_client,
    require_staff_or_admin,
)
from ...database import get_db
from ...email_service import notify_booking_cancelled, notify_booking_confirmed, notify_booking_summary
from .schemas import (
    AdminBookingRequest,
    BookingCreate,
    BookingListItem,
    BookingPaidUpdate,
    BookingResponse,
    BookingUpdate,
    ClientBookingRequest,
    MyBookingResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# STAFF / ADMIN MANAGEMENT
# ============================================================================


@router.get("/bookings", response_model=list[BookingListItem])
def list_bookings(
    assigned_staff_id: Optional[str] = None,
    info: AuthInfo = Depends(require_staff_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    """All bookings (newest first), optionally only those assigned to one staff user"""
    if assigned_staff_id == "me":
        assigned_staff_id = info.user.id
    return service.list_bookings(assigned_staff_id)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(
    data: BookingCreate,
    info: AuthInfo = Depends(require_staff_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.create_booking(data)
    return BookingResponse.from_booking(booking)


@router.put("/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    background_tasks: BackgroundTasks,
    info: AuthInfo = Depends(require_staff_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Partial update. Cancelling a booking notifies its clients and the business inbox."""
    booking, cancelled = service.update_booking(booking_id, data)
    if cancelled:
        notice = service.cancellation_notice(booking)
        background_tasks.add_task(
            notify_booking_cancelled,
            cancelled_by="Admin" if info.is_admin else "Staff",
            reason=data.cancellation_reason,
            **notice,
        )
    return BookingResponse.from_booking(booking)


@router.delete("/bookings/{booking_id}")
def delete_booking(
    booking_id: int,
    info: AuthInfo = Depends(require_staff_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    service.delete_booking(booking_id)
    return {"message": "Booking deleted successfully"}


@router.patch("/bookings/{booking_id}/status")
def update_payment_status(
    booking_id: int,
    data: BookingPaidUpdate,
    info: AuthInfo = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.set_paid(booking_id, data.is_paid)
    return {"id": booking.id, "is_paid": booking.is_paid}


@router.post("/admin-booking", response_model=BookingResponse, status_code=201)
def create_admin_booking(
    data: AdminBookingRequest,
    info: AuthInfo = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Book on behalf of a client"""
    booking = service.create_admin_booking(data)
    return BookingResponse.from_booking(booking)


# ============================================================================
# CLIENT SELF-SERVICE
# ============================================================================


@router.get("/my-bookings", response_model=list[MyBookingResponse])
def get_my_bookings(
    info: AuthInfo = Depends(require_client),
    db: Session = Depends(get_session_db),
):
    """The caller's bookings with their pets, newest first"""
    return BookingService(db).my_bookings(info.client_id)


@router.post("/client-booking")
def create_client_bookings(
    data: ClientBookingRequest,
    background_tasks: BackgroundTasks,
    info: AuthInfo = Depends(require_client),
    service: BookingService = Depends(get_booking_service),
):
    """
    Book one or more sessions for the caller's pets.

    Each booking is checked and saved independently: 201 when all succeed,
    207 when some fail, 400 when all fail.
    """
    status_code, body, contact = service.create_client_bookings(info, data.bookings)
    successes = body["successfulBookings"]
    failures = body["failedBookings"]

    if len(successes) == 1 and not failures:
        background_tasks.add_task(
            notify_booking_confirmed, contact["email"], contact["name"], successes[0]
        )
    elif successes or failures:
        summary_errors = [
            {
                "service_id": f["input"].get("service_id"),
                "start_time": f["input"].get("start_time"),
                "error": f["error"],
            }
            for f in failures
        ]
        background_tasks.add_task(
            notify_booking_summary, contact["email"], contact["name"], successes, summary_errors
        )

    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
