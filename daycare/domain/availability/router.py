"""Availability router - bookable slots for a service"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user, resolve_auth_info
from ...config import MAX_SLOT_RANGE_DAYS
from ...database import get_db
from ...identity import IdentityUser
from ...models import Client, Service
from ...shared.validators import validate_iso_date
from .schemas import AvailableSlot
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.get("/available-slots", response_model=list[AvailableSlot])
def get_available_slots(
    service_id: int = Query(...),
    start_date: str = Query(...),
    end_date: str = Query(...),
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """
    Bookable slots for a service between two dates (inclusive).

    Signed-in clients see staff/vehicle capacity for their default staff member.
    """
    try:
        start = validate_iso_date(start_date)
        end = validate_iso_date(end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    if (end - start).days > MAX_SLOT_RANGE_DAYS:
        raise HTTPException(
            status_code=400, detail=f"Date range cannot exceed {MAX_SLOT_RANGE_DAYS} days"
        )

    service = db.query(Service).filter(Service.id == service_id).first()
    if not service or not service.is_active:
        raise HTTPException(status_code=404, detail="Service not found")

    default_staff = None
    if user is not None:
        info = resolve_auth_info(db, user)
        if info.client_id is not None:
            client = db.query(Client).filter(Client.id == info.client_id).first()
            default_staff = client.default_staff if client else None

    return availability.calculate_available_slots(service, start, end, default_staff)
