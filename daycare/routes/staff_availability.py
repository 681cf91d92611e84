"""
Staff Availability API Routes

Working hours (is_available=true) and blackout periods (is_available=false)
for staff members, used when a booking depends on staff/vehicle capacity.
"""

import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, require_admin
from ..database import get_db
from ..models import StaffAvailability
from ..schemas import ScheduleRuleFields
from ..shared.db_errors import raise_for_integrity_error
from ..shared.validators import validate_recurrence, validate_schedule_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff-availability", tags=["Staff Availability"])


class StaffAvailabilityCreate(ScheduleRuleFields):
    staff_id: int
    start_time: time
    end_time: time
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_available: bool = True


class StaffAvailabilityUpdate(ScheduleRuleFields):
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_available: Optional[bool] = None


class StaffAvailabilityResponse(BaseModel):
    id: int
    staff_id: int
    start_time: time
    end_time: time
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def check_staff_rule(rule: StaffAvailability) -> None:
    try:
        validate_schedule_window(rule.start_time, rule.end_time)
        validate_recurrence(rule.days_of_week, rule.specific_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def get_rule_or_404(db: Session, rule_id: int) -> StaffAvailability:
    rule = db.query(StaffAvailability).filter(StaffAvailability.id == rule_id).first()
    if not rule:
        raise HTTPException(status_code=404, detail="Staff availability rule not found")
    return rule


@router.get("", response_model=list[StaffAvailabilityResponse])
def list_staff_availability(
    staff_id: Optional[int] = Query(None),
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(StaffAvailability)
    if staff_id is not None:
        query = query.filter(StaffAvailability.staff_id == staff_id)
    return query.order_by(StaffAvailability.staff_id, StaffAvailability.start_time).all()


@router.post("", response_model=StaffAvailabilityResponse, status_code=201)
def create_staff_availability(
    data: StaffAvailabilityCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rule = StaffAvailability(**data.model_dump())
    check_staff_rule(rule)
    try:
        db.add(rule)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(
            e, foreign_key=f"Invalid staff_id: {data.staff_id} does not exist."
        )
    db.refresh(rule)
    logger.info(f"✅ Staff availability {rule.id} created for staff {rule.staff_id}")
    return rule


@router.put("/{rule_id}", response_model=StaffAvailabilityResponse)
def update_staff_availability(
    rule_id: int,
    data: StaffAvailabilityUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")
    for key in ("start_time", "end_time", "is_available"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=400, detail=f"{key} cannot be null")

    rule = get_rule_or_404(db, rule_id)
    for key, value in updates.items():
        setattr(rule, key, value)
    try:
        check_staff_rule(rule)
    except HTTPException:
        db.rollback()
        raise
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/{rule_id}")
def delete_staff_availability(
    rule_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rule = get_rule_or_404(db, rule_id)
    db.delete(rule)
    db.commit()
    logger.info(f"🗑️ Staff availability {rule_id} deleted")
    return {"success": True}
