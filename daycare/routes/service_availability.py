"""
Service Availability API Routes

Rules describing when a service can be booked: a daily window in business
local time, on ISO weekdays or on one specific date, over a set of fields.
"""

import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field as PydanticField
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, require_admin, require_staff_or_admin
from ..database import get_db
from ..models import Field, ServiceAvailability
from ..schemas import ScheduleRuleFields
from ..shared.db_errors import raise_for_integrity_error
from ..shared.validators import validate_recurrence, validate_schedule_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/service-availability", tags=["Service Availability"])


class ServiceAvailabilityCreate(ScheduleRuleFields):
    service_id: int
    field_ids: list[int] = PydanticField(..., min_length=1)
    start_time: time
    end_time: time
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_active: bool = True
    override_price: Optional[float] = PydanticField(None, ge=0)
    use_staff_vehicle_capacity: bool = False
    base_capacity: Optional[int] = PydanticField(None, ge=0)


class ServiceAvailabilityUpdate(ScheduleRuleFields):
    service_id: Optional[int] = None
    field_ids: Optional[list[int]] = PydanticField(None, min_length=1)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_active: Optional[bool] = None
    override_price: Optional[float] = PydanticField(None, ge=0)
    use_staff_vehicle_capacity: Optional[bool] = None
    base_capacity: Optional[int] = PydanticField(None, ge=0)


class ServiceAvailabilityResponse(BaseModel):
    id: int
    service_id: int
    field_ids: list[int]
    start_time: time
    end_time: time
    days_of_week: Optional[list[int]] = None
    specific_date: Optional[date] = None
    is_active: bool
    override_price: Optional[float] = None
    use_staff_vehicle_capacity: bool
    base_capacity: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def check_rule(rule: ServiceAvailability, db: Session) -> None:
    """Validate the combined state of a rule before saving it"""
    try:
        validate_schedule_window(rule.start_time, rule.end_time)
        validate_recurrence(rule.days_of_week, rule.specific_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    field_ids = list(rule.field_ids or [])
    if not field_ids:
        raise HTTPException(status_code=400, detail="field_ids must be a non-empty array")
    found = {row.id for row in db.query(Field.id).filter(Field.id.in_(field_ids)).all()}
    missing = [fid for fid in field_ids if fid not in found]
    if missing:
        raise HTTPException(
            status_code=400, detail=f"Invalid field_ids: {', '.join(map(str, missing))} do not exist."
        )


def save_rule(db: Session, rule: ServiceAvailability) -> ServiceAvailability:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(
            e, foreign_key=f"Invalid service_id: {rule.service_id} does not exist."
        )
    db.refresh(rule)
    return rule


@router.get("", response_model=list[ServiceAvailabilityResponse])
def list_rules(
    service_id: Optional[int] = Query(None),
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    query = db.query(ServiceAvailability)
    if service_id is not None:
        query = query.filter(ServiceAvailability.service_id == service_id)
    return query.order_by(ServiceAvailability.service_id, ServiceAvailability.start_time).all()


@router.post("", response_model=ServiceAvailabilityResponse, status_code=201)
def create_rule(
    data: ServiceAvailabilityCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rule = ServiceAvailability(**data.model_dump())
    check_rule(rule, db)
    db.add(rule)
    rule = save_rule(db, rule)
    logger.info(f"✅ Availability rule {rule.id} created for service {rule.service_id}")
    return rule


@router.put("/{rule_id}", response_model=ServiceAvailabilityResponse)
def update_rule(
    rule_id: int,
    data: ServiceAvailabilityUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")
    for key in ("service_id", "field_ids", "start_time", "end_time", "is_active", "use_staff_vehicle_capacity"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=400, detail=f"{key} cannot be null")

    rule = db.query(ServiceAvailability).filter(ServiceAvailability.id == rule_id).first()
    if not rule:
        raise HTTPException(status_code=404, detail="Service availability rule not found")

    for key, value in updates.items():
        setattr(rule, key, value)
    try:
        check_rule(rule, db)
    except HTTPException:
        db.rollback()
        raise
    return save_rule(db, rule)


@router.delete("/{rule_id}")
def delete_rule(
    rule_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rule = db.query(ServiceAvailability).filter(ServiceAvailability.id == rule_id).first()
    if not rule:
        raise HTTPException(status_code=404, detail="Service availability rule not found")
    db.delete(rule)
    db.commit()
    logger.info(f"🗑️ Availability rule {rule_id} deleted")
    return {"success": True}
