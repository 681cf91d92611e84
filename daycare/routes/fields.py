"""
Fields API Routes

Bookable fields within a site. Capacity is the number of pets a field holds.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, require_admin, require_staff_or_admin
from ..database import get_db
from ..models import Field, ServiceAvailability
from ..shared.db_errors import raise_for_integrity_error
from ..shared.validators import strip_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fields", tags=["Fields"])


class FieldCreate(BaseModel):
    site_id: int
    name: Optional[str] = None
    field_type: Optional[str] = None
    capacity: Optional[int] = PydanticField(None, ge=0)


class FieldUpdate(BaseModel):
    site_id: Optional[int] = None
    name: Optional[str] = None
    field_type: Optional[str] = None
    capacity: Optional[int] = PydanticField(None, ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")


class FieldResponse(BaseModel):
    id: int
    site_id: int
    name: Optional[str] = None
    field_type: Optional[str] = None
    capacity: Optional[int] = None

    class Config:
        from_attributes = True


def get_field_or_404(db: Session, field_id: int) -> Field:
    field = db.query(Field).filter(Field.id == field_id).first()
    if not field:
        raise HTTPException(status_code=404, detail="Field not found")
    return field


@router.get("", response_model=list[FieldResponse])
def list_fields(
    site_id: Optional[int] = Query(None),
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Field)
    if site_id is not None:
        query = query.filter(Field.site_id == site_id)
    return query.order_by(Field.name).all()


@router.post("", response_model=FieldResponse, status_code=201)
def create_field(
    data: FieldCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    field = Field(**data.model_dump())
    try:
        db.add(field)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Field insert rejected for site_id={data.site_id}: {e.orig}")
        raise_for_integrity_error(
            e, foreign_key=f"Invalid site_id: {data.site_id} does not exist."
        )
    db.refresh(field)
    logger.info(f"✅ Field {field.id} created on site {field.site_id}")
    return field


@router.put("/{field_id}", response_model=FieldResponse)
def update_field(
    field_id: int,
    data: FieldUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")
    if "site_id" in updates and updates["site_id"] is None:
        raise HTTPException(status_code=400, detail="site_id cannot be null")

    field = get_field_or_404(db, field_id)
    for key, value in updates.items():
        setattr(field, key, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(
            e, foreign_key=f"Invalid site_id: {updates.get('site_id')} does not exist."
        )
    db.refresh(field)
    return field


@router.delete("/{field_id}")
def delete_field(
    field_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    field = get_field_or_404(db, field_id)
    rules = [r for r in db.query(ServiceAvailability).all() if field_id in (r.field_ids or [])]
    if rules:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete field: It is used in {len(rules)} service availability rule(s).",
        )
    db.delete(field)
    db.commit()
    logger.info(f"🗑️ Field {field_id} deleted")
    return {"success": True}
