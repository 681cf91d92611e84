"""
Services API Routes

Bookable services (daycare sessions, field hire). Everyone signed in can
list them; only admins manage them.
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, get_current_user, require_admin
from ..database import get_db
from ..identity import IdentityUser
from ..models import Service, ServiceAvailability
from ..shared.db_errors import is_unique_violation, raise_for_integrity_error
from ..shared.validators import strip_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])

ServiceType = Literal["Field Hire", "Daycare"]


class ServiceCreate(BaseModel):
    name: str
    description: Optional[str] = None
    default_price: Optional[float] = PydanticField(None, ge=0)
    requires_field_selection: bool = False
    service_type: ServiceType = "Daycare"
    is_active: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    default_price: Optional[float] = PydanticField(None, ge=0)
    requires_field_selection: Optional[bool] = None
    service_type: Optional[ServiceType] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    default_price: Optional[float] = None
    requires_field_selection: bool
    service_type: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _duplicate_name(name: Optional[str]) -> HTTPException:
    return HTTPException(status_code=409, detail=f'Service name "{name}" already exists.')


@router.get("", response_model=list[ServiceResponse])
def list_services(
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return db.query(Service).order_by(Service.name).all()


@router.post("", response_model=ServiceResponse, status_code=201)
def create_service(
    data: ServiceCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = Service(**data.model_dump())
    try:
        db.add(service)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise _duplicate_name(data.name) from e
        raise_for_integrity_error(e)
    db.refresh(service)
    logger.info(f"✅ Service {service.id} created: {service.name}")
    return service


@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: int,
    data: ServiceUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    # Nulls are dropped: every column here is either required or has a default
    updates = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in ("description", "default_price")
    }
    if not updates:
        raise HTTPException(
            status_code=400, detail="No update fields provided or fields are invalid"
        )

    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    for key, value in updates.items():
        setattr(service, key, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise _duplicate_name(updates.get("name")) from e
        raise_for_integrity_error(e)
    db.refresh(service)
    return service


@router.delete("/{service_id}")
def delete_service(
    service_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    rule_count = (
        db.query(ServiceAvailability).filter(ServiceAvailability.service_id == service_id).count()
    )
    if rule_count:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete service: It is used in {rule_count} service availability rule(s).",
        )

    db.delete(service)
    db.commit()
    logger.info(f"🗑️ Service {service_id} deleted")
    return {"success": True}
