"""
Vehicles API Routes

Staff vans used for pick-up and drop-off. pet_capacity caps the number of
pets a staff member can carry per booking window.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, require_admin
from ..database import get_db
from ..models import Staff, Vehicle
from ..shared.db_errors import is_foreign_key_violation, raise_for_integrity_error
from ..shared.validators import strip_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


class VehicleCreate(BaseModel):
    make: str
    model: str
    year: Optional[int] = PydanticField(None, ge=1900, le=2100)
    color: Optional[str] = None
    license_plate: Optional[str] = None
    pet_capacity: Optional[int] = PydanticField(None, ge=0)
    notes: Optional[str] = None

    @field_validator("make", "model", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return strip_required(v, info.field_name)


class VehicleUpdate(BaseModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = PydanticField(None, ge=1900, le=2100)
    color: Optional[str] = None
    license_plate: Optional[str] = None
    pet_capacity: Optional[int] = PydanticField(None, ge=0)
    notes: Optional[str] = None

    @field_validator("make", "model", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return strip_required(v, info.field_name)


class VehicleResponse(BaseModel):
    id: int
    make: str
    model: str
    year: Optional[int] = None
    color: Optional[str] = None
    license_plate: Optional[str] = None
    pet_capacity: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


def _delete_vehicle(db: Session, vehicle_id: int) -> dict:
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")

    # Unassign from staff before removing
    db.query(Staff).filter(Staff.default_vehicle_id == vehicle_id).update(
        {Staff.default_vehicle_id: None}, synchronize_session=False
    )
    try:
        db.delete(vehicle)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_foreign_key_violation(e):
            raise HTTPException(
                status_code=409, detail="Cannot delete vehicle: It is referenced by bookings."
            ) from e
        raise_for_integrity_error(e)
    logger.info(f"🗑️ Vehicle {vehicle_id} deleted")
    return {"success": True}


@router.get("", response_model=list[VehicleResponse])
def list_vehicles(
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return db.query(Vehicle).order_by(Vehicle.make, Vehicle.model).all()


@router.post("", response_model=VehicleResponse, status_code=201)
def create_vehicle(
    data: VehicleCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    vehicle = Vehicle(**data.model_dump())
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info(f"✅ Vehicle {vehicle.id} created: {vehicle.make} {vehicle.model}")
    return vehicle


@router.put("/{vehicle_id}", response_model=VehicleResponse)
def update_vehicle(
    vehicle_id: int,
    data: VehicleUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")

    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    for key, value in updates.items():
        setattr(vehicle, key, value)
    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.delete("")
def delete_vehicle_by_query(
    id: Optional[int] = Query(None),
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete with ?id= (kept for existing front ends)"""
    if id is None:
        raise HTTPException(status_code=400, detail="Missing id")
    return _delete_vehicle(db, id)


@router.delete("/{vehicle_id}")
def delete_vehicle(
    vehicle_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _delete_vehicle(db, vehicle_id)
