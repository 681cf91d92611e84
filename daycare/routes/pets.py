"""
Pets API Routes

Clients manage their own pets. Admins can also update or delete any pet and
are the only ones who can mark a pet as confirmed for booking.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import storage
from ..auth import AuthInfo, get_auth_info, get_session_db, require_client
from ..database import get_db
from ..models import Pet, PetImage
from ..shared.db_errors import is_foreign_key_violation, raise_for_integrity_error
from ..shared.validators import strip_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pets", tags=["Pets"])


def _strip_optional(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


class PetCreate(BaseModel):
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")

    @field_validator("breed", "size", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip_optional(v)


class PetUpdate(BaseModel):
    name: Optional[str] = None
    breed: Optional[str] = None
    size: Optional[str] = None
    is_confirmed: Optional[bool] = None

    @field_validator("name", "breed", "size", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip_optional(v)


class PetResponse(BaseModel):
    id: int
    client_id: int
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None
    is_confirmed: bool

    class Config:
        from_attributes = True


def get_pet_for_caller(db: Session, info: AuthInfo, pet_id: int) -> Pet:
    """Admins reach any pet, clients only their own"""
    if not info.is_admin and info.client_id is None:
        raise HTTPException(status_code=404, detail="Client profile not found for this user")

    query = db.query(Pet).filter(Pet.id == pet_id)
    if not info.is_admin:
        query = query.filter(Pet.client_id == info.client_id)
    pet = query.first()
    if not pet:
        raise HTTPException(status_code=404, detail="Pet not found or access denied.")
    return pet


@router.get("", response_model=list[PetResponse])
def list_my_pets(
    info: AuthInfo = Depends(require_client),
    db: Session = Depends(get_session_db),
):
    return db.query(Pet).filter(Pet.client_id == info.client_id).order_by(Pet.name).all()


@router.post("", response_model=PetResponse, status_code=201)
def create_pet(
    data: PetCreate,
    info: AuthInfo = Depends(require_client),
    db: Session = Depends(get_session_db),
):
    pet = Pet(client_id=info.client_id, is_confirmed=False, **data.model_dump())
    db.add(pet)
    db.commit()
    db.refresh(pet)
    logger.info(f"✅ Pet {pet.id} created for client {info.client_id}")
    return pet


@router.get("/{pet_id}", response_model=PetResponse)
def get_pet(
    pet_id: int,
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    return get_pet_for_caller(db, info, pet_id)


@router.put("/{pet_id}", response_model=PetResponse)
def update_pet(
    pet_id: int,
    data: PetUpdate,
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not info.is_admin:
        updates.pop("is_confirmed", None)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields provided for update.")

    pet = get_pet_for_caller(db, info, pet_id)
    for key, value in updates.items():
        setattr(pet, key, value)
    db.commit()
    db.refresh(pet)
    logger.info(f"✅ Pet {pet_id} updated: {sorted(updates)}")
    return pet


@router.delete("/{pet_id}")
def delete_pet(
    pet_id: int,
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    pet = get_pet_for_caller(db, info, pet_id)
    image_keys = [
        key for (key,) in db.query(PetImage.storage_object_path).filter(PetImage.pet_id == pet_id)
    ]
    try:
        db.delete(pet)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_foreign_key_violation(e):
            raise HTTPException(
                status_code=409, detail="Cannot delete pet: It is linked to existing bookings."
            ) from e
        raise_for_integrity_error(e)

    # image rows cascade with the pet, the stored files do not
    for key in image_keys:
        try:
            storage.delete_object(key)
        except Exception as e:
            logger.error(f"❌ Failed to delete stored object {key}: {e}")
    logger.info(f"🗑️ Pet {pet_id} deleted")
    return {"message": "Pet deleted successfully"}
