"""
Pet Images API Routes

Staff upload photos of the pets they look after. Photos are stored privately
in R2; listings return short-lived presigned URLs. Owners can view photos of
their own pets.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import storage
from ..auth import AuthInfo, get_auth_info, require_staff_or_admin
from ..database import get_db
from ..models import Client, Pet, PetImage
from .pets import PetResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pet Images"])

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
}

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class PetImageResponse(BaseModel):
    id: int
    pet_id: int
    uploaded_by_staff_id: Optional[int] = None
    storage_object_path: str
    caption: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    created_at: Optional[datetime] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


def _get_pet_or_404(db: Session, pet_id: int) -> Pet:
    pet = db.query(Pet).filter(Pet.id == pet_id).first()
    if not pet:
        raise HTTPException(status_code=404, detail="Pet not found")
    return pet


def _with_url(image: PetImage) -> PetImageResponse:
    response = PetImageResponse.model_validate(image)
    try:
        response.image_url = storage.generate_presigned_url(image.storage_object_path)
    except Exception as e:
        # listing still works, the photo shows as unavailable
        logger.error(f"❌ Failed to sign URL for {image.storage_object_path}: {e}")
    return response


@router.get("/staff/pets", response_model=list[PetResponse])
def list_staff_pets(
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    """Pets whose owners have the caller as their default staff member"""
    return (
        db.query(Pet)
        .join(Client, Pet.client_id == Client.id)
        .filter(Client.default_staff_id == info.staff_id)
        .order_by(Pet.name)
        .all()
    )


@router.get("/pets/{pet_id}/images", response_model=list[PetImageResponse])
def list_pet_images(
    pet_id: int,
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    pet = _get_pet_or_404(db, pet_id)
    if not info.is_staff and (info.client_id is None or pet.client_id != info.client_id):
        raise HTTPException(status_code=404, detail="Pet not found")

    images = (
        db.query(PetImage)
        .filter(PetImage.pet_id == pet_id)
        .order_by(PetImage.created_at.desc(), PetImage.id.desc())
        .all()
    )
    return [_with_url(image) for image in images]


@router.post("/pets/{pet_id}/images", response_model=PetImageResponse, status_code=201)
async def upload_pet_image(
    pet_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    _get_pet_or_404(db, pet_id)

    extension = ALLOWED_IMAGE_TYPES.get(file.content_type)
    if not extension:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only JPEG, PNG, WebP, GIF and HEIC images are allowed.",
        )

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="No file provided for upload.")
    if len(contents) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds 10MB limit. Your file is {len(contents) / (1024 * 1024):.2f}MB.",
        )

    # generated key, the client filename is kept only as metadata
    key = f"pet_{pet_id}/{uuid.uuid4()}.{extension}"
    try:
        storage.put_object(key, contents, file.content_type)
    except Exception as e:
        logger.error(f"❌ Upload failed for pet {pet_id}: {e}")
        raise HTTPException(status_code=500, detail="Upload failed") from e

    image = PetImage(
        pet_id=pet_id,
        uploaded_by_staff_id=info.staff_id,
        storage_object_path=key,
        caption=(caption or "").strip() or None,
        file_name=(file.filename or "")[:255] or None,
        mime_type=file.content_type,
        size_bytes=len(contents),
    )
    db.add(image)
    try:
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_object(key)
        raise
    db.refresh(image)

    logger.info(f"✅ Image {image.id} uploaded for pet {pet_id} by staff {info.staff_id}")
    return _with_url(image)


@router.delete("/pets/{pet_id}/images/{image_id}")
def delete_pet_image(
    pet_id: int,
    image_id: int,
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    image = (
        db.query(PetImage)
        .filter(PetImage.id == image_id, PetImage.pet_id == pet_id)
        .first()
    )
    if not image:
        raise HTTPException(status_code=404, detail="Image not found")

    try:
        storage.delete_object(image.storage_object_path)
    except Exception as e:
        logger.error(f"❌ Failed to delete stored object {image.storage_object_path}: {e}")

    db.delete(image)
    db.commit()
    logger.info(f"🗑️ Image {image_id} deleted from pet {pet_id}")
    return {"message": "Image deleted successfully"}
