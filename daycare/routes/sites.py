"""
Sites API Routes

Daycare locations. Staff can view them, only admins manage them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, require_admin, require_staff_or_admin
from ..database import get_db
from ..models import Site
from ..shared.db_errors import raise_for_integrity_error
from ..shared.validators import strip_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sites", tags=["Sites"])


class SiteCreate(BaseModel):
    name: str
    address: Optional[str] = None
    is_active: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")


class SiteUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")


class SiteResponse(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


def get_site_or_404(db: Session, site_id: int) -> Site:
    site = db.query(Site).filter(Site.id == site_id).first()
    if not site:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


@router.get("", response_model=list[SiteResponse])
def list_sites(
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    return db.query(Site).order_by(Site.name).all()


@router.post("", response_model=SiteResponse, status_code=201)
def create_site(
    data: SiteCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    site = Site(**data.model_dump())
    db.add(site)
    db.commit()
    db.refresh(site)
    logger.info(f"✅ Site {site.id} created: {site.name}")
    return site


@router.put("/{site_id}", response_model=SiteResponse)
def update_site(
    site_id: int,
    data: SiteUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")
    if updates.get("is_active", True) is None:
        raise HTTPException(status_code=400, detail="is_active cannot be null")

    site = get_site_or_404(db, site_id)
    for key, value in updates.items():
        setattr(site, key, value)
    db.commit()
    db.refresh(site)
    return site


@router.delete("/{site_id}")
def delete_site(
    site_id: int,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    site = get_site_or_404(db, site_id)
    if site.fields:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete site: It has {len(site.fields)} field(s). Remove them first.",
        )
    try:
        db.delete(site)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(e)
    logger.info(f"🗑️ Site {site_id} deleted")
    return {"success": True}
