"""
Profile API Routes

The signed-in user's own personal details. Runs on the session client so
row-level security limits every query to the caller's row.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field as PydanticField
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_session_db
from ..identity import IdentityUser
from ..models import Profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile. Anything else is ignored."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    town_or_city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = PydanticField(None, ge=-90, le=90)
    longitude: Optional[float] = PydanticField(None, ge=-180, le=180)
    email_allow_promotional: Optional[bool] = None
    email_allow_informational: Optional[bool] = None


class ProfileResponse(BaseModel):
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    town_or_city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    email_allow_promotional: bool = False
    email_allow_informational: bool = True
    welcome_email_sent: bool = False

    class Config:
        from_attributes = True


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_session_db),
):
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdate,
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_session_db),
):
    """Save allowed profile fields, creating the profile on first save"""
    updates = data.model_dump(exclude_unset=True)
    # Booleans are NOT NULL columns
    for key in ("email_allow_promotional", "email_allow_informational"):
        if key in updates and updates[key] is None:
            del updates[key]
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if profile is None:
        profile = Profile(user_id=user.id)
        db.add(profile)
        logger.info(f"✅ Profile created for user {user.id}")

    for key, value in updates.items():
        setattr(profile, key, value)

    db.commit()
    db.refresh(profile)
    return profile


@router.post("/mark-welcome-sent")
def mark_welcome_sent(
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_session_db),
):
    """Record that the welcome email went out so it is only sent once"""
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if profile is None:
        profile = Profile(user_id=user.id)
        db.add(profile)
    profile.welcome_email_sent = True
    db.commit()
    return {"success": True}
