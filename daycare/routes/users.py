"""
Users API Routes (admin)

Lists identity-provider accounts with their role and lets admins move users
between the client, staff and admin roles.
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import identity
from ..auth import AuthInfo, require_admin
from ..database import get_db
from ..models import Client, Profile, Staff
from ..shared.db_errors import is_foreign_key_violation, raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


class UserSummary(BaseModel):
    id: str
    email: Optional[str] = None
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


class RoleChangeRequest(BaseModel):
    userId: str
    targetRole: Literal["client", "staff", "admin"]


class StaffUserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


PROFILE_FIELDS = ("first_name", "last_name", "phone")


@router.get("", response_model=list[UserSummary])
def list_users(
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All accounts with role: staff row role, else client, else unknown"""
    accounts = identity.list_users()

    staff_roles = {s.user_id: s.role for s in db.query(Staff).all()}
    client_ids = {c.user_id for c in db.query(Client.user_id).filter(Client.user_id.isnot(None))}
    profiles = {p.user_id: p for p in db.query(Profile).all()}

    users = []
    for account in accounts:
        if account.id in staff_roles:
            role = staff_roles[account.id]
        elif account.id in client_ids:
            role = "client"
        else:
            role = "unknown"
        profile = profiles.get(account.id)
        users.append(
            UserSummary(
                id=account.id,
                email=account.email,
                role=role,
                first_name=profile.first_name if profile else None,
                last_name=profile.last_name if profile else None,
                created_at=account.created_at,
                last_sign_in_at=account.last_sign_in_at,
            )
        )
    return users


@router.post("")
def change_user_role(
    data: RoleChangeRequest,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Move a user to the client, staff or admin role"""
    if data.userId == info.user.id:
        raise HTTPException(status_code=400, detail="Admins cannot change their own role")

    account = identity.get_user(data.userId)
    if account is None:
        raise HTTPException(status_code=404, detail="User not found")

    staff = db.query(Staff).filter(Staff.user_id == data.userId).first()
    client = db.query(Client).filter(Client.user_id == data.userId).first()

    try:
        if data.targetRole == "client":
            if staff:
                db.delete(staff)
            if client:
                client.email = account.email or client.email
            else:
                db.add(Client(user_id=data.userId, email=account.email))
        else:
            if client:
                db.delete(client)
            if staff:
                staff.role = data.targetRole
            else:
                db.add(Staff(user_id=data.userId, role=data.targetRole))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_foreign_key_violation(e):
            raise HTTPException(
                status_code=409,
                detail="Cannot change role: the user still has linked pets, bookings or clients",
            ) from e
        raise_for_integrity_error(e, unique="A client with this email already exists.")

    logger.info(f"✅ User {data.userId} role changed to {data.targetRole} by {info.user.id}")
    return {"success": True, "message": f"User role updated to {data.targetRole}"}


@router.put("/{user_id}")
def update_staff_user(
    user_id: str,
    data: StaffUserUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Update a staff or admin user's profile details and staff notes together"""
    staff = db.query(Staff).filter(Staff.user_id == user_id).first()
    if not staff:
        raise HTTPException(status_code=400, detail="Can only update staff or admin users")

    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    profile_updates = {k: v for k, v in updates.items() if k in PROFILE_FIELDS}
    if profile_updates and profile is None:
        profile = Profile(user_id=user_id)
        db.add(profile)
    for key, value in profile_updates.items():
        setattr(profile, key, value)

    if "notes" in updates:
        staff.notes = updates["notes"]

    db.commit()
    logger.info(f"✅ Staff user {user_id} updated: {sorted(updates)}")

    return {
        "profile": {
            "user_id": user_id,
            "first_name": profile.first_name if profile else None,
            "last_name": profile.last_name if profile else None,
            "phone": profile.phone if profile else None,
        },
        "staff": {
            "id": staff.id,
            "user_id": staff.user_id,
            "role": staff.role,
            "notes": staff.notes,
        },
    }
