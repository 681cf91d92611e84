"""
Staff API Routes

Staff listing for assignment pickers and default vehicle assignment.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth import AuthInfo, Role, require_admin, require_staff_or_admin
from ..database import get_db
from ..models import Staff
from ..shared.db_errors import raise_for_integrity_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])


class StaffMember(BaseModel):
    id: int
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    default_vehicle_id: Optional[int] = None


class StaffAssignmentUpdate(BaseModel):
    staffId: int
    defaultVehicleId: Optional[int] = None


@router.get("", response_model=list[StaffMember])
def list_staff(
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    """Staff members (admins excluded) with their names"""
    members = (
        db.query(Staff)
        .options(joinedload(Staff.profile))
        .filter(Staff.role == Role.STAFF.value)
        .order_by(Staff.id)
        .all()
    )
    return [
        StaffMember(
            id=m.id,
            user_id=m.user_id,
            first_name=m.profile.first_name if m.profile else None,
            last_name=m.profile.last_name if m.profile else None,
            default_vehicle_id=m.default_vehicle_id,
        )
        for m in members
    ]


@router.patch("/assignment")
def update_staff_assignment(
    data: StaffAssignmentUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Set or clear a staff member's default vehicle"""
    staff = db.query(Staff).filter(Staff.id == data.staffId).first()
    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")

    staff.default_vehicle_id = data.defaultVehicleId
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(e, foreign_key="Invalid vehicle ID specified")

    logger.info(f"✅ Staff {staff.id} default vehicle set to {data.defaultVehicleId}")
    return {"success": True}
