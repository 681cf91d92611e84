"""
Clients API Routes

Admins manage every client; staff see the clients assigned to them and can
search by name or email; a client may read their own record.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import AuthInfo, get_auth_info, require_admin, require_staff_or_admin
from ..database import get_db
from ..models import Client, Pet, Profile, Staff
from ..shared.db_errors import raise_for_integrity_error
from ..shared.validators import strip_required, validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "address_line_1",
    "address_line_2",
    "town_or_city",
    "county",
    "postcode",
    "country",
    "latitude",
    "longitude",
)


class PetSummary(BaseModel):
    id: int
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None
    is_confirmed: bool

    class Config:
        from_attributes = True


class ClientCreate(BaseModel):
    email: str
    user_id: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def validate_email_field(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Missing or invalid required field: email")
        return validate_email(v)


class ClientUpdate(BaseModel):
    email: Optional[str] = None
    default_staff_id: Optional[int] = None
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

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class ClientPetCreate(BaseModel):
    name: str
    breed: Optional[str] = None
    size: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return strip_required(v, "name")

    @field_validator("breed", "size")
    @classmethod
    def strip_optional(cls, v):
        return v.strip() if v else v


def serialize_client(client: Client, include_staff_name: bool = False) -> dict:
    """Client row flattened with its profile fields and pets"""
    profile = client.profile
    data = {
        "id": client.id,
        "user_id": client.user_id,
        "email": client.email,
        "default_staff_id": client.default_staff_id,
    }
    for key in PROFILE_FIELDS:
        data[key] = getattr(profile, key) if profile else None
    data["pets"] = [PetSummary.model_validate(p).model_dump() for p in client.pets]

    if include_staff_name:
        staff = client.default_staff
        data["default_staff_name"] = (
            staff.profile.full_name if staff is not None and staff.profile else None
        )
    return data


def get_client_or_404(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.get("")
def list_clients(
    assigned_staff_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(0, ge=0),
    offset: int = Query(0, ge=0),
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    """
    Admins: every client that is not also staff, with search and paging.
    Staff passing assigned_staff_id=me: the clients assigned to them.
    """
    if assigned_staff_id == "me" and info.is_staff:
        clients = (
            db.query(Client)
            .filter(Client.default_staff_id == info.staff_id)
            .order_by(Client.id)
            .all()
        )
        return {"clients": [serialize_client(c) for c in clients], "total": len(clients)}

    if not info.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden: Access denied")

    staff_user_ids = select(Staff.user_id)
    query = db.query(Client).filter(
        or_(Client.user_id.is_(None), Client.user_id.notin_(staff_user_ids))
    )
    search = (search or "").strip()
    if search:
        query = query.filter(Client.email.ilike(f"%{search}%"))

    total = query.count()
    query = query.order_by(Client.id)
    if limit > 0:
        query = query.offset(offset).limit(limit)

    return {
        "clients": [serialize_client(c, include_staff_name=True) for c in query.all()],
        "total": total,
    }


@router.post("", status_code=201)
def create_client(
    data: ClientCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    client = Client(email=data.email, user_id=data.user_id)
    db.add(client)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(
            e, unique="A client with this email already exists.", unique_status=400
        )
    db.refresh(client)
    logger.info(f"✅ Client {client.id} created: {client.email}")
    return serialize_client(client)


@router.get("/search")
def search_clients(
    term: Optional[str] = None,
    info: AuthInfo = Depends(require_staff_or_admin),
    db: Session = Depends(get_db),
):
    """Up to 10 clients whose email or name contains the term"""
    term = (term or "").strip()
    if len(term) < 2:
        raise HTTPException(
            status_code=400, detail="Search term must be at least 2 characters long"
        )

    pattern = f"%{term.lower()}%"
    clients = (
        db.query(Client)
        .outerjoin(Profile, Profile.user_id == Client.user_id)
        .filter(
            or_(
                Client.email.ilike(pattern),
                Profile.first_name.ilike(pattern),
                Profile.last_name.ilike(pattern),
            )
        )
        .order_by(Client.id)
        .limit(10)
        .all()
    )
    return [
        {
            "id": c.id,
            "name": (c.profile.full_name if c.profile else None) or "No Name Set",
            "email": c.email,
        }
        for c in clients
    ]


@router.get("/{client_id}")
def get_client(
    client_id: int,
    info: AuthInfo = Depends(get_auth_info),
    db: Session = Depends(get_db),
):
    if not info.is_admin:
        if info.client_id is None:
            raise HTTPException(status_code=404, detail="Client profile not found for this user")
        if info.client_id != client_id:
            raise HTTPException(
                status_code=403, detail="Forbidden: Cannot access other client profiles"
            )
    return serialize_client(get_client_or_404(db, client_id))


@router.put("/{client_id}")
def update_client(
    client_id: int,
    data: ClientUpdate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Update the client row and the linked profile in one transaction"""
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No update fields provided")

    client = get_client_or_404(db, client_id)
    profile_updates = {k: v for k, v in updates.items() if k in PROFILE_FIELDS}
    client_updates = {k: v for k, v in updates.items() if k not in PROFILE_FIELDS}

    if profile_updates:
        if not client.user_id:
            raise HTTPException(status_code=404, detail="Client not found or user link missing")
        profile = db.query(Profile).filter(Profile.user_id == client.user_id).first()
        if profile is None:
            profile = Profile(user_id=client.user_id)
            db.add(profile)
        for key, value in profile_updates.items():
            setattr(profile, key, value)

    for key, value in client_updates.items():
        setattr(client, key, value)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise_for_integrity_error(
            e,
            foreign_key="Invalid default_staff_id: staff member does not exist.",
            unique="A client with this email already exists.",
            unique_status=400,
        )

    db.expire_all()
    logger.info(f"✅ Client {client_id} updated: {sorted(updates)}")
    return serialize_client(get_client_or_404(db, client_id), include_staff_name=True)


@router.post("/{client_id}/pets", status_code=201)
def add_client_pet(
    client_id: int,
    data: ClientPetCreate,
    info: AuthInfo = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Add a pet on behalf of a client. New pets start unconfirmed."""
    get_client_or_404(db, client_id)
    pet = Pet(client_id=client_id, is_confirmed=False, **data.model_dump())
    db.add(pet)
    db.commit()
    db.refresh(pet)
    logger.info(f"✅ Pet {pet.id} added to client {client_id}")
    return PetSummary.model_validate(pet).model_dump() | {"client_id": client_id}
