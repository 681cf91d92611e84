import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import identity
from .config import SESSION_COOKIE_NAME
from .database import get_db, get_user_db
from .identity import IdentityUser
from .models import Client, Profile, Staff
from .security_middleware import set_rls_context

logger = logging.getLogger(__name__)

# Web clients send the session cookie, mobile clients a bearer ID token
security = HTTPBearer(auto_error=False)


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CLIENT = "client"


@dataclass
class AuthInfo:
    user: IdentityUser
    role: Optional[Role] = None
    staff_id: Optional[int] = None
    client_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        """Any staff member, admins included"""
        return self.role in (Role.ADMIN, Role.STAFF)


def _authenticate(request: Request, credentials: Optional[HTTPAuthorizationCredentials]):
    session_cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if session_cookie:
        user = identity.verify_session_cookie(session_cookie)
        if user:
            return user
    if credentials and credentials.credentials:
        return identity.verify_id_token(credentials.credentials)
    return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> IdentityUser:
    """Resolve the signed-in user from the session cookie or bearer token."""
    user = _authenticate(request, credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[IdentityUser]:
    return _authenticate(request, credentials)


def resolve_auth_info(db: Session, user: IdentityUser) -> AuthInfo:
    """
    Look up the caller's role and client id.

    A staff row decides the role (admin or staff); otherwise a client row makes
    the caller a client. Users with neither have no role.
    """
    info = AuthInfo(user=user)

    staff = db.query(Staff).filter(Staff.user_id == user.id).first()
    if staff:
        info.staff_id = staff.id
        info.role = Role.ADMIN if staff.role == Role.ADMIN.value else Role.STAFF

    client = db.query(Client).filter(Client.user_id == user.id).first()
    if client:
        info.client_id = client.id
        if info.role is None:
            info.role = Role.CLIENT

    return info


def get_auth_info(
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AuthInfo:
    return resolve_auth_info(db, user)


def require_admin(info: AuthInfo = Depends(get_auth_info)) -> AuthInfo:
    if not info.is_admin:
        logger.warning(f"🚫 Admin access denied for user {info.user.id}")
        raise HTTPException(status_code=403, detail="Forbidden: Requires admin role")
    return info


def require_staff_or_admin(info: AuthInfo = Depends(get_auth_info)) -> AuthInfo:
    if not info.is_staff:
        logger.warning(f"🚫 Staff access denied for user {info.user.id}")
        raise HTTPException(status_code=403, detail="Forbidden: Requires admin or staff role")
    return info


def require_client(info: AuthInfo = Depends(get_auth_info)) -> AuthInfo:
    if info.client_id is None:
        raise HTTPException(status_code=404, detail="Client profile not found for this user")
    return info


def get_session_db(
    user: IdentityUser = Depends(get_current_user),
    db: Session = Depends(get_user_db),
) -> Session:
    """Database session scoped to the caller, subject to row-level security."""
    set_rls_context(db, user.id)
    return db


def provision_client(db: Session, user: IdentityUser) -> Optional[Client]:
    """
    Give a self-signed-up user a client row and an empty profile.

    Staff and existing clients are left alone. A client row an admin created
    ahead of time for the same email is claimed instead of duplicated.
    """
    if db.query(Staff).filter(Staff.user_id == user.id).first():
        return None

    client = db.query(Client).filter(Client.user_id == user.id).first()
    if client:
        return client

    email = user.email.strip().lower() if user.email else None
    if email:
        client = (
            db.query(Client).filter(Client.email == email, Client.user_id.is_(None)).first()
        )
    if client:
        logger.info(f"🔄 Linking existing client {client.id} to user {user.id}")
        client.user_id = user.id
    else:
        logger.info(f"🆕 Creating client for new user {user.id}")
        client = Client(user_id=user.id, email=email)
        db.add(client)

    if db.get(Profile, user.id) is None:
        db.add(Profile(user_id=user.id))

    try:
        db.commit()
    except IntegrityError:
        # a concurrent sign-in created the rows first
        db.rollback()
        return db.query(Client).filter(Client.user_id == user.id).first()
    db.refresh(client)
    return client
