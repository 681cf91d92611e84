"""
Identity provider (Firebase Authentication) access.

Wraps the firebase-admin SDK calls used by the API: verifying session cookies
and ID tokens, minting session cookies, password management and listing users.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from .config import FIREBASE_CREDENTIALS_PATH, FIREBASE_PROJECT_ID, SESSION_COOKIE_MAX_AGE_DAYS

logger = logging.getLogger(__name__)

# Errors that mean "this credential is not valid", as opposed to provider outages
INVALID_CREDENTIAL_ERRORS = (
    firebase_auth.InvalidIdTokenError,
    firebase_auth.InvalidSessionCookieError,
    firebase_auth.UserDisabledError,
    ValueError,
)


@dataclass
class IdentityUser:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


def get_firebase_app():
    """Initialize Firebase Admin SDK (only once)"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
        logger.info("Firebase Admin initialized with service account file")
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Firebase Admin initialized with default credentials")
    return firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})


def _from_millis(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _to_identity_user(record) -> IdentityUser:
    metadata = record.user_metadata
    return IdentityUser(
        id=record.uid,
        email=record.email,
        display_name=record.display_name,
        created_at=_from_millis(metadata.creation_timestamp if metadata else None),
        last_sign_in_at=_from_millis(metadata.last_sign_in_timestamp if metadata else None),
    )


def verify_session_cookie(session_cookie: str) -> Optional[IdentityUser]:
    """Return the signed-in user for a session cookie, or None if it is not valid."""
    try:
        claims = firebase_auth.verify_session_cookie(
            session_cookie, check_revoked=True, app=get_firebase_app()
        )
    except INVALID_CREDENTIAL_ERRORS as e:
        logger.warning(f"🚫 Session cookie rejected: {e}")
        return None
    return IdentityUser(id=claims["uid"], email=claims.get("email"))


def verify_id_token(id_token: str) -> Optional[IdentityUser]:
    """Return the signed-in user for a bearer ID token, or None if it is not valid."""
    try:
        claims = firebase_auth.verify_id_token(id_token, check_revoked=True, app=get_firebase_app())
    except INVALID_CREDENTIAL_ERRORS as e:
        logger.warning(f"🚫 ID token rejected: {e}")
        return None
    return IdentityUser(id=claims["uid"], email=claims.get("email"))


def create_session(id_token: str) -> str:
    """Exchange a freshly issued ID token for a long-lived session cookie."""
    return firebase_auth.create_session_cookie(
        id_token,
        expires_in=timedelta(days=SESSION_COOKIE_MAX_AGE_DAYS),
        app=get_firebase_app(),
    )


def revoke_sessions(user_id: str) -> None:
    firebase_auth.revoke_refresh_tokens(user_id, app=get_firebase_app())


def update_password(user_id: str, password: str) -> None:
    firebase_auth.update_user(user_id, password=password, app=get_firebase_app())


def generate_password_reset_link(email: str, redirect_url: str) -> Optional[str]:
    """Return a password reset link, or None when no account exists for the email."""
    settings = firebase_auth.ActionCodeSettings(url=redirect_url)
    try:
        return firebase_auth.generate_password_reset_link(
            email, action_code_settings=settings, app=get_firebase_app()
        )
    except firebase_auth.UserNotFoundError:
        return None


def get_user(user_id: str) -> Optional[IdentityUser]:
    try:
        return _to_identity_user(firebase_auth.get_user(user_id, app=get_firebase_app()))
    except firebase_auth.UserNotFoundError:
        return None


def list_users() -> list[IdentityUser]:
    page = firebase_auth.list_users(app=get_firebase_app())
    return [_to_identity_user(record) for record in page.iterate_all()]
