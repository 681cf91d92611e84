"""
Authentication API Routes

Sign-in itself happens against Firebase Authentication in the browser or app.
These endpoints turn the resulting ID token into an HttpOnly session cookie,
sign out, and drive the password reset flow.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from firebase_admin import exceptions as firebase_exceptions
from pydantic import BaseModel, Field as PydanticField
from sqlalchemy.orm import Session

from .. import identity
from ..auth import get_current_user, provision_client
from ..config import (
    SESSION_COOKIE_MAX_AGE_DAYS,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SITE_URL,
)
from ..database import get_db
from ..email_service import send_password_reset_email
from ..identity import IdentityUser
from ..rate_limiter import create_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

PASSWORD_RESET_MESSAGE = "If an account exists for this email, a password reset link has been sent."

# Identity provider errors raised while exchanging or updating credentials
IDENTITY_ERRORS = (firebase_exceptions.FirebaseError, ValueError)

rate_limit_password_reset = create_rate_limiter(
    limit=10,
    window_seconds=3600,
    key_prefix="password_reset",
    use_ip=True,
)


class SessionRequest(BaseModel):
    id_token: str


class PasswordResetRequest(BaseModel):
    email: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    password: str = PydanticField(..., min_length=6)


def set_session_cookie(response, session_cookie: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_cookie,
        max_age=SESSION_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def safe_redirect_path(next_path: Optional[str], default: str) -> str:
    """Only same-site relative paths are followed after sign-in"""
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return default


@router.post("/session")
def create_session(data: SessionRequest, db: Session = Depends(get_db)):
    """
    Exchange a fresh Firebase ID token for a session cookie.

    First sign-in after sign-up also provisions the user's client record.
    """
    try:
        session_cookie = identity.create_session(data.id_token)
    except IDENTITY_ERRORS as e:
        logger.warning(f"🚫 Session creation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid ID token") from e

    user = identity.verify_id_token(data.id_token)
    if user:
        provision_client(db, user)

    response = JSONResponse(content={"success": True})
    set_session_cookie(response, session_cookie)
    return response


@router.get("/callback")
def auth_callback(code: Optional[str] = None, next: Optional[str] = None):
    """
    Landing point for email links (password recovery, verification).

    The code is exchanged for a session before redirecting on to the app.
    """
    target = safe_redirect_path(next, "/reset-password")
    session_cookie = None

    if code:
        try:
            session_cookie = identity.create_session(code)
        except IDENTITY_ERRORS as e:
            logger.error(f"❌ Auth callback code exchange failed: {e}")
            return RedirectResponse(f"{SITE_URL}/login?error=auth_callback_failed", status_code=303)

    response = RedirectResponse(f"{SITE_URL}{target}", status_code=303)
    if session_cookie:
        set_session_cookie(response, session_cookie)
    return response


@router.post("/sign-out")
def sign_out(user: IdentityUser = Depends(get_current_user)):
    try:
        identity.revoke_sessions(user.id)
    except IDENTITY_ERRORS as e:
        logger.warning(f"⚠️ Failed to revoke sessions for {user.id}: {e}")

    response = JSONResponse(content={"success": True})
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return response


@router.post("/request-password-reset")
async def request_password_reset(
    data: PasswordResetRequest,
    _: None = Depends(rate_limit_password_reset),
):
    """Email a password reset link. The response never reveals whether the account exists."""
    email = (data.email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required.")

    redirect_url = f"{SITE_URL}/api/auth/callback"
    try:
        reset_link = identity.generate_password_reset_link(email, redirect_url)
    except IDENTITY_ERRORS as e:
        logger.error(f"❌ Password reset link generation failed: {e}")
        return {"message": PASSWORD_RESET_MESSAGE}

    if not reset_link:
        logger.info("Password reset requested for an unknown email")
        return {"message": PASSWORD_RESET_MESSAGE}

    try:
        await send_password_reset_email(email, reset_link)
        logger.info(f"📧 Password reset email sent to {email}")
    except Exception as e:
        logger.error(f"❌ Error sending password reset email to {email}: {e}")

    return {"message": PASSWORD_RESET_MESSAGE}


@router.post("/update-password")
def update_password(
    data: UpdatePasswordRequest,
    user: IdentityUser = Depends(get_current_user),
):
    try:
        identity.update_password(user.id, data.password)
    except IDENTITY_ERRORS as e:
        logger.error(f"❌ Password update failed for {user.id}: {e}")
        raise HTTPException(status_code=400, detail="Failed to update password") from e

    logger.info(f"✅ Password updated for user {user.id}")
    return {"success": True, "message": "Password updated successfully"}
