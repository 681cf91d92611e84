"""
Email Routes - Manual sends and the post-signup welcome email
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, Field as PydanticField, field_validator

from ..auth import AuthInfo, get_current_user, require_admin
from ..email_service import EmailNotConfiguredError, send_html_email, send_welcome_email
from ..identity import IdentityUser
from ..rate_limiter import create_rate_limiter
from ..shared.validators import strip_required, validate_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Email"])

rate_limit_send_email = create_rate_limiter(
    limit=30, window_seconds=3600, key_prefix="send_email", use_ip=True
)
rate_limit_welcome_email = create_rate_limiter(
    limit=5, window_seconds=3600, key_prefix="welcome_email", use_ip=True
)


class SendEmailRequest(BaseModel):
    to: Union[str, list[str]]
    subject: str
    html: str
    from_address: Optional[str] = PydanticField(
        None, validation_alias=AliasChoices("from", "from_address")
    )
    reply_to: Optional[str] = None

    @field_validator("subject", "html", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return strip_required(v, info.field_name)

    @field_validator("to")
    @classmethod
    def validate_recipients(cls, v):
        recipients = [v] if isinstance(v, str) else v
        if not recipients:
            raise ValueError("Missing required field: to")
        return [validate_email(r) for r in recipients]


class WelcomeEmailRequest(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = PydanticField(
        None, validation_alias=AliasChoices("first_name", "firstName")
    )


@router.post("/send-email")
async def send_custom_email(
    data: SendEmailRequest,
    info: AuthInfo = Depends(require_admin),
    _: None = Depends(rate_limit_send_email),
):
    """Send an already rendered HTML email (admins only)"""
    try:
        result = await send_html_email(
            to=data.to,
            subject=data.subject,
            html_content=data.html,
            from_address=data.from_address,
            reply_to=data.reply_to,
        )
    except EmailNotConfiguredError as e:
        raise HTTPException(status_code=503, detail="Email service not configured") from e
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to send email") from e

    message_id = result.get("id") if isinstance(result, dict) else None
    return {"message": "Email sent successfully", "id": message_id}


@router.post("/send-welcome-email")
async def send_welcome(
    data: WelcomeEmailRequest,
    user: IdentityUser = Depends(get_current_user),
    _: None = Depends(rate_limit_welcome_email),
):
    """Welcome email after sign-up, only to the caller's own address"""
    email = (data.email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required.")
    if not user.email or email.lower() != user.email.lower():
        raise HTTPException(
            status_code=403, detail="Welcome emails can only be sent to your own address"
        )

    try:
        await send_welcome_email(email, data.first_name)
    except EmailNotConfiguredError as e:
        raise HTTPException(status_code=503, detail="Email service not configured") from e
    except Exception as e:
        logger.error(f"❌ Error sending welcome email to {email}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send welcome email") from e

    logger.info(f"📧 Welcome email sent to {email}")
    return {"message": "Welcome email sent successfully."}
