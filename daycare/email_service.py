"""
Email Service using Resend
Compiles MJML templates to HTML and sends transactional emails
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, BUSINESS_NAME, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_cancellation_admin_template,
    booking_cancellation_client_template,
    booking_confirmation_admin_template,
    booking_confirmation_client_template,
    booking_summary_admin_template,
    booking_summary_client_template,
    password_reset_template,
    welcome_email_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_html_email(
    to: Union[str, list[str]],
    subject: str,
    html_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[Union[str, list[str]]] = None,
) -> dict:
    """
    Send an already rendered HTML email through Resend

    Returns:
        Resend response dict (contains the message id)
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if reply_to:
        email_data["reply_to"] = reply_to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[Union[str, list[str]]] = None,
) -> dict:
    """
    Send an email built from an MJML template

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        reply_to: Optional reply-to address(es)
    """
    html_content = compile_mjml_to_html(mjml_content)
    return await send_html_email(to, subject, html_content, from_address, reply_to)


# ============================================
# Pre-built emails
# ============================================


async def send_welcome_email(to: str, first_name: Optional[str]) -> dict:
    return await send_email(
        to=to,
        subject=f"Welcome to {BUSINESS_NAME}!",
        mjml_content=welcome_email_template(first_name),
    )


async def send_password_reset_email(to: str, reset_link: str) -> dict:
    return await send_email(
        to=to,
        subject="Reset your password",
        mjml_content=password_reset_template(reset_link),
    )


async def notify_booking_confirmed(
    client_email: Optional[str],
    client_name: Optional[str],
    booking: dict,
) -> None:
    """
    Confirmation to the client and a notification to the business inbox.

    booking: {"service_name", "date", "time", "pets"}
    Runs as a background task: failures are logged, never raised.
    """
    details = (booking["service_name"], booking["date"], booking["time"], booking["pets"])

    if client_email:
        try:
            await send_email(
                to=client_email,
                subject="Your booking is confirmed",
                mjml_content=booking_confirmation_client_template(client_name, *details),
                reply_to=ADMIN_NOTIFICATION_EMAIL,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send booking confirmation to {client_email}: {e}")

    if ADMIN_NOTIFICATION_EMAIL:
        try:
            await send_email(
                to=ADMIN_NOTIFICATION_EMAIL,
                subject=f"New booking: {client_name or client_email}",
                mjml_content=booking_confirmation_admin_template(
                    client_name or "Unknown client", client_email or "no email", *details
                ),
            )
        except Exception as e:
            logger.error(f"❌ Failed to send admin booking notification: {e}")
    else:
        logger.warning("⚠️ ADMIN_NOTIFICATION_EMAIL not set - skipping admin notification")


async def notify_booking_summary(
    client_email: Optional[str],
    client_name: Optional[str],
    bookings: list[dict],
    errors: list[dict],
) -> None:
    """Summary emails for a multi-booking request (background task)."""
    if client_email:
        try:
            await send_email(
                to=client_email,
                subject="Your booking summary",
                mjml_content=booking_summary_client_template(client_name, bookings, errors),
                reply_to=ADMIN_NOTIFICATION_EMAIL,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send booking summary to {client_email}: {e}")

    if ADMIN_NOTIFICATION_EMAIL:
        try:
            await send_email(
                to=ADMIN_NOTIFICATION_EMAIL,
                subject=f"Booking summary: {client_name or client_email}",
                mjml_content=booking_summary_admin_template(
                    client_name or "Unknown client", client_email or "no email", bookings, errors
                ),
            )
        except Exception as e:
            logger.error(f"❌ Failed to send admin booking summary: {e}")


async def notify_booking_cancelled(
    recipients: list[dict],
    service_name: str,
    date_text: str,
    time_text: str,
    cancelled_by: str,
    reason: Optional[str] = None,
) -> None:
    """
    Cancellation notice to each linked client and to the business inbox.

    recipients: [{"email", "name"}] for the clients on the booking
    """
    for recipient in recipients:
        if not recipient.get("email"):
            continue
        try:
            await send_email(
                to=recipient["email"],
                subject="Your booking has been cancelled",
                mjml_content=booking_cancellation_client_template(
                    recipient.get("name"), service_name, date_text, time_text, reason
                ),
                reply_to=ADMIN_NOTIFICATION_EMAIL,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send cancellation to {recipient['email']}: {e}")

    if ADMIN_NOTIFICATION_EMAIL:
        first = recipients[0] if recipients else {}
        try:
            await send_email(
                to=ADMIN_NOTIFICATION_EMAIL,
                subject="Booking cancelled",
                mjml_content=booking_cancellation_admin_template(
                    first.get("name"),
                    first.get("email"),
                    service_name,
                    date_text,
                    time_text,
                    cancelled_by,
                    reason,
                ),
            )
        except Exception as e:
            logger.error(f"❌ Failed to send admin cancellation notice: {e}")
