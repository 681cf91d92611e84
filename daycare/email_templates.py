"""
MJML Email Templates
Transactional emails for accounts and bookings, compiled to HTML by email_service
"""

from datetime import datetime
from html import escape
from typing import Optional

from .config import BUSINESS_NAME, SITE_URL
from .shared.timeutils import to_business_time

# Brand colours - warm green/sand
THEME = {
    "primary": "#3f7d58",
    "primary_dark": "#2f5e42",
    "background": "#faf7f2",
    "card_bg": "#ffffff",
    "text_primary": "#1f2933",
    "text_secondary": "#3e4c59",
    "text_muted": "#7b8794",
    "border": "#e4e7eb",
    "danger": "#c0392b",
}


def format_booking_date(value: datetime) -> str:
    """e.g. Tuesday, 30 July 2024 (business timezone)"""
    local = to_business_time(value)
    return f"{local:%A}, {local.day} {local:%B %Y}"


def format_booking_time(value: datetime) -> str:
    """12-hour clock, e.g. 9:30 am"""
    local = to_business_time(value)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_time_range(start: datetime, end: datetime) -> str:
    return f"{format_booking_time(start)} - {format_booking_time(end)}"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    is_admin_email: bool = False,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    footer_text = f"{BUSINESS_NAME} Admin" if is_admin_email else f"The {BUSINESS_NAME} Team"

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['card_bg']}" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text align="center" font-size="20px" font-weight="700" color="{THEME['primary_dark']}">
              {BUSINESS_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0 32px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 40px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              {footer_text}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _booking_details(service_name: str, date_text: str, time_text: str, pets_text: str) -> str:
    return f"""
    <mj-text padding="0 0 0 20px">
      <strong>Service:</strong> {escape(service_name)}<br/>
      <strong>Date:</strong> {date_text}<br/>
      <strong>Time:</strong> {time_text}<br/>
      <strong>Pets:</strong> {escape(pets_text)}
    </mj-text>
    """


def welcome_email_template(first_name: Optional[str]) -> str:
    """Welcome email MJML template"""
    greeting = escape(first_name) if first_name else "there"
    content = f"""
    <mj-text>
      Hi {greeting},
    </mj-text>

    <mj-text>
      Thanks for joining {BUSINESS_NAME}! We can't wait to meet your dogs.
    </mj-text>

    <mj-text>
      Add your pets to your profile and, once we have confirmed them, you can book
      daycare sessions and field hire straight from your account.
    </mj-text>
    """

    return get_base_template(
        title=f"Welcome to {BUSINESS_NAME}!",
        preview_text="Your account is ready",
        content_sections=content,
        cta_url=f"{SITE_URL}/dashboard",
        cta_label="Go to my account",
    )


def password_reset_template(reset_link: str, user_name: Optional[str] = None) -> str:
    """Password reset MJML template"""
    greeting = escape(user_name) if user_name else "there"
    content = f"""
    <mj-text>
      Hi {greeting},
    </mj-text>

    <mj-text>
      We received a request to reset the password for your account. Use the button
      below to choose a new one.
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you didn't request this, you can safely ignore this email. Your password
      will not change.
    </mj-text>
    """

    return get_base_template(
        title="Reset your password",
        preview_text=f"Reset your {BUSINESS_NAME} password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset password",
    )


def booking_confirmation_client_template(
    client_name: Optional[str],
    service_name: str,
    date_text: str,
    time_text: str,
    pets_text: str,
) -> str:
    greeting = escape(client_name) if client_name else "there"
    content = f"""
    <mj-text>
      Hi {greeting},
    </mj-text>

    <mj-text>
      Your booking is confirmed. Here are the details:
    </mj-text>

    {_booking_details(service_name, date_text, time_text, pets_text)}

    <mj-text>
      If anything changes, just reply to this email.
    </mj-text>
    """

    return get_base_template(
        title="Booking confirmed",
        preview_text=f"Your {service_name} booking on {date_text} is confirmed",
        content_sections=content,
        cta_url=f"{SITE_URL}/my-bookings",
        cta_label="View my bookings",
    )


def booking_confirmation_admin_template(
    client_name: str,
    client_email: str,
    service_name: str,
    date_text: str,
    time_text: str,
    pets_text: str,
) -> str:
    content = f"""
    <mj-text>
      <strong>{escape(client_name)}</strong> ({escape(client_email)}) has made a new booking.
    </mj-text>

    {_booking_details(service_name, date_text, time_text, pets_text)}
    """

    return get_base_template(
        title="New booking",
        preview_text=f"New booking from {client_name}",
        content_sections=content,
        is_admin_email=True,
    )


def _summary_sections(bookings: list[dict], errors: list[dict], show_inputs: bool) -> str:
    sections = ""
    if bookings:
        items = "".join(
            f"""
            <mj-text padding="0 0 12px 20px">
              <strong>#{index}: {escape(b['service_name'])}</strong><br/>
              Date: {b['date']}<br/>
              Time: {b['time']}<br/>
              Pets: {escape(b['pets'])}
            </mj-text>
            """
            for index, b in enumerate(bookings, 1)
        )
        sections += f"""
        <mj-text font-size="18px" font-weight="600" color="{THEME['text_primary']}">
          Successful bookings ({len(bookings)})
        </mj-text>
        {items}
        """

    if errors:
        items = ""
        for index, e in enumerate(errors, 1):
            label = f"Attempt #{index}"
            if show_inputs:
                label += f": service {e.get('service_id', 'N/A')}, time {e.get('start_time', 'N/A')}"
            items += f"""
            <mj-text padding="0 0 12px 20px">
              <strong>{escape(label)}</strong><br/>
              <span style="color: {THEME['danger']};">{escape(e['error'])}</span>
            </mj-text>
            """
        sections += f"""
        <mj-text font-size="18px" font-weight="600" color="{THEME['danger']}">
          Failed attempts ({len(errors)})
        </mj-text>
        {items}
        """
    return sections


def booking_summary_client_template(
    client_name: Optional[str], bookings: list[dict], errors: list[dict]
) -> str:
    """
    Summary of a multi-booking request.

    bookings: [{"service_name", "date", "time", "pets"}]
    errors: [{"service_id", "start_time", "error"}]
    """
    greeting = escape(client_name) if client_name else "there"
    content = f"""
    <mj-text>
      Hi {greeting},
    </mj-text>

    <mj-text>
      Here is a summary of your booking request.
    </mj-text>

    {_summary_sections(bookings, errors, show_inputs=False)}
    """
    if errors:
        content += """
        <mj-text>
          Some bookings could not be made. Please try another time or contact us.
        </mj-text>
        """

    return get_base_template(
        title="Your booking summary",
        preview_text=f"{len(bookings)} of {len(bookings) + len(errors)} bookings confirmed",
        content_sections=content,
        cta_url=f"{SITE_URL}/my-bookings",
        cta_label="View my bookings",
    )


def booking_summary_admin_template(
    client_name: str, client_email: str, bookings: list[dict], errors: list[dict]
) -> str:
    total = len(bookings) + len(errors)
    content = f"""
    <mj-text>
      Client <strong>{escape(client_name)}</strong> ({escape(client_email)}) attempted
      to make {total} booking(s).<br/>
      <strong>Successful: {len(bookings)}</strong> | <strong>Failed: {len(errors)}</strong>
    </mj-text>

    {_summary_sections(bookings, errors, show_inputs=True)}
    """

    return get_base_template(
        title="Booking attempt summary",
        preview_text=f"Booking summary for {client_name} ({len(bookings)}/{total} successful)",
        content_sections=content,
        is_admin_email=True,
    )


def booking_cancellation_client_template(
    client_name: Optional[str],
    service_name: str,
    date_text: str,
    time_text: str,
    reason: Optional[str] = None,
) -> str:
    greeting = escape(client_name) if client_name else "there"
    reason_section = ""
    if reason:
        reason_section = f"""
        <mj-text>
          <strong>Reason:</strong> {escape(reason)}
        </mj-text>
        """
    content = f"""
    <mj-text>
      Hi {greeting},
    </mj-text>

    <mj-text>
      Your {escape(service_name)} booking on {date_text} at {time_text} has been cancelled.
    </mj-text>

    {reason_section}

    <mj-text>
      You can book another session at any time from your account.
    </mj-text>
    """

    return get_base_template(
        title="Booking cancelled",
        preview_text=f"Your booking on {date_text} has been cancelled",
        content_sections=content,
        cta_url=f"{SITE_URL}/book",
        cta_label="Book again",
    )


def booking_cancellation_admin_template(
    client_name: Optional[str],
    client_email: Optional[str],
    service_name: str,
    date_text: str,
    time_text: str,
    cancelled_by: str,
    reason: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>
      A booking has been cancelled by <strong>{escape(cancelled_by)}</strong>.
    </mj-text>

    <mj-text padding="0 0 0 20px">
      <strong>Client:</strong> {escape(client_name or 'Unknown')} ({escape(client_email or 'no email')})<br/>
      <strong>Service:</strong> {escape(service_name)}<br/>
      <strong>Date:</strong> {date_text}<br/>
      <strong>Time:</strong> {time_text}<br/>
      <strong>Reason:</strong> {escape(reason or 'Not given')}
    </mj-text>
    """

    return get_base_template(
        title="Booking cancelled",
        preview_text=f"Booking cancelled by {cancelled_by}",
        content_sections=content,
        is_admin_email=True,
    )
