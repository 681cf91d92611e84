import asyncio
from datetime import datetime, timezone

import pytest

from daycare import email_service, identity
from daycare.email_templates import (
    booking_cancellation_client_template,
    booking_summary_client_template,
    format_booking_date,
    format_booking_time,
    welcome_email_template,
)
from daycare.identity import IdentityUser


@pytest.fixture
def outbox(monkeypatch):
    """Capture MJML emails handed to send_email"""
    sent = []

    async def fake_send_email(to, subject, mjml_content, from_address=None, reply_to=None):
        sent.append({"to": to, "subject": subject, "body": mjml_content, "reply_to": reply_to})
        return {"id": "msg_123"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


def test_booking_dates_in_business_time():
    summer = datetime(2024, 7, 30, 8, 30, tzinfo=timezone.utc)
    assert format_booking_date(summer) == "Tuesday, 30 July 2024"
    assert format_booking_time(summer) == "9:30 am"

    winter_noon = datetime(2024, 1, 9, 12, 0)
    assert format_booking_time(winter_noon) == "12:00 pm"


def test_templates_escape_user_content():
    body = welcome_email_template("<b>Casey</b>")
    assert "&lt;b&gt;Casey&lt;/b&gt;" in body
    assert "<b>Casey</b>" not in body

    cancelled = booking_cancellation_client_template(
        "Casey", "Daycare", "Tuesday, 30 July 2024", "9:00 am - 12:00 pm", "Flood & storm"
    )
    assert "Flood &amp; storm" in cancelled


def test_summary_template_lists_failures():
    body = booking_summary_client_template(
        "Casey",
        [{"service_name": "Daycare", "date": "Tuesday, 30 July 2024", "time": "9:00 am - 12:00 pm", "pets": "Rex"}],
        [{"service_id": 1, "start_time": "2024-07-30T09:00:00", "error": "Not enough capacity"}],
    )
    assert "Rex" in body
    assert "Not enough capacity" in body


def test_send_html_email_requires_api_key(monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "")
    with pytest.raises(email_service.EmailNotConfiguredError):
        asyncio.run(email_service.send_html_email("a@example.com", "Hi", "<p>Hi</p>"))


def test_send_html_email_uses_resend(monkeypatch):
    calls = []
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda data: calls.append(data) or {"id": "msg_1"})

    result = asyncio.run(
        email_service.send_html_email("a@example.com", "Hi", "<p>Hi</p>", reply_to="office@example.com")
    )
    assert result == {"id": "msg_1"}
    assert calls[0]["to"] == ["a@example.com"]
    assert calls[0]["reply_to"] == "office@example.com"


def test_booking_confirmation_notifies_client_and_admin(monkeypatch, outbox):
    monkeypatch.setattr(email_service, "ADMIN_NOTIFICATION_EMAIL", "office@example.com")
    booking = {"service_name": "Daycare", "date": "Tuesday, 30 July 2024", "time": "9:00 am - 12:00 pm", "pets": "Rex"}

    asyncio.run(email_service.notify_booking_confirmed("client@example.com", "Casey", booking))

    assert [m["to"] for m in outbox] == ["client@example.com", "office@example.com"]
    assert outbox[0]["reply_to"] == "office@example.com"
    assert "Casey" in outbox[1]["body"]


def test_cancellation_failures_are_logged_not_raised(monkeypatch):
    async def broken_send(**kwargs):
        raise RuntimeError("resend down")

    monkeypatch.setattr(email_service, "send_email", broken_send)
    monkeypatch.setattr(email_service, "ADMIN_NOTIFICATION_EMAIL", "")

    asyncio.run(
        email_service.notify_booking_cancelled(
            recipients=[{"email": "client@example.com", "name": "Casey"}],
            service_name="Daycare",
            date_text="Tuesday, 30 July 2024",
            time_text="9:00 am - 12:00 pm",
            cancelled_by="Staff",
        )
    )


def test_send_email_route_admin_only(client, users, headers, monkeypatch):
    sent = []

    async def fake_send_html_email(**kwargs):
        sent.append(kwargs)
        return {"id": "msg_42"}

    monkeypatch.setattr("daycare.routes.emails.send_html_email", fake_send_html_email)
    payload = {"to": "Someone@Example.com", "subject": "Hello", "html": "<p>Hi</p>", "from": "office@example.com"}

    assert client.post("/api/send-email", json=payload, headers=headers("staff")).status_code == 403

    response = client.post("/api/send-email", json=payload, headers=headers("admin"))
    assert response.json() == {"message": "Email sent successfully", "id": "msg_42"}
    assert sent[0]["to"] == ["someone@example.com"]
    assert sent[0]["from_address"] == "office@example.com"


def test_send_email_route_validation(client, users, headers):
    response = client.post(
        "/api/send-email", json={"to": "a@example.com", "subject": " ", "html": "<p>Hi</p>"}, headers=headers("admin")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "subject: Missing required field: subject"}


def test_send_email_route_not_configured(client, users, headers, monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "")
    response = client.post(
        "/api/send-email",
        json={"to": ["a@example.com"], "subject": "Hello", "html": "<p>Hi</p>"},
        headers=headers("admin"),
    )
    assert response.status_code == 503
    assert response.json() == {"error": "Email service not configured"}


def test_welcome_email_to_own_address(client, users, headers, monkeypatch):
    sent = []

    async def fake_welcome(to, first_name):
        sent.append((to, first_name))

    monkeypatch.setattr("daycare.routes.emails.send_welcome_email", fake_welcome)

    response = client.post(
        "/api/send-welcome-email",
        json={"email": "client@example.com", "firstName": "Casey"},
        headers=headers("client"),
    )
    assert response.json() == {"message": "Welcome email sent successfully."}
    assert sent == [("client@example.com", "Casey")]

    someone_else = client.post(
        "/api/send-welcome-email", json={"email": "victim@example.com"}, headers=headers("client")
    )
    assert someone_else.status_code == 403

    missing = client.post("/api/send-welcome-email", json={}, headers=headers("client"))
    assert missing.status_code == 400
    assert missing.json() == {"error": "Email is required."}


def test_welcome_email_needs_caller_email(client, monkeypatch):
    sent = []

    async def fake_welcome(to, first_name):
        sent.append(to)

    # phone sign-in: the token carries no email claim
    monkeypatch.setattr(identity, "verify_id_token", lambda token: IdentityUser(id="phone-uid"))
    monkeypatch.setattr("daycare.routes.emails.send_welcome_email", fake_welcome)

    response = client.post(
        "/api/send-welcome-email",
        json={"email": "victim@example.com"},
        headers={"Authorization": "Bearer phone-token"},
    )
    assert response.status_code == 403
    assert sent == []
