"""Tests for the email notification service."""

import pytest
import requests

from core.exceptions import NotificationError
from schemas.notification import EmailRequest, EmailType, RenderedEmail
from utils.notification_service import NotificationService, ResendTransport


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


@pytest.mark.parametrize(
    "email_type,data,subject",
    [
        (
            EmailType.CORPORATE_WELCOME,
            {"companyName": "Acme Ltd", "corporateId": "corp-1"},
            "Welcome to Gen-Connect - Your Social Mobility Program",
        ),
        (EmailType.MENTOR_WELCOME, {"mentorName": "Jo Rivers"}, "Welcome as a Mentor - Gen-Connect"),
        (EmailType.SCHOOL_WELCOME, {"schoolName": "Riverside High"}, "Welcome as Partner School - Gen-Connect"),
        (
            EmailType.SCHOOL_INVITE,
            {"schoolName": "Hilltop Academy", "inviteLink": "https://genconnect.test/school-signup?corporate=c"},
            "You're invited to join Gen-Connect - Hilltop Academy",
        ),
    ],
)
def test_subjects(notifications, email_type, data, subject):
    rendered = notifications.render(EmailRequest(type=email_type, email="to@example.com", data=data))

    assert rendered.subject == subject
    assert rendered.to == "to@example.com"


def test_corporate_welcome_contains_invitation_links(notifications):
    rendered = notifications.render(
        EmailRequest(
            type=EmailType.CORPORATE_WELCOME,
            email="hr@acme.com",
            data={"companyName": "Acme Ltd", "corporateId": "corp-1"},
        )
    )

    assert "https://genconnect.test/mentor-signup?corporate=corp-1" in rendered.html
    assert "https://genconnect.test/school-signup?corporate=corp-1" in rendered.html
    assert "https://genconnect.test/corporate-dashboard" in rendered.html
    assert "Welcome, Acme Ltd!" in rendered.html


def test_school_invite_contains_invite_link(notifications):
    link = "https://genconnect.test/school-signup?corporate=corp-1"
    rendered = notifications.render(
        EmailRequest(
            type=EmailType.SCHOOL_INVITE,
            email="head@hilltop.com",
            data={"schoolName": "Hilltop Academy", "inviteLink": link},
        )
    )

    assert link in rendered.html


def test_names_are_escaped(notifications):
    rendered = notifications.render(
        EmailRequest(
            type=EmailType.MENTOR_WELCOME,
            email="jo@acme.com",
            data={"mentorName": "<script>alert(1)</script>"},
        )
    )

    assert "<script>" not in rendered.html
    assert "&lt;script&gt;" in rendered.html


def test_missing_data_raises(notifications):
    with pytest.raises(NotificationError, match="companyName"):
        notifications.render(
            EmailRequest(type=EmailType.CORPORATE_WELCOME, email="hr@acme.com", data={"corporateId": "c"})
        )


def test_missing_recipient_raises(notifications):
    with pytest.raises(NotificationError, match="No recipient"):
        notifications.render(
            EmailRequest(type=EmailType.MENTOR_WELCOME, email="  ", data={"mentorName": "Jo"})
        )


def test_new_signup_notification_goes_to_corporate(notifications, make_corporate):
    corporate = make_corporate(email="hr@acme.com")

    rendered = notifications.render(
        EmailRequest(
            type=EmailType.NEW_SIGNUP_NOTIFICATION,
            email="ignored@example.com",
            data={"signupType": "mentor", "entityName": "Jo Rivers", "corporateId": corporate.profile_id},
        )
    )

    assert rendered.to == "hr@acme.com"
    assert rendered.subject == "New mentor signed up - Gen-Connect"
    assert "Jo Rivers" in rendered.html


def test_new_signup_notification_for_unknown_corporate(notifications):
    with pytest.raises(NotificationError, match="Could not find corporate profile"):
        notifications.render(
            EmailRequest(
                type=EmailType.NEW_SIGNUP_NOTIFICATION,
                data={"signupType": "school", "entityName": "Riverside High", "corporateId": "missing"},
            )
        )


def test_send_uses_transport(notifications, transport):
    result = notifications.send(
        EmailRequest(type=EmailType.SCHOOL_WELCOME, email="office@riverside.com", data={"schoolName": "Riverside"})
    )

    assert result.success
    assert result.message_id == "test-1"
    assert [email.to for email in transport.sent] == ["office@riverside.com"]


def test_dispatch_quietly_continues_past_failures(notifications, transport, caplog):
    emails = [
        EmailRequest(type=EmailType.MENTOR_WELCOME, email="a@acme.com", data={}),
        EmailRequest(
            type=EmailType.NEW_SIGNUP_NOTIFICATION,
            data={"signupType": "mentor", "entityName": "Jo", "corporateId": "missing"},
        ),
        EmailRequest(type=EmailType.MENTOR_WELCOME, email="b@acme.com", data={"mentorName": "Bo"}),
    ]

    results = notifications.dispatch_quietly(emails)

    assert [r.to for r in results] == ["b@acme.com"]
    assert [e.to for e in transport.sent] == ["b@acme.com"]
    assert "Error sending mentor_welcome email" in caplog.text
    assert "Error sending new_signup_notification email" in caplog.text


def test_signup_emails_are_delivered(db, notifications, transport, make_corporate, mentor_request):
    from utils.signup_manager import SignupManager

    corporate = make_corporate(email="hr@acme.com")
    _, emails = SignupManager(db).signup_mentor(corporate.profile_id, mentor_request(email="jo@acme.com"))

    notifications.dispatch_quietly(emails)

    assert [(e.to, e.subject) for e in transport.sent] == [
        ("jo@acme.com", "Welcome as a Mentor - Gen-Connect"),
        ("hr@acme.com", "New mentor signed up - Gen-Connect"),
    ]


EMAIL = RenderedEmail(to="jo@acme.com", subject="Hello", html="<p>Hi</p>")


def test_resend_transport_without_key_skips(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(requests, "post", fail)

    result = ResendTransport(api_key="")(EMAIL)

    assert result.skipped is True
    assert result.success is True


def test_resend_transport_posts(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers, timeout))
        return FakeResponse(200, {"id": "msg-123"})

    monkeypatch.setattr(requests, "post", fake_post)

    result = ResendTransport(api_key="re_test", api_url="https://api.resend.test/emails", sender="Gen-Connect <hi@gc.com>", timeout=5)(EMAIL)

    assert result.message_id == "msg-123"
    url, payload, headers, timeout = calls[0]
    assert url == "https://api.resend.test/emails"
    assert headers == {"Authorization": "Bearer re_test"}
    assert payload == {"from": "Gen-Connect <hi@gc.com>", "to": ["jo@acme.com"], "subject": "Hello", "html": "<p>Hi</p>"}
    assert timeout == 5


def test_resend_transport_error_status(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(422, text="invalid from"))

    with pytest.raises(NotificationError, match="422"):
        ResendTransport(api_key="re_test")(EMAIL)


def test_resend_transport_network_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "post", boom)

    with pytest.raises(NotificationError, match="Email request failed"):
        ResendTransport(api_key="re_test")(EMAIL)


def test_default_transport_is_resend():
    from core.database import SessionLocal

    assert isinstance(NotificationService(SessionLocal).transport, ResendTransport)


def test_recipient_lookup_database_error_is_logged(transport, caplog):
    from sqlalchemy.exc import OperationalError

    def broken_session():
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    service = NotificationService(broken_session, transport=transport)
    emails = [
        EmailRequest(
            type=EmailType.NEW_SIGNUP_NOTIFICATION,
            data={"signupType": "mentor", "entityName": "Jo", "corporateId": "corp-1"},
        ),
        EmailRequest(type=EmailType.MENTOR_WELCOME, email="jo@acme.com", data={"mentorName": "Jo"}),
    ]

    results = service.dispatch_quietly(emails)

    assert [r.to for r in results] == ["jo@acme.com"]
    assert [e.to for e in transport.sent] == ["jo@acme.com"]
    assert "Error sending new_signup_notification email" in caplog.text


def test_recipient_query_error_raises_notification_error(db, transport, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def failing_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "query", failing_query)
    service = NotificationService(lambda: db, transport=transport)

    with pytest.raises(NotificationError, match="Could not look up corporate corp-1"):
        service.render(
            EmailRequest(
                type=EmailType.NEW_SIGNUP_NOTIFICATION,
                data={"signupType": "school", "entityName": "Riverside High", "corporateId": "corp-1"},
            )
        )
