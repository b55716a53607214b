"""Shared pytest fixtures.

Configuration is read at import time, so the environment is set before any
application module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RESEND_API_KEY"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["SITE_URL"] = "https://genconnect.test"

from typing import List  # noqa: E402

import pytest  # noqa: E402

from core.database import SessionLocal, engine  # noqa: E402
from models.base import Base  # noqa: E402
from schemas.notification import EmailResult, RenderedEmail  # noqa: E402
from schemas.signup import (  # noqa: E402
    CorporateSignupRequest,
    MentorSignupRequest,
    SchoolSignupRequest,
)
from utils.notification_service import NotificationService  # noqa: E402
from utils.signup_manager import SignupManager  # noqa: E402

PASSWORD = "Secret123"


class RecordingTransport:
    """Email transport that keeps every message instead of sending it."""

    def __init__(self):
        self.sent: List[RenderedEmail] = []

    def __call__(self, email: RenderedEmail) -> EmailResult:
        self.sent.append(email)
        return EmailResult(success=True, to=email.to, message_id=f"test-{len(self.sent)}")


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifications(transport) -> NotificationService:
    return NotificationService(SessionLocal, transport=transport)


def _account(email: str) -> dict:
    return {
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "agree_terms": True,
    }


@pytest.fixture
def make_corporate(db):
    """Sign up a corporate and return its SignupResponse."""

    def factory(email: str = "hr@acme.com", company_name: str = "Acme Ltd"):
        request = CorporateSignupRequest(
            company_name=company_name,
            industry="Technology",
            company_size="1,000-5,000 employees",
            **_account(email),
        )
        response, _ = SignupManager(db).signup_corporate(request)
        return response

    return factory


@pytest.fixture
def make_school(db):
    """Sign up a school through ``corporate_id``'s link and return its SignupResponse."""

    def factory(corporate_id: str, school_name: str = "Riverside High", email: str = "office@riverside.com"):
        request = SchoolSignupRequest(
            school_name=school_name,
            school_type="Academy",
            location="Leeds",
            student_count="500-1,000",
            fsm_percentage="30-45%",
            contact_name="Sam Patel",
            contact_role="Careers Advisor",
            phone="+44 113 496 0000",
            **_account(email),
        )
        response, _ = SignupManager(db).signup_school(corporate_id, request)
        return response

    return factory


@pytest.fixture
def mentor_request():
    """Build a valid MentorSignupRequest."""

    def factory(email: str = "jo@acme.com", school_name=None, new_school: bool = False):
        return MentorSignupRequest(
            full_name="Jo Rivers",
            job_title="Software Engineer",
            background_info="Ten years building payment systems.",
            school_name=school_name,
            new_school=new_school,
            **_account(email),
        )

    return factory


@pytest.fixture
def make_mentor(db, mentor_request):
    """Sign up a mentor and return its SignupResponse."""

    def factory(corporate_id: str, email: str = "jo@acme.com", school_name=None, new_school=False):
        request = mentor_request(email=email, school_name=school_name, new_school=new_school)
        response, _ = SignupManager(db).signup_mentor(corporate_id, request)
        return response

    return factory


@pytest.fixture
def client(notifications):
    from fastapi.testclient import TestClient

    from app import app
    from core.dependencies import get_notification_service

    app.dependency_overrides[get_notification_service] = lambda: notifications
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
