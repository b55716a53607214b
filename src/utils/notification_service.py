"""Email notifications.

One entry point, ``NotificationService.send``, takes an ``EmailRequest``
(type, recipient, data), renders the matching Jinja2 template and hands the
result to a transport. The default transport posts to the Resend HTTP API;
without an API key it only logs.

Signup and invitation flows never wait on email: they queue requests and
deliver them with ``dispatch_quietly``, which logs failures and moves on.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import jinja2
import pytz
import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import (
    EMAIL_FROM,
    EMAIL_TEMPLATE_DIR,
    EMAIL_TIMEOUT_SECONDS,
    RESEND_API_KEY,
    RESEND_API_URL,
    SITE_URL,
)
from core.exceptions import NotificationError
from models.corporate_profile import CorporateProfileModel
from schemas.notification import EmailRequest, EmailResult, EmailType, RenderedEmail
from schemas.user import Role
from utils.identity_provider import IdentityProvider
from utils.invitation_manager import InvitationManager
from utils.route_guards import dashboard_for

logger = logging.getLogger(__name__)

# type -> (template file, required data keys)
EMAIL_TEMPLATES: Dict[EmailType, Tuple[str, Tuple[str, ...]]] = {
    EmailType.CORPORATE_WELCOME: ("corporate_welcome.html", ("companyName", "corporateId")),
    EmailType.MENTOR_WELCOME: ("mentor_welcome.html", ("mentorName",)),
    EmailType.SCHOOL_WELCOME: ("school_welcome.html", ("schoolName",)),
    EmailType.NEW_SIGNUP_NOTIFICATION: (
        "new_signup_notification.html",
        ("signupType", "entityName", "corporateId"),
    ),
    EmailType.SCHOOL_INVITE: ("school_invite.html", ("schoolName", "inviteLink")),
}


class ResendTransport:
    """Delivers rendered emails through the Resend HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = RESEND_API_KEY,
        api_url: str = RESEND_API_URL,
        sender: str = EMAIL_FROM,
        timeout: float = EMAIL_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.timeout = timeout

    def __call__(self, email: RenderedEmail) -> EmailResult:
        if not self.api_key:
            logger.info("RESEND_API_KEY not set, skipping email to %s: %s", email.to, email.subject)
            return EmailResult(success=True, skipped=True, to=email.to)

        payload = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            resp = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Email request failed: {e}") from e

        if resp.status_code >= 400:
            raise NotificationError(
                f"Email provider returned {resp.status_code}: {resp.text[:200]}"
            )
        try:
            message_id = resp.json().get("id", "")
        except ValueError:
            message_id = ""
        return EmailResult(success=True, to=email.to, message_id=message_id)


EmailTransport = Callable[[RenderedEmail], EmailResult]


class NotificationService:
    """Renders and sends the five notification emails."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        transport: Optional[EmailTransport] = None,
        template_dir=EMAIL_TEMPLATE_DIR,
    ):
        """Initialize NotificationService.

        Args:
            session_factory: Opens a database session; used to find the
                corporate recipient of a new-signup notification. Emails go
                out after the request that queued them has finished, so the
                service opens its own sessions.
            transport: Callable delivering a RenderedEmail. Defaults to Resend.
            template_dir: Directory holding the email templates.
        """
        self.session_factory = session_factory
        self.transport = transport or ResendTransport()
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html"]),
        )

    def _corporate_email(self, corporate_id: str) -> str:
        try:
            db = self.session_factory()
        except SQLAlchemyError as e:
            raise NotificationError(f"Could not look up corporate {corporate_id}: {e}") from e
        try:
            corporate = (
                db.query(CorporateProfileModel)
                .filter(CorporateProfileModel.id == corporate_id)
                .first()
            )
            if corporate is None:
                raise NotificationError("Could not find corporate profile")
            user = IdentityProvider(db).admin_get_user_by_id(corporate.user_id)
        except SQLAlchemyError as e:
            raise NotificationError(f"Could not look up corporate {corporate_id}: {e}") from e
        finally:
            db.close()
        if user is None:
            raise NotificationError("Could not find corporate user")
        if not user.email:
            raise NotificationError("Corporate user has no email")
        return user.email

    def render(self, request: EmailRequest) -> RenderedEmail:
        """Build subject, body and recipient for ``request``.

        Raises:
            NotificationError: If required data is missing or, for a new-signup
                notification, the corporate or its user cannot be found.
        """
        template_name, required = EMAIL_TEMPLATES[request.type]
        data = request.data
        missing = [key for key in required if not data.get(key)]
        if missing:
            raise NotificationError(
                f"Missing {', '.join(missing)} for {request.type.value} email"
            )

        context: Dict[str, Any] = {
            "site_url": SITE_URL,
            "year": datetime.now(pytz.utc).year,
        }
        if request.type is EmailType.CORPORATE_WELCOME:
            links = InvitationManager.signup_links(data["corporateId"])
            context.update(
                company_name=data["companyName"],
                mentor_link=links.mentor_signup,
                school_link=links.school_signup,
                dashboard_url=SITE_URL + dashboard_for(Role.CORPORATE),
            )
            subject = "Welcome to Gen-Connect - Your Social Mobility Program"
        elif request.type is EmailType.MENTOR_WELCOME:
            context.update(
                mentor_name=data["mentorName"],
                dashboard_url=SITE_URL + dashboard_for(Role.MENTOR),
            )
            subject = "Welcome as a Mentor - Gen-Connect"
        elif request.type is EmailType.SCHOOL_WELCOME:
            context.update(
                school_name=data["schoolName"],
                dashboard_url=SITE_URL + dashboard_for(Role.SCHOOL),
            )
            subject = "Welcome as Partner School - Gen-Connect"
        elif request.type is EmailType.NEW_SIGNUP_NOTIFICATION:
            signup_type = str(data["signupType"])
            context.update(
                signup_type=signup_type,
                entity_name=data["entityName"],
                dashboard_url=SITE_URL + dashboard_for(Role.CORPORATE),
            )
            subject = f"New {signup_type} signed up - Gen-Connect"
        else:
            context.update(school_name=data["schoolName"], invite_link=data["inviteLink"])
            subject = f"You're invited to join Gen-Connect - {data['schoolName']}"

        if request.type is EmailType.NEW_SIGNUP_NOTIFICATION:
            # The request's own email field is ignored for this type
            to = self._corporate_email(data["corporateId"])
        else:
            to = request.email.strip()
            if not to:
                raise NotificationError(f"No recipient for {request.type.value} email")

        try:
            html = self.env.get_template(template_name).render(**context)
        except jinja2.TemplateError as e:
            raise NotificationError(f"Could not render {template_name}: {e}") from e
        return RenderedEmail(to=to, subject=subject, html=html)

    def send(self, request: EmailRequest) -> EmailResult:
        """Render and deliver one email.

        Raises:
            NotificationError: If the email cannot be built or delivered.
        """
        logger.info("Processing email request: type=%s, email=%s", request.type.value, request.email)
        email = self.render(request)
        result = self.transport(email)
        if not result.skipped:
            logger.info("Email %s sent to %s", request.type.value, result.to)
        return result

    def dispatch_quietly(self, emails: Iterable[EmailRequest]) -> List[EmailResult]:
        """Send each request, logging and skipping any that fail."""
        results = []
        for request in emails:
            try:
                results.append(self.send(request))
            except NotificationError as e:
                logger.error("Error sending %s email: %s", request.type.value, e)
        return results
