"""Signup utilities.

Each signup is a sequence of separate writes: identity, role, profile. They
are not atomic; a failure after the identity exists leaves it in place
without a role or profile, and is logged so the account can be repaired.
Emails are returned to the caller for background delivery, never sent here.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import ProfileCreationError
from models.corporate_profile import CorporateProfileModel
from models.mentor_profile import MentorProfileModel
from models.school_profile import SchoolProfileModel
from schemas.notification import EmailRequest, EmailType
from schemas.signup import (
    CorporateSignupRequest,
    MentorSignupRequest,
    SchoolSignupRequest,
    SignupResponse,
)
from schemas.user import Role
from utils.identity_provider import IdentityProvider
from utils.invitation_manager import InvitationManager
from utils.role_resolver import RoleResolver
from utils.route_guards import dashboard_for
from utils.school_manager import SchoolManager

logger = logging.getLogger(__name__)

SignupResult = Tuple[SignupResponse, List[EmailRequest]]


def _new_signup_notification(signup_type: Role, entity_name: str, corporate_id: str) -> EmailRequest:
    # Recipient is looked up from the corporate profile when sending
    return EmailRequest(
        type=EmailType.NEW_SIGNUP_NOTIFICATION,
        email="",
        data={
            "signupType": signup_type.value,
            "entityName": entity_name,
            "corporateId": corporate_id,
        },
    )


class SignupManager:
    """Runs the corporate, school and mentor signup flows."""

    def __init__(self, db: Session, provider: Optional[IdentityProvider] = None):
        """Initialize SignupManager.

        Args:
            db: SQLAlchemy Session.
            provider: Identity provider to sign up with. A client that keeps
                a session (the CLI) passes its own so the new user ends up
                signed in there; otherwise a fresh one is used.
        """
        self.db = db
        self.provider = provider or IdentityProvider(db)
        self.roles = RoleResolver(db)
        self.invitations = InvitationManager(db)
        self.schools = SchoolManager(db)

    def _create_account(self, email: str, password: str, role: Role) -> str:
        """Create the identity and its role row. Returns the new user id."""
        auth = self.provider.sign_up(email, password)
        user_id = auth.user.id
        try:
            self.roles.assign_role(user_id, role)
        except ProfileCreationError:
            logger.error("Orphaned identity %s: role assignment failed", user_id)
            raise
        return user_id

    def _insert_profile(self, model, user_id: str, label: str) -> None:
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Orphaned identity %s: %s profile insert failed: %s", user_id, label, e)
            raise ProfileCreationError(f"Failed to create {label} profile", user_id=user_id) from e

    def signup_corporate(self, request: CorporateSignupRequest) -> SignupResult:
        """Sign up a corporate. Not invitation-gated.

        Raises:
            DuplicateEmailError: If the email is already registered.
            ProviderError: If the identity cannot be created.
            ProfileCreationError: If the role or profile cannot be written.
        """
        user_id = self._create_account(request.email, request.password, Role.CORPORATE)

        now = datetime.now(pytz.utc).isoformat()
        profile = CorporateProfileModel(
            id=str(uuid.uuid4()),
            user_id=user_id,
            company_name=request.company_name,
            industry=request.industry,
            company_size=request.company_size,
            created_at=now,
            updated_at=now,
        )
        self._insert_profile(profile, user_id, "company")
        logger.info("Corporate signup completed: %s (%s)", profile.company_name, profile.id)

        emails = [
            EmailRequest(
                type=EmailType.CORPORATE_WELCOME,
                email=request.email,
                data={"companyName": profile.company_name, "corporateId": profile.id},
            )
        ]
        response = SignupResponse(
            message=f"Welcome to Gen-Connect, {profile.company_name}!",
            user_id=user_id,
            role=Role.CORPORATE,
            profile_id=profile.id,
            redirect_to=dashboard_for(Role.CORPORATE),
        )
        return response, emails

    def signup_school(self, corporate_id: Optional[str], request: SchoolSignupRequest) -> SignupResult:
        """Sign up a school through a corporate's invitation link.

        Raises:
            InvalidInvitationError: If the link's corporate id is missing or unknown.
            DuplicateEmailError: If the email is already registered.
            ProviderError: If the identity cannot be created.
            ProfileCreationError: If the role or profile cannot be written.
        """
        invitation = self.invitations.require_valid(corporate_id)
        corporate_id = invitation.corporate_id
        user_id = self._create_account(request.email, request.password, Role.SCHOOL)

        now = datetime.now(pytz.utc).isoformat()
        profile = SchoolProfileModel(
            id=str(uuid.uuid4()),
            user_id=user_id,
            corporate_id=corporate_id,
            school_name=request.school_name,
            school_type=request.school_type,
            location=request.location,
            student_count=request.student_count,
            fsm_percentage=request.fsm_percentage,
            contact_name=request.contact_name,
            contact_role=request.contact_role,
            phone=request.phone,
            created_at=now,
            updated_at=now,
        )
        self._insert_profile(profile, user_id, "school")
        logger.info("School signup completed: %s for corporate %s", profile.id, corporate_id)

        emails = [
            EmailRequest(
                type=EmailType.SCHOOL_WELCOME,
                email=request.email,
                data={"schoolName": profile.school_name},
            ),
            _new_signup_notification(Role.SCHOOL, profile.school_name, corporate_id),
        ]
        response = SignupResponse(
            message=f"Welcome to Gen-Connect, {profile.school_name}!",
            user_id=user_id,
            role=Role.SCHOOL,
            profile_id=profile.id,
            redirect_to=dashboard_for(Role.SCHOOL),
        )
        return response, emails

    def signup_mentor(self, corporate_id: Optional[str], request: MentorSignupRequest) -> SignupResult:
        """Sign up a mentor through a corporate's invitation link.

        The picked school is resolved to a registered or pending school of
        the inviting corporate; see ``SchoolManager.resolve_mentor_school``.

        Raises:
            InvalidInvitationError: If the link's corporate id is missing or unknown.
            DuplicateEmailError: If the email is already registered.
            ProviderError: If the identity cannot be created.
            ProfileCreationError: If the role or profile cannot be written.
        """
        invitation = self.invitations.require_valid(corporate_id)
        corporate_id = invitation.corporate_id
        user_id = self._create_account(request.email, request.password, Role.MENTOR)

        mentor_id = str(uuid.uuid4())
        link = self.schools.resolve_mentor_school(
            corporate_id, request.school_name, request.new_school, mentor_id=mentor_id
        )

        now = datetime.now(pytz.utc).isoformat()
        profile = MentorProfileModel(
            id=mentor_id,
            user_id=user_id,
            corporate_id=corporate_id,
            full_name=request.full_name,
            company=invitation.company_name,
            job_title=request.job_title,
            background_info=request.background_info,
            created_at=now,
            updated_at=now,
            **link.to_columns(),
        )
        self._insert_profile(profile, user_id, "mentor")
        logger.info(
            "Mentor signup completed: %s for corporate %s (school link: %s)",
            profile.id,
            corporate_id,
            link.kind,
        )

        emails = [
            EmailRequest(
                type=EmailType.MENTOR_WELCOME,
                email=request.email,
                data={"mentorName": profile.full_name},
            ),
            _new_signup_notification(Role.MENTOR, profile.full_name, corporate_id),
        ]
        response = SignupResponse(
            message=f"Welcome to Gen-Connect, {profile.full_name}!",
            user_id=user_id,
            role=Role.MENTOR,
            profile_id=profile.id,
            redirect_to=dashboard_for(Role.MENTOR),
        )
        return response, emails
