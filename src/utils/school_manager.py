"""School management utilities.

Registered schools, pending schools, the global school name directory, and
the link between a mentor and the school they are placed with. The link
columns of a mentor profile are only ever written from a ``SchoolLink``.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import MentorNotFoundError, SchoolNotFoundError
from models.mentor_profile import MentorProfileModel
from models.pending_school import PendingSchoolModel
from models.school_directory import SchoolDirectoryModel
from models.school_profile import SchoolProfileModel
from schemas.notification import EmailRequest, EmailType
from schemas.school import (
    AssignSchoolResponse,
    NewSchoolChoice,
    PendingSchoolChoice,
    PendingSchoolLink,
    RegisteredSchoolChoice,
    RegisteredSchoolLink,
    SchoolChoice,
    SchoolLink,
    SchoolOption,
    Unassigned,
    link_from_columns,
)
from utils.invitation_manager import SCHOOL_SIGNUP_PATH, signup_link

logger = logging.getLogger(__name__)

DIRECTORY_SEARCH_LIMIT = 20


def school_invite_email(corporate_id: str, school_name: str, email: str) -> EmailRequest:
    return EmailRequest(
        type=EmailType.SCHOOL_INVITE,
        email=email,
        data={
            "schoolName": school_name,
            "inviteLink": signup_link(SCHOOL_SIGNUP_PATH, corporate_id),
        },
    )


class SchoolManager:
    """Manages schools and mentor school links for one corporate at a time."""

    def __init__(self, db: Session):
        self.db = db

    # --- Directory ---

    def search_directory(
        self, query: str = "", limit: int = DIRECTORY_SEARCH_LIMIT
    ) -> List[SchoolDirectoryModel]:
        """Case-insensitive substring search over known school names."""
        q = self.db.query(SchoolDirectoryModel)
        query = (query or "").strip()
        if query:
            q = q.filter(
                func.lower(SchoolDirectoryModel.school_name).contains(
                    query.lower(), autoescape=True
                )
            )
        return q.order_by(SchoolDirectoryModel.school_name).limit(limit).all()

    def upsert_directory(self, school_name: str) -> None:
        """Record a school name in the global directory if it is not there yet.

        Best effort: a failure is logged and does not stop the caller.
        """
        existing = (
            self.db.query(SchoolDirectoryModel)
            .filter(SchoolDirectoryModel.school_name == school_name)
            .first()
        )
        if existing:
            return
        model = SchoolDirectoryModel(
            id=str(uuid.uuid4()),
            school_name=school_name,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError:
            # Inserted concurrently under the same name
            self.db.rollback()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error adding school to directory: %s", e)

    # --- Registered and pending schools ---

    def list_school_options(self, corporate_id: str) -> List[SchoolOption]:
        """Schools of a corporate: registered first, then pending, each sorted by name."""
        registered = (
            self.db.query(SchoolProfileModel)
            .filter(SchoolProfileModel.corporate_id == corporate_id)
            .order_by(SchoolProfileModel.school_name)
            .all()
        )
        pending = (
            self.db.query(PendingSchoolModel)
            .filter(PendingSchoolModel.corporate_id == corporate_id)
            .order_by(PendingSchoolModel.school_name)
            .all()
        )
        options = [SchoolOption(id=s.id, name=s.school_name, type="registered") for s in registered]
        options.extend(SchoolOption(id=p.id, name=p.school_name, type="pending") for p in pending)
        return options

    def get_registered_school(self, corporate_id: str, school_id: str) -> SchoolProfileModel:
        model = (
            self.db.query(SchoolProfileModel)
            .filter(
                SchoolProfileModel.id == school_id,
                SchoolProfileModel.corporate_id == corporate_id,
            )
            .first()
        )
        if not model:
            raise SchoolNotFoundError(school_id)
        return model

    def get_pending_school(self, corporate_id: str, pending_school_id: str) -> PendingSchoolModel:
        model = (
            self.db.query(PendingSchoolModel)
            .filter(
                PendingSchoolModel.id == pending_school_id,
                PendingSchoolModel.corporate_id == corporate_id,
            )
            .first()
        )
        if not model:
            raise SchoolNotFoundError(pending_school_id)
        return model

    def find_registered_by_name(
        self, corporate_id: str, school_name: str
    ) -> Optional[SchoolProfileModel]:
        return (
            self.db.query(SchoolProfileModel)
            .filter(
                SchoolProfileModel.corporate_id == corporate_id,
                SchoolProfileModel.school_name == school_name,
            )
            .first()
        )

    def find_pending_by_name(
        self, corporate_id: str, school_name: str
    ) -> Optional[PendingSchoolModel]:
        return (
            self.db.query(PendingSchoolModel)
            .filter(
                PendingSchoolModel.corporate_id == corporate_id,
                PendingSchoolModel.school_name == school_name,
            )
            .first()
        )

    def create_pending_school(
        self,
        corporate_id: str,
        school_name: str,
        invited_email: Optional[str] = None,
        created_by_mentor_id: Optional[str] = None,
    ) -> PendingSchoolModel:
        """Insert a pending school scoped to ``corporate_id``.

        ``invited_at`` is stamped only when an invite email is given.
        """
        now = datetime.now(pytz.utc).isoformat()
        model = PendingSchoolModel(
            id=str(uuid.uuid4()),
            corporate_id=corporate_id,
            created_by_mentor_id=created_by_mentor_id,
            school_name=school_name,
            invited_email=invited_email,
            invited_at=now if invited_email else None,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Created pending school %s for corporate %s", model.id, corporate_id)
        return model

    def add_pending_school(
        self, corporate_id: str, school_name: str, invite_email: Optional[str] = None
    ) -> Tuple[PendingSchoolModel, List[EmailRequest]]:
        """Create a pending school from the corporate dashboard, optionally inviting it."""
        self.upsert_directory(school_name)
        pending = self.create_pending_school(corporate_id, school_name, invited_email=invite_email)
        emails = []
        if invite_email:
            emails.append(school_invite_email(corporate_id, school_name, invite_email))
        return pending, emails

    def invite_pending_school(
        self, corporate_id: str, pending_school_id: str, email: str
    ) -> Tuple[PendingSchoolModel, EmailRequest]:
        """Stamp an invite on a pending school and build the invite email.

        Raises:
            SchoolNotFoundError: If the pending school does not belong to the corporate.
        """
        pending = self.get_pending_school(corporate_id, pending_school_id)
        now = datetime.now(pytz.utc).isoformat()
        pending.invited_email = email
        pending.invited_at = now
        pending.updated_at = now
        try:
            self.db.commit()
            self.db.refresh(pending)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info("Invited pending school %s", pending.id)
        return pending, school_invite_email(corporate_id, pending.school_name, email)

    # --- Mentor links ---

    def resolve_mentor_school(
        self,
        corporate_id: str,
        school_name: Optional[str],
        new_school: bool = False,
        mentor_id: Optional[str] = None,
    ) -> SchoolLink:
        """Turn the school picked at mentor signup into a link.

        An exact name match among the corporate's registered schools wins,
        then one among its pending schools. Any other name becomes a new
        pending school; a name typed in by the mentor is also added to the
        directory and the pending school records ``mentor_id`` as its creator.
        A failure to create the pending school is logged and the mentor is
        left unassigned.
        """
        school_name = (school_name or "").strip()
        if not school_name:
            return Unassigned()

        registered = self.find_registered_by_name(corporate_id, school_name)
        if registered:
            return RegisteredSchoolLink(school_id=registered.id)
        pending = self.find_pending_by_name(corporate_id, school_name)
        if pending:
            return PendingSchoolLink(pending_school_id=pending.id)

        if new_school:
            self.upsert_directory(school_name)
        try:
            pending = self.create_pending_school(
                corporate_id, school_name, created_by_mentor_id=mentor_id
            )
        except SQLAlchemyError as e:
            logger.error("Error creating pending school '%s': %s", school_name, e)
            return Unassigned()
        return PendingSchoolLink(pending_school_id=pending.id)

    def get_mentor(self, corporate_id: str, mentor_id: str) -> MentorProfileModel:
        model = (
            self.db.query(MentorProfileModel)
            .filter(
                MentorProfileModel.id == mentor_id,
                MentorProfileModel.corporate_id == corporate_id,
            )
            .first()
        )
        if not model:
            raise MentorNotFoundError(mentor_id)
        return model

    def mentor_link(self, mentor: MentorProfileModel) -> SchoolLink:
        return link_from_columns(mentor.school_id, mentor.pending_school_id)

    def link_school_name(self, link: SchoolLink) -> Optional[str]:
        if isinstance(link, RegisteredSchoolLink):
            model = self.db.query(SchoolProfileModel).filter(SchoolProfileModel.id == link.school_id).first()
        elif isinstance(link, PendingSchoolLink):
            model = (
                self.db.query(PendingSchoolModel)
                .filter(PendingSchoolModel.id == link.pending_school_id)
                .first()
            )
        else:
            return None
        return model.school_name if model else None

    def set_mentor_link(self, mentor: MentorProfileModel, link: SchoolLink) -> None:
        for column, value in link.to_columns().items():
            setattr(mentor, column, value)
        mentor.updated_at = datetime.now(pytz.utc).isoformat()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def assign_school(
        self, corporate_id: str, mentor_id: str, choice: SchoolChoice
    ) -> Tuple[AssignSchoolResponse, List[EmailRequest]]:
        """Assign or re-assign a mentor's school.

        Exactly one of the mentor's two school columns is set afterwards.

        Args:
            corporate_id: The calling corporate.
            mentor_id: Mentor profile id; must belong to the corporate.
            choice: A registered school, a pending school, or a new school
                with an optional invite email.

        Returns:
            The response and the invite email to send, if any.

        Raises:
            MentorNotFoundError: If the mentor is not one of the corporate's.
            SchoolNotFoundError: If the chosen school is not one of the corporate's.
        """
        mentor = self.get_mentor(corporate_id, mentor_id)
        emails: List[EmailRequest] = []

        if isinstance(choice, RegisteredSchoolChoice):
            school = self.get_registered_school(corporate_id, choice.id)
            link: SchoolLink = RegisteredSchoolLink(school_id=school.id)
            school_name = school.school_name
        elif isinstance(choice, PendingSchoolChoice):
            pending = self.get_pending_school(corporate_id, choice.id)
            link = PendingSchoolLink(pending_school_id=pending.id)
            school_name = pending.school_name
        elif isinstance(choice, NewSchoolChoice):
            pending, emails = self.add_pending_school(
                corporate_id, choice.school_name, choice.invite_email
            )
            link = PendingSchoolLink(pending_school_id=pending.id)
            school_name = pending.school_name
        else:
            raise TypeError(f"Unknown school choice: {choice!r}")

        self.set_mentor_link(mentor, link)
        logger.info("Assigned mentor %s to %s school %s", mentor.id, link.kind, school_name)
        response = AssignSchoolResponse(
            mentor_id=mentor.id,
            school_name=school_name,
            link=link,
            invite_sent=bool(emails),
        )
        return response, emails
