"""Dashboard read models for the three roles."""

import logging
from typing import List

from sqlalchemy.orm import Session

from core.exceptions import (
    CorporateProfileNotFoundError,
    MentorNotFoundError,
    SchoolNotFoundError,
)
from models.corporate_profile import CorporateProfileModel
from models.mentor_profile import MentorProfileModel
from models.pending_school import PendingSchoolModel
from models.school_profile import SchoolProfileModel
from schemas.dashboard import (
    CorporateDashboard,
    DashboardStats,
    MentorDashboard,
    MentorSummary,
    SchoolDashboard,
)
from schemas.school import PendingSchoolLink
from utils.converters import (
    model_to_corporate_info,
    model_to_pending_info,
    model_to_school_info,
)
from utils.invitation_manager import InvitationManager
from utils.school_manager import SchoolManager

logger = logging.getLogger(__name__)


class DashboardManager:
    """Builds dashboards for the signed-in user's own profile."""

    def __init__(self, db: Session):
        self.db = db

    def get_corporate_for_user(self, user_id: str) -> CorporateProfileModel:
        model = (
            self.db.query(CorporateProfileModel)
            .filter(CorporateProfileModel.user_id == user_id)
            .first()
        )
        if not model:
            raise CorporateProfileNotFoundError(user_id)
        return model

    def _mentor_summaries(self, corporate_id: str) -> List[MentorSummary]:
        query = (
            self.db.query(
                MentorProfileModel,
                SchoolProfileModel.school_name,
                PendingSchoolModel.school_name,
            )
            .outerjoin(SchoolProfileModel, SchoolProfileModel.id == MentorProfileModel.school_id)
            .outerjoin(
                PendingSchoolModel, PendingSchoolModel.id == MentorProfileModel.pending_school_id
            )
            .filter(MentorProfileModel.corporate_id == corporate_id)
            .order_by(MentorProfileModel.created_at.desc())
        )
        results = []
        for mentor, school_name, pending_school_name in query.all():
            results.append(
                MentorSummary(
                    id=mentor.id,
                    full_name=mentor.full_name,
                    company=mentor.company,
                    job_title=mentor.job_title,
                    background_info=mentor.background_info,
                    created_at=mentor.created_at,
                    school_name=school_name,
                    pending_school_name=pending_school_name,
                )
            )
        return results

    def corporate_dashboard(self, user_id: str) -> CorporateDashboard:
        """Profile, mentors, schools and counters of the corporate owned by ``user_id``.

        Raises:
            CorporateProfileNotFoundError: If the user has no corporate profile.
        """
        profile = self.get_corporate_for_user(user_id)
        mentors = self._mentor_summaries(profile.id)
        schools = (
            self.db.query(SchoolProfileModel)
            .filter(SchoolProfileModel.corporate_id == profile.id)
            .order_by(SchoolProfileModel.created_at.desc())
            .all()
        )
        pending = (
            self.db.query(PendingSchoolModel)
            .filter(PendingSchoolModel.corporate_id == profile.id)
            .order_by(PendingSchoolModel.created_at.desc())
            .all()
        )
        stats = DashboardStats(
            active_mentors=len(mentors),
            partner_schools=len(schools),
            pending_schools=len(pending),
            # Placements are not tracked yet
            placements=0,
        )
        return CorporateDashboard(
            profile=model_to_corporate_info(profile),
            mentors=mentors,
            schools=[model_to_school_info(s) for s in schools],
            pending_schools=[model_to_pending_info(p) for p in pending],
            stats=stats,
            invitation_links=InvitationManager.signup_links(profile.id),
        )

    def mentor_dashboard(self, user_id: str) -> MentorDashboard:
        """Raises MentorNotFoundError if the user has no mentor profile."""
        mentor = (
            self.db.query(MentorProfileModel)
            .filter(MentorProfileModel.user_id == user_id)
            .first()
        )
        if not mentor:
            raise MentorNotFoundError(user_id)

        schools = SchoolManager(self.db)
        link = schools.mentor_link(mentor)

        return MentorDashboard(
            full_name=mentor.full_name,
            job_title=mentor.job_title,
            company=mentor.company,
            school_name=schools.link_school_name(link),
            school_is_pending=isinstance(link, PendingSchoolLink),
        )

    def school_dashboard(self, user_id: str) -> SchoolDashboard:
        """Raises SchoolNotFoundError if the user has no school profile."""
        school = (
            self.db.query(SchoolProfileModel)
            .filter(SchoolProfileModel.user_id == user_id)
            .first()
        )
        if not school:
            raise SchoolNotFoundError(user_id)

        sponsor = None
        if school.corporate_id:
            sponsor = (
                self.db.query(CorporateProfileModel)
                .filter(CorporateProfileModel.id == school.corporate_id)
                .first()
            )
        return SchoolDashboard(
            school_name=school.school_name,
            location=school.location,
            contact_name=school.contact_name,
            sponsor_company_name=sponsor.company_name if sponsor else None,
        )
