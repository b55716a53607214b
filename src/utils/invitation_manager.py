"""Invitation link utilities.

An invitation link is a signup URL carrying ``?corporate=<corporate profile
id>``. Every signup page load checks the id once and lands in either the
valid or the invalid state; there is no retry.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import SITE_URL
from core.exceptions import InvalidInvitationError
from models.corporate_profile import CorporateProfileModel
from schemas.invitation import InvitationLinks, InvitationStatus, InvitationValidation

logger = logging.getLogger(__name__)

MENTOR_SIGNUP_PATH = "/mentor-signup"
SCHOOL_SIGNUP_PATH = "/school-signup"
CORPORATE_QUERY_PARAM = "corporate"


class InvitationManager:
    """Validates invitation links and builds new ones."""

    def __init__(self, db: Session):
        self.db = db

    def validate(self, corporate_id: Optional[str]) -> InvitationValidation:
        """Check the corporate id taken from a signup link.

        Args:
            corporate_id: Value of the ``corporate`` query parameter, if any.

        Returns:
            InvitationValidation in the VALID state with the company name, or
            in the INVALID state. A failing query counts as invalid.
        """
        corporate_id = (corporate_id or "").strip()
        if not corporate_id:
            return InvitationValidation(status=InvitationStatus.INVALID)

        try:
            model = (
                self.db.query(CorporateProfileModel)
                .filter(CorporateProfileModel.id == corporate_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error validating invitation %s: %s", corporate_id, e)
            return InvitationValidation(status=InvitationStatus.INVALID, corporate_id=corporate_id)

        if model is None:
            logger.info("Invitation for unknown corporate %s", corporate_id)
            return InvitationValidation(status=InvitationStatus.INVALID, corporate_id=corporate_id)

        return InvitationValidation(
            status=InvitationStatus.VALID,
            corporate_id=model.id,
            company_name=model.company_name,
        )

    def require_valid(self, corporate_id: Optional[str]) -> InvitationValidation:
        """Like ``validate`` but raise on an invalid link.

        Raises:
            InvalidInvitationError: If the link carries no, or an unknown, id.
        """
        validation = self.validate(corporate_id)
        if not validation.is_valid:
            raise InvalidInvitationError(corporate_id)
        return validation

    @staticmethod
    def signup_links(corporate_id: str) -> InvitationLinks:
        return InvitationLinks(
            mentor_signup=signup_link(MENTOR_SIGNUP_PATH, corporate_id),
            school_signup=signup_link(SCHOOL_SIGNUP_PATH, corporate_id),
        )


def signup_link(path: str, corporate_id: str) -> str:
    return f"{SITE_URL}{path}?{CORPORATE_QUERY_PARAM}={corporate_id}"
