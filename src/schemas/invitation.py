"""Invitation link schema definitions."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class InvitationStatus(str, Enum):
    """States of the invitation check run on every signup page load."""

    VALIDATING = "validating"
    VALID = "valid"
    INVALID = "invalid"


class InvitationValidation(BaseModel):
    status: InvitationStatus
    corporate_id: Optional[str] = None
    company_name: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is InvitationStatus.VALID


class InvitationLinks(BaseModel):
    mentor_signup: str
    school_signup: str
