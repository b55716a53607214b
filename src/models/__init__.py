"""ORM models for the account store."""

from .base import Base
from .user import UserModel
from .user_role import UserRoleModel
from .corporate_profile import CorporateProfileModel
from .school_profile import SchoolProfileModel
from .pending_school import PendingSchoolModel
from .mentor_profile import MentorProfileModel
from .school_directory import SchoolDirectoryModel

__all__ = [
    "Base",
    "UserModel",
    "UserRoleModel",
    "CorporateProfileModel",
    "SchoolProfileModel",
    "PendingSchoolModel",
    "MentorProfileModel",
    "SchoolDirectoryModel",
]
