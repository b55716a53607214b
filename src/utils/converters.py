"""Conversions between ORM rows and pydantic schemas."""

from models.corporate_profile import CorporateProfileModel
from models.pending_school import PendingSchoolModel
from models.school_profile import SchoolProfileModel
from models.user import UserModel
from schemas.dashboard import CorporateProfileInfo
from schemas.school import PendingSchoolInfo, SchoolProfileInfo
from schemas.user import Identity


def model_to_identity(model: UserModel) -> Identity:
    return Identity(
        id=model.user_id,
        email=model.email,
        created_at=model.created_at,
        last_sign_in_at=model.last_sign_in_at,
    )


def model_to_corporate_info(model: CorporateProfileModel) -> CorporateProfileInfo:
    return CorporateProfileInfo(
        id=model.id,
        user_id=model.user_id,
        company_name=model.company_name,
        industry=model.industry,
        company_size=model.company_size,
        created_at=model.created_at,
    )


def model_to_school_info(model: SchoolProfileModel) -> SchoolProfileInfo:
    return SchoolProfileInfo(
        id=model.id,
        corporate_id=model.corporate_id,
        school_name=model.school_name,
        school_type=model.school_type,
        location=model.location,
        student_count=model.student_count,
        fsm_percentage=model.fsm_percentage,
        contact_name=model.contact_name,
        contact_role=model.contact_role,
        phone=model.phone,
        created_at=model.created_at,
    )


def model_to_pending_info(model: PendingSchoolModel) -> PendingSchoolInfo:
    return PendingSchoolInfo(
        id=model.id,
        corporate_id=model.corporate_id,
        created_by_mentor_id=model.created_by_mentor_id,
        school_name=model.school_name,
        invited_email=model.invited_email,
        invited_at=model.invited_at,
        created_at=model.created_at,
    )
