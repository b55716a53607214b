"""Mentor profile database model."""

from sqlalchemy import CheckConstraint, Column, String, ForeignKey
from .base import Base


class MentorProfileModel(Base):
    """Mentor profile row.

    ``school_id`` and ``pending_school_id`` are written only through
    ``schemas.school.SchoolLink.to_columns()``; the check constraint rejects
    any row where both are set.
    """

    __tablename__ = "mentor_profiles"
    __table_args__ = (
        CheckConstraint(
            "school_id IS NULL OR pending_school_id IS NULL",
            name="ck_mentor_single_school_link",
        ),
    )

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    corporate_id = Column(
        String, ForeignKey("corporate_profiles.id", ondelete="SET NULL"), index=True, nullable=True
    )
    full_name = Column(String, nullable=False)
    company = Column(String, nullable=True)
    job_title = Column(String, nullable=True)
    background_info = Column(String, nullable=True)
    school_id = Column(
        String, ForeignKey("school_profiles.id", ondelete="SET NULL"), nullable=True
    )
    pending_school_id = Column(
        String, ForeignKey("pending_schools.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
