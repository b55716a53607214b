"""Registered school database model."""

from sqlalchemy import Column, String, ForeignKey
from .base import Base


class SchoolProfileModel(Base):
    __tablename__ = "school_profiles"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    corporate_id = Column(
        String, ForeignKey("corporate_profiles.id", ondelete="SET NULL"), index=True, nullable=True
    )
    school_name = Column(String, nullable=False)
    school_type = Column(String, nullable=True)
    location = Column(String, nullable=True)
    student_count = Column(String, nullable=True)
    fsm_percentage = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    contact_role = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
