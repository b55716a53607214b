"""Pending (not yet registered) school database model."""

from sqlalchemy import Column, String, ForeignKey
from .base import Base


class PendingSchoolModel(Base):
    __tablename__ = "pending_schools"

    id = Column(String, primary_key=True, index=True)
    corporate_id = Column(
        String, ForeignKey("corporate_profiles.id", ondelete="CASCADE"), index=True, nullable=True
    )
    created_by_mentor_id = Column(String, nullable=True)
    school_name = Column(String, nullable=False)
    invited_email = Column(String, nullable=True)
    invited_at = Column(String, nullable=True)  # ISO format string
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
