"""Corporate profile database model.

The corporate profile id is the anchor of every invitation link.
"""

from sqlalchemy import Column, String, ForeignKey
from .base import Base


class CorporateProfileModel(Base):
    __tablename__ = "corporate_profiles"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    company_name = Column(String, nullable=False)
    industry = Column(String, nullable=True)
    company_size = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
