"""Role assignment database model."""

from sqlalchemy import Column, String, ForeignKey
from .base import Base


class UserRoleModel(Base):
    """One role row per user, written once at signup."""

    __tablename__ = "user_roles"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        unique=True,
        index=True,
        nullable=False,
    )
    role = Column(String, nullable=False)  # 'corporate', 'school', or 'mentor'
    created_at = Column(String, nullable=False)
