"""User (identity) database model.

This module defines the identity record owned by the identity provider.
"""

from sqlalchemy import Column, String
from .base import Base


class UserModel(Base):
    """Identity database model."""

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # lower-cased
    password_hash = Column(String, nullable=False)
    created_at = Column(String, nullable=False)  # ISO format string
    last_sign_in_at = Column(String, nullable=True)  # ISO format string
