"""Role resolution.

Looks up the single role assigned to a user. A user with an identity but no
role row is a valid, transient state (signup interrupted before the role step)
and resolves to ``None``; only a failing query raises.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import ProfileCreationError, RoleLookupError
from models.user_role import UserRoleModel
from schemas.user import Role

logger = logging.getLogger(__name__)


class RoleResolver:
    """Reads and writes role assignments."""

    def __init__(self, db: Session):
        self.db = db

    def resolve_role(self, user_id: str) -> Optional[Role]:
        """Return the role of ``user_id``, or None if it has none.

        Raises:
            RoleLookupError: If the query fails or the stored role is unknown.
        """
        try:
            model = (
                self.db.query(UserRoleModel)
                .filter(UserRoleModel.user_id == user_id)
                .one_or_none()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RoleLookupError(user_id) from e

        if model is None:
            return None
        try:
            return Role(model.role)
        except ValueError as e:
            raise RoleLookupError(user_id) from e

    def assign_role(self, user_id: str, role: Role) -> None:
        """Insert the role row written once at signup.

        Raises:
            ProfileCreationError: If the row cannot be written (including a
                second role for the same user).
        """
        model = UserRoleModel(
            id=str(uuid.uuid4()),
            user_id=user_id,
            role=role.value,
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error creating role for user %s: %s", user_id, e)
            raise ProfileCreationError("Failed to set up account role", user_id=user_id) from e
        logger.info("Assigned role %s to user %s", role.value, user_id)
