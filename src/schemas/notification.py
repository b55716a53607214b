"""Notification (email) schema definitions."""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EmailType(str, Enum):
    CORPORATE_WELCOME = "corporate_welcome"
    MENTOR_WELCOME = "mentor_welcome"
    SCHOOL_WELCOME = "school_welcome"
    NEW_SIGNUP_NOTIFICATION = "new_signup_notification"
    SCHOOL_INVITE = "school_invite"


class EmailRequest(BaseModel):
    """Single entry point of the email collaborator.

    For ``new_signup_notification`` the ``email`` field is ignored and the
    recipient is resolved from ``data["corporateId"]``.
    """

    type: EmailType
    email: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class RenderedEmail(BaseModel):
    to: str
    subject: str
    html: str


class EmailResult(BaseModel):
    success: bool
    skipped: bool = False
    to: str
    message_id: str = ""
