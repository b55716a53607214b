"""User, session and auth state schema definitions."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    """The three account types. Each user holds at most one."""

    CORPORATE = "corporate"
    SCHOOL = "school"
    MENTOR = "mentor"


class AuthEvent(str, Enum):
    """Events emitted by the identity provider to its listeners."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class Identity(BaseModel):
    """Identity record as exposed by the identity provider (no credential)."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    created_at: str
    last_sign_in_at: Optional[str] = None


class AuthSession(BaseModel):
    """An issued access token and the identity it belongs to."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_at: int = Field(description="Unix timestamp of token expiry.")
    user: Identity


class AuthResponse(BaseModel):
    user: Identity
    session: AuthSession


class AuthState(BaseModel):
    """Snapshot of the session manager state.

    Consumers must not branch on ``role`` while ``is_loading`` is true.
    """

    model_config = ConfigDict(frozen=True)

    user: Optional[Identity] = None
    session: Optional[AuthSession] = None
    role: Optional[Role] = None
    is_loading: bool = True
    is_authenticated: bool = False

    @property
    def profile_incomplete(self) -> bool:
        """True for a signed-in user whose signup never wrote a role row."""
        return not self.is_loading and self.user is not None and self.role is None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, description="Password must be at least 6 characters")


class LoginResponse(BaseModel):
    user: Identity
    token: str
    role: Optional[Role] = None
    redirect_to: str
    message: Optional[str] = None


class CurrentUserResponse(BaseModel):
    user: Identity
    role: Optional[Role] = None
    dashboard: Optional[str] = None


class AccessDecisionResponse(BaseModel):
    path: str
    allowed: bool
    redirect_to: Optional[str] = None
    reason: str
