"""Custom exception classes for the Gen-Connect service.

This module defines application-specific exceptions following Google Python
Style Guide.
"""

from typing import Optional


class GenConnectError(Exception):
    """Base exception for all Gen-Connect errors."""

    pass


class InvalidInvitationError(GenConnectError):
    """Raised when a signup link carries no, or an unknown, corporate id."""

    def __init__(self, corporate_id: Optional[str] = None):
        """Initialize the exception.

        Args:
            corporate_id: The corporate id taken from the link, if any.
        """
        self.corporate_id = corporate_id
        super().__init__("This invitation link is invalid or has expired.")


class ProviderError(GenConnectError):
    """Raised when the identity provider rejects an operation."""

    pass


class DuplicateEmailError(ProviderError):
    """Raised when signing up with an email that is already registered."""

    def __init__(self, email: str):
        """Initialize the exception.

        Args:
            email: The email address that is already registered.
        """
        self.email = email
        super().__init__("This email is already registered. Please login instead.")


class InvalidCredentialsError(ProviderError):
    """Raised on a wrong email/password pair or an unusable access token."""

    pass


class ProfileCreationError(GenConnectError):
    """Raised when a role or profile row cannot be written after sign-up.

    The identity created before the failure is left in place.
    """

    def __init__(self, message: str, user_id: Optional[str] = None):
        """Initialize the exception.

        Args:
            message: User-facing description of the failed step.
            user_id: Id of the identity that was already created.
        """
        self.user_id = user_id
        super().__init__(message)


class NotificationError(GenConnectError):
    """Raised when an email cannot be built or delivered."""

    pass


class RoleLookupError(GenConnectError, LookupError):
    """Raised when the role query itself fails."""

    def __init__(self, user_id: str):
        """Initialize the exception.

        Args:
            user_id: The user whose role could not be read.
        """
        self.user_id = user_id
        super().__init__(f"Could not retrieve role for user '{user_id}'")


class CorporateProfileNotFoundError(GenConnectError):
    """Raised when a corporate profile cannot be found."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Corporate profile '{key}' not found")


class MentorNotFoundError(GenConnectError):
    """Raised when a mentor profile cannot be found."""

    def __init__(self, mentor_id: str):
        self.mentor_id = mentor_id
        super().__init__(f"Mentor '{mentor_id}' not found")


class SchoolNotFoundError(GenConnectError):
    """Raised when a registered or pending school cannot be found."""

    def __init__(self, school_id: str):
        self.school_id = school_id
        super().__init__(f"School '{school_id}' not found")
