"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes,
following Google Python Style Guide and FastAPI best practices.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import SessionLocal, get_db
from utils import dashboard_manager
from utils import identity_provider
from utils import invitation_manager
from utils import notification_service
from utils import role_resolver
from utils import school_manager
from utils import signup_manager

# Singleton for NotificationService (holds the template environment)
_notification_service_instance: notification_service.NotificationService = None


def get_identity_provider(db: Session = Depends(get_db)) -> identity_provider.IdentityProvider:
    """Get IdentityProvider instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        IdentityProvider instance.
    """
    return identity_provider.IdentityProvider(db)


def get_role_resolver(db: Session = Depends(get_db)) -> role_resolver.RoleResolver:
    """Get RoleResolver instance with request-scoped DB session."""
    return role_resolver.RoleResolver(db)


def get_invitation_manager(
    db: Session = Depends(get_db),
) -> invitation_manager.InvitationManager:
    """Get InvitationManager instance with request-scoped DB session."""
    return invitation_manager.InvitationManager(db)


def get_school_manager(db: Session = Depends(get_db)) -> school_manager.SchoolManager:
    """Get SchoolManager instance with request-scoped DB session."""
    return school_manager.SchoolManager(db)


def get_signup_manager(db: Session = Depends(get_db)) -> signup_manager.SignupManager:
    """Get SignupManager instance with request-scoped DB session."""
    return signup_manager.SignupManager(db)


def get_dashboard_manager(
    db: Session = Depends(get_db),
) -> dashboard_manager.DashboardManager:
    """Get DashboardManager instance with request-scoped DB session."""
    return dashboard_manager.DashboardManager(db)


def get_notification_service() -> notification_service.NotificationService:
    """Get NotificationService singleton instance.

    Emails are sent after the response, so the service opens its own
    sessions instead of borrowing the request's.

    Returns:
        NotificationService instance (singleton).
    """
    global _notification_service_instance
    if _notification_service_instance is None:
        _notification_service_instance = notification_service.NotificationService(SessionLocal)
    return _notification_service_instance


# Type aliases for dependency injection
IdentityProviderDep = Annotated[
    identity_provider.IdentityProvider, Depends(get_identity_provider)
]
RoleResolverDep = Annotated[
    role_resolver.RoleResolver, Depends(get_role_resolver)
]
InvitationManagerDep = Annotated[
    invitation_manager.InvitationManager, Depends(get_invitation_manager)
]
SchoolManagerDep = Annotated[
    school_manager.SchoolManager, Depends(get_school_manager)
]
SignupManagerDep = Annotated[
    signup_manager.SignupManager, Depends(get_signup_manager)
]
DashboardManagerDep = Annotated[
    dashboard_manager.DashboardManager, Depends(get_dashboard_manager)
]
NotificationServiceDep = Annotated[
    notification_service.NotificationService, Depends(get_notification_service)
]
