"""Authentication routes.

This module handles HTTP endpoints for login, logout, the current user, and
role-based access checks. ``require_role`` is the server-side counterpart
of the page guards in ``utils.route_guards``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.dependencies import IdentityProviderDep, RoleResolverDep
from core.exceptions import InvalidCredentialsError, ProviderError, RoleLookupError
from schemas.user import (
    AccessDecisionResponse,
    AuthState,
    CurrentUserResponse,
    Identity,
    LoginRequest,
    LoginResponse,
    Role,
)
from utils.route_guards import dashboard_for, guard_for_path, post_login_destination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# HTTP Bearer token security; missing tokens are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: IdentityProviderDep = None,
) -> Identity:
    """Get current authenticated user.

    Args:
        credentials: HTTP Bearer token credentials.
        provider: Injected IdentityProvider instance.

    Returns:
        Identity of the token's user.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        return provider.get_user(credentials.credentials)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


def get_current_role(
    current_user: Identity = Depends(get_current_user),
    resolver: RoleResolverDep = None,
) -> Optional[Role]:
    """Role of the current user, or None when it has none or cannot be read."""
    try:
        return resolver.resolve_role(current_user.id)
    except RoleLookupError as e:
        logger.error("Error fetching role: %s", e)
        return None


def require_role(expected: Role):
    """Build a dependency admitting only users holding ``expected``.

    The dependency returns the current user. It answers 401 without a valid
    token, and 403 for a user with another role or with no role at all.
    """

    def dependency(
        current_user: Identity = Depends(get_current_user),
        role: Optional[Role] = Depends(get_current_role),
    ) -> Identity:
        if role is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account setup incomplete",
            )
        if role is not expected:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This area is only available to {expected.value} accounts.",
            )
        return current_user

    return dependency


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    redirect: Optional[str] = None,
    provider: IdentityProviderDep = None,
    resolver: RoleResolverDep = None,
) -> LoginResponse:
    """Login with email and password.

    Args:
        req: Login request with email and password.
        redirect: The ``redirect`` query parameter of the login page, if any.
        provider: Injected IdentityProvider instance.
        resolver: Injected RoleResolver instance.

    Returns:
        LoginResponse with the user, token, role and where to go next.

    Raises:
        HTTPException: If login fails.
    """
    try:
        auth = provider.sign_in_with_password(req.email, req.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )
    except ProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    try:
        role = resolver.resolve_role(auth.user.id)
    except RoleLookupError as e:
        logger.error("Error fetching role: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not retrieve user role",
        )

    message = None
    if role is None:
        message = "Account setup incomplete. Please complete your account setup."

    return LoginResponse(
        user=auth.user,
        token=auth.session.access_token,
        role=role,
        redirect_to=post_login_destination(role, redirect),
        message=message,
    )


@router.post("/logout", summary="Log out")
def logout() -> dict:
    """Logout endpoint.

    Note: Since we're using stateless JWT tokens, logout is handled
    client-side by removing the token. This endpoint exists for API
    consistency.

    Returns:
        Dictionary with success message.
    """
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse, summary="Get current user")
def get_current_user_info(
    current_user: Identity = Depends(get_current_user),
    role: Optional[Role] = Depends(get_current_role),
) -> CurrentUserResponse:
    return CurrentUserResponse(
        user=current_user,
        role=role,
        dashboard=dashboard_for(role) if role else None,
    )


@router.get("/access", response_model=AccessDecisionResponse, summary="Check page access")
def check_access(
    path: str,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: IdentityProviderDep = None,
    resolver: RoleResolverDep = None,
) -> AccessDecisionResponse:
    """Decide whether the caller may open the page at ``path``.

    Works with or without a token; a missing or invalid token counts as
    signed out.
    """
    state = AuthState(is_loading=False)
    if credentials is not None:
        try:
            user = provider.get_user(credentials.credentials)
        except InvalidCredentialsError:
            user = None
        if user is not None:
            try:
                role = resolver.resolve_role(user.id)
            except RoleLookupError as e:
                logger.error("Error fetching role: %s", e)
                role = None
            state = AuthState(user=user, role=role, is_loading=False, is_authenticated=True)

    decision = guard_for_path(state, path)
    return AccessDecisionResponse(
        path=path,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
        reason=decision.reason,
    )
