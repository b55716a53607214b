"""Route guards.

Pure decisions over an ``AuthState``: given who is signed in and where they
are going, return where (if anywhere) they must be sent instead. Nothing is
decided while the state is still loading.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import quote

from schemas.user import AuthState, Role

LOGIN_PATH = "/login"
HOME_PATH = "/"

DASHBOARD_PATHS: Dict[Role, str] = {
    Role.CORPORATE: "/corporate-dashboard",
    Role.SCHOOL: "/school-dashboard",
    Role.MENTOR: "/mentor-dashboard",
}

# Adding a Role member without a dashboard must fail at import
_missing = set(Role) - set(DASHBOARD_PATHS)
if _missing:
    raise RuntimeError(f"No dashboard configured for roles: {sorted(r.value for r in _missing)}")

# Pages that need a signed-in user with a given role
PROTECTED_ROUTES: Dict[str, Role] = {path: role for role, path in DASHBOARD_PATHS.items()}

PUBLIC_ROUTES: Tuple[str, ...] = (
    "/",
    "/login",
    "/corporate-signup",
    "/mentor-signup",
    "/school-signup",
    "/for-corporates",
    "/for-schools",
    "/for-mentors",
    "/for-students",
    "/terms",
    "/privacy",
    "/forgot-password",
)


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a guard. ``redirect_to`` is None when no redirect is needed."""

    redirect_to: Optional[str]
    reason: str

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def dashboard_for(role: Role) -> str:
    return DASHBOARD_PATHS[role]


def is_public_route(path: str) -> bool:
    """True for an allowlisted path, with or without a query string."""
    return any(path == route or path.startswith(route + "?") for route in PUBLIC_ROUTES)


def login_redirect(current_path: str) -> str:
    return f"{LOGIN_PATH}?redirect={quote(current_path, safe='')}"


def _is_safe_redirect(target: Optional[str]) -> bool:
    # Only same-site absolute paths; "//host" would leave the site
    return bool(target) and target.startswith("/") and not target.startswith("//")


def post_login_destination(role: Optional[Role], redirect: Optional[str] = None) -> str:
    """Where a freshly signed-in user goes.

    A user without a role goes home, whatever the redirect says. Otherwise
    the ``redirect`` query parameter wins over the role's dashboard.
    """
    if role is None:
        return HOME_PATH
    if _is_safe_redirect(redirect):
        return redirect
    return dashboard_for(role)


def require_auth(state: AuthState, current_path: str) -> GuardDecision:
    if state.is_loading:
        return GuardDecision(None, "loading")
    if state.user is None:
        return GuardDecision(login_redirect(current_path), "unauthenticated")
    return GuardDecision(None, "authenticated")


def require_role(state: AuthState, expected: Role, current_path: str) -> GuardDecision:
    """Gate a page to one role.

    A signed-in user with another role is sent to their own dashboard. A
    signed-in user without any role (interrupted signup) is sent home, since
    no dashboard can serve them and signing in again would not help.
    """
    decision = require_auth(state, current_path)
    if not decision.allowed or state.is_loading:
        return decision
    if state.role is None:
        return GuardDecision(HOME_PATH, "role_missing")
    if state.role is not expected:
        return GuardDecision(dashboard_for(state.role), "wrong_role")
    return GuardDecision(None, "role_matched")


def redirect_if_authenticated(
    state: AuthState,
    redirect: Optional[str] = None,
    default_path: Optional[str] = None,
) -> GuardDecision:
    """Bounce an already signed-in visitor away from login and signup pages."""
    if state.is_loading or not state.is_authenticated or state.role is None:
        return GuardDecision(None, "stay")
    if _is_safe_redirect(redirect):
        return GuardDecision(redirect, "redirect_param")
    if default_path:
        return GuardDecision(default_path, "default_path")
    return GuardDecision(dashboard_for(state.role), "dashboard")


def guard_for_path(state: AuthState, path: str) -> GuardDecision:
    """Apply the guard that governs ``path``.

    Public routes are never gated; dashboards require their role; any other
    path requires a signed-in user.
    """
    if is_public_route(path):
        return GuardDecision(None, "public")
    route = path.split("?", 1)[0]
    expected = PROTECTED_ROUTES.get(route)
    if expected is not None:
        return require_role(state, expected, path)
    return require_auth(state, path)
