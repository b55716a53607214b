"""Mentor and school dashboard routes."""

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import require_role
from core.dependencies import DashboardManagerDep
from core.exceptions import MentorNotFoundError, SchoolNotFoundError
from schemas.dashboard import MentorDashboard, SchoolDashboard
from schemas.user import Identity, Role

router = APIRouter(tags=["Dashboards"])


@router.get("/api/mentor/dashboard", response_model=MentorDashboard, summary="Mentor dashboard")
def get_mentor_dashboard(
    current_user: Identity = Depends(require_role(Role.MENTOR)),
    dashboards: DashboardManagerDep = None,
) -> MentorDashboard:
    try:
        return dashboards.mentor_dashboard(current_user.id)
    except MentorNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Mentor profile not found",
        )


@router.get("/api/school/dashboard", response_model=SchoolDashboard, summary="School dashboard")
def get_school_dashboard(
    current_user: Identity = Depends(require_role(Role.SCHOOL)),
    dashboards: DashboardManagerDep = None,
) -> SchoolDashboard:
    try:
        return dashboards.school_dashboard(current_user.id)
    except SchoolNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="School profile not found",
        )
