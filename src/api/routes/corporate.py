"""Corporate dashboard routes.

Every endpoint acts on the calling user's own corporate profile; mentors and
schools of other corporates are reported as not found.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from api.routes.auth import require_role
from core.dependencies import (
    DashboardManagerDep,
    NotificationServiceDep,
    SchoolManagerDep,
)
from core.exceptions import (
    CorporateProfileNotFoundError,
    MentorNotFoundError,
    SchoolNotFoundError,
)
from schemas.dashboard import CorporateDashboard
from schemas.school import (
    AssignSchoolRequest,
    AssignSchoolResponse,
    CreatePendingSchoolRequest,
    InviteSchoolRequest,
    PendingSchoolInfo,
    SchoolOptionListResponse,
)
from schemas.user import Identity, Role
from utils.converters import model_to_pending_info

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/corporate", tags=["Corporate"])

require_corporate = require_role(Role.CORPORATE)


def _corporate_id(user: Identity, dashboards: DashboardManagerDep) -> str:
    try:
        return dashboards.get_corporate_for_user(user.id).id
    except CorporateProfileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Corporate profile not found",
        )


@router.get("/dashboard", response_model=CorporateDashboard, summary="Corporate dashboard")
def get_dashboard(
    current_user: Identity = Depends(require_corporate),
    dashboards: DashboardManagerDep = None,
) -> CorporateDashboard:
    try:
        return dashboards.corporate_dashboard(current_user.id)
    except CorporateProfileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Corporate profile not found",
        )


@router.get("/schools", response_model=SchoolOptionListResponse, summary="List school options")
def list_schools(
    current_user: Identity = Depends(require_corporate),
    dashboards: DashboardManagerDep = None,
    schools: SchoolManagerDep = None,
) -> SchoolOptionListResponse:
    """Registered schools first, then pending ones, each sorted by name."""
    corporate_id = _corporate_id(current_user, dashboards)
    return SchoolOptionListResponse(schools=schools.list_school_options(corporate_id))


@router.post(
    "/mentors/{mentor_id}/school",
    response_model=AssignSchoolResponse,
    summary="Assign or re-assign a mentor's school",
)
def assign_school(
    mentor_id: str,
    req: AssignSchoolRequest,
    background_tasks: BackgroundTasks,
    current_user: Identity = Depends(require_corporate),
    dashboards: DashboardManagerDep = None,
    schools: SchoolManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> AssignSchoolResponse:
    """Link a mentor to exactly one school.

    Args:
        mentor_id: Mentor profile id.
        req: A registered school, a pending school, or a new school with an
            optional invite email.

    Raises:
        HTTPException: 404 if the mentor or school is not the corporate's.
    """
    corporate_id = _corporate_id(current_user, dashboards)
    try:
        response, emails = schools.assign_school(corporate_id, mentor_id, req.school)
    except (MentorNotFoundError, SchoolNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    background_tasks.add_task(notifications.dispatch_quietly, emails)
    return response


@router.post(
    "/pending-schools",
    response_model=PendingSchoolInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Add a pending school",
)
def create_pending_school(
    req: CreatePendingSchoolRequest,
    background_tasks: BackgroundTasks,
    current_user: Identity = Depends(require_corporate),
    dashboards: DashboardManagerDep = None,
    schools: SchoolManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> PendingSchoolInfo:
    corporate_id = _corporate_id(current_user, dashboards)
    pending, emails = schools.add_pending_school(corporate_id, req.school_name, req.invite_email)
    background_tasks.add_task(notifications.dispatch_quietly, emails)
    return model_to_pending_info(pending)


@router.post(
    "/pending-schools/{pending_school_id}/invite",
    response_model=PendingSchoolInfo,
    summary="Invite a pending school to register",
)
def invite_pending_school(
    pending_school_id: str,
    req: InviteSchoolRequest,
    background_tasks: BackgroundTasks,
    current_user: Identity = Depends(require_corporate),
    dashboards: DashboardManagerDep = None,
    schools: SchoolManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> PendingSchoolInfo:
    """Record the invite and email it. A failed email does not fail the request."""
    corporate_id = _corporate_id(current_user, dashboards)
    try:
        pending, email = schools.invite_pending_school(corporate_id, pending_school_id, req.email)
    except SchoolNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    background_tasks.add_task(notifications.dispatch_quietly, [email])
    return model_to_pending_info(pending)
