"""Signup and invitation routes.

Corporate signup is open. Mentor and school signup go through a corporate's
invitation link, whose ``corporate`` query parameter is checked first.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from fastapi.responses import JSONResponse

from core.dependencies import (
    InvitationManagerDep,
    NotificationServiceDep,
    SchoolManagerDep,
    SignupManagerDep,
)
from core.exceptions import (
    DuplicateEmailError,
    GenConnectError,
    InvalidInvitationError,
    ProfileCreationError,
    ProviderError,
)
from schemas.invitation import InvitationValidation
from schemas.school import SchoolOptionListResponse
from schemas.signup import (
    CorporateSignupRequest,
    MentorSignupRequest,
    SchoolSignupRequest,
    SignupResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Signup"])


def _raise_signup_error(e: GenConnectError) -> None:
    """Translate a signup failure into an HTTPException."""
    if isinstance(e, InvalidInvitationError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, DuplicateEmailError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, ProviderError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, ProfileCreationError):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to create account",
    )


@router.get(
    "/api/invitations/validate",
    response_model=InvitationValidation,
    summary="Validate an invitation link",
)
def validate_invitation(
    corporate: Optional[str] = None,
    invitations: InvitationManagerDep = None,
):
    """Check the ``corporate`` parameter of a signup link.

    Returns the validation with 200 when valid, and with 404 when invalid so
    the page shows the invalid-invitation state instead of the form.
    """
    validation = invitations.validate(corporate)
    if not validation.is_valid:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=validation.model_dump(mode="json"),
        )
    return validation


@router.get(
    "/api/invitations/schools",
    response_model=SchoolOptionListResponse,
    summary="Schools a mentor can pick at signup",
)
def list_invitation_schools(
    corporate: Optional[str] = None,
    invitations: InvitationManagerDep = None,
    schools: SchoolManagerDep = None,
) -> SchoolOptionListResponse:
    try:
        validation = invitations.require_valid(corporate)
    except InvalidInvitationError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return SchoolOptionListResponse(schools=schools.list_school_options(validation.corporate_id))


@router.post(
    "/api/signup/corporate",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Corporate signup",
)
def signup_corporate(
    req: CorporateSignupRequest,
    background_tasks: BackgroundTasks,
    signups: SignupManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> SignupResponse:
    try:
        response, emails = signups.signup_corporate(req)
    except GenConnectError as e:
        _raise_signup_error(e)
    background_tasks.add_task(notifications.dispatch_quietly, emails)
    return response


@router.post(
    "/api/signup/school",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="School signup through an invitation link",
)
def signup_school(
    req: SchoolSignupRequest,
    background_tasks: BackgroundTasks,
    corporate: Optional[str] = None,
    signups: SignupManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> SignupResponse:
    try:
        response, emails = signups.signup_school(corporate, req)
    except GenConnectError as e:
        _raise_signup_error(e)
    background_tasks.add_task(notifications.dispatch_quietly, emails)
    return response


@router.post(
    "/api/signup/mentor",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mentor signup through an invitation link",
)
def signup_mentor(
    req: MentorSignupRequest,
    background_tasks: BackgroundTasks,
    corporate: Optional[str] = None,
    signups: SignupManagerDep = None,
    notifications: NotificationServiceDep = None,
) -> SignupResponse:
    """Sign up a mentor.

    Steps run in order (identity, role, school link, profile); emails are
    sent after the response and never affect it.
    """
    try:
        response, emails = signups.signup_mentor(corporate, req)
    except GenConnectError as e:
        _raise_signup_error(e)
    background_tasks.add_task(notifications.dispatch_quietly, emails)
    return response
