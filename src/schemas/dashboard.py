"""Dashboard schema definitions."""

from typing import List, Optional

from pydantic import BaseModel

from schemas.invitation import InvitationLinks
from schemas.school import PendingSchoolInfo, SchoolProfileInfo


class CorporateProfileInfo(BaseModel):
    id: str
    user_id: str
    company_name: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    created_at: str


class MentorSummary(BaseModel):
    id: str
    full_name: str
    company: Optional[str] = None
    job_title: Optional[str] = None
    background_info: Optional[str] = None
    created_at: str
    school_name: Optional[str] = None
    pending_school_name: Optional[str] = None


class DashboardStats(BaseModel):
    active_mentors: int = 0
    partner_schools: int = 0
    pending_schools: int = 0
    placements: int = 0


class CorporateDashboard(BaseModel):
    profile: CorporateProfileInfo
    mentors: List[MentorSummary]
    schools: List[SchoolProfileInfo]
    pending_schools: List[PendingSchoolInfo]
    stats: DashboardStats
    invitation_links: InvitationLinks


class MentorDashboard(BaseModel):
    full_name: str
    job_title: Optional[str] = None
    company: Optional[str] = None
    school_name: Optional[str] = None
    school_is_pending: bool = False


class SchoolDashboard(BaseModel):
    school_name: str
    location: Optional[str] = None
    contact_name: Optional[str] = None
    sponsor_company_name: Optional[str] = None
