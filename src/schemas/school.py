"""School linking schema definitions.

A mentor is linked to at most one school: a registered school, a pending
school, or none. ``SchoolLink`` is the only way the linking columns of a
mentor profile get written, so both foreign keys can never be set at once.
"""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Unassigned(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unassigned"] = "unassigned"

    def to_columns(self) -> Dict[str, Optional[str]]:
        return {"school_id": None, "pending_school_id": None}


class RegisteredSchoolLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["registered"] = "registered"
    school_id: str

    def to_columns(self) -> Dict[str, Optional[str]]:
        return {"school_id": self.school_id, "pending_school_id": None}


class PendingSchoolLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["pending"] = "pending"
    pending_school_id: str

    def to_columns(self) -> Dict[str, Optional[str]]:
        return {"school_id": None, "pending_school_id": self.pending_school_id}


SchoolLink = Union[Unassigned, RegisteredSchoolLink, PendingSchoolLink]


def link_from_columns(
    school_id: Optional[str], pending_school_id: Optional[str]
) -> SchoolLink:
    """Read the link stored on a mentor profile row.

    Raises:
        ValueError: If both columns are set.
    """
    if school_id and pending_school_id:
        raise ValueError("Mentor profile is linked to both a registered and a pending school")
    if school_id:
        return RegisteredSchoolLink(school_id=school_id)
    if pending_school_id:
        return PendingSchoolLink(pending_school_id=pending_school_id)
    return Unassigned()


# --- Assign-school choices (corporate dashboard) ---


class RegisteredSchoolChoice(BaseModel):
    kind: Literal["registered"]
    id: str


class PendingSchoolChoice(BaseModel):
    kind: Literal["pending"]
    id: str


class NewSchoolChoice(BaseModel):
    kind: Literal["new"]
    school_name: str = Field(min_length=1, max_length=200)
    invite_email: Optional[EmailStr] = None

    @field_validator("school_name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("invite_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


SchoolChoice = Annotated[
    Union[RegisteredSchoolChoice, PendingSchoolChoice, NewSchoolChoice],
    Field(discriminator="kind"),
]


class AssignSchoolRequest(BaseModel):
    school: SchoolChoice


class AssignSchoolResponse(BaseModel):
    mentor_id: str
    school_name: str
    link: SchoolLink = Field(discriminator="kind")
    invite_sent: bool = False


class CreatePendingSchoolRequest(BaseModel):
    school_name: str = Field(min_length=1, max_length=200)
    invite_email: Optional[EmailStr] = None

    @field_validator("school_name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("invite_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


class InviteSchoolRequest(BaseModel):
    email: EmailStr


class SchoolOption(BaseModel):
    """One entry of the school picker offered to mentors and corporate staff."""

    id: str
    name: str
    type: Literal["registered", "pending"]


class SchoolOptionListResponse(BaseModel):
    schools: List[SchoolOption]


class PendingSchoolInfo(BaseModel):
    id: str
    corporate_id: Optional[str] = None
    created_by_mentor_id: Optional[str] = None
    school_name: str
    invited_email: Optional[str] = None
    invited_at: Optional[str] = None
    created_at: str


class SchoolProfileInfo(BaseModel):
    id: str
    corporate_id: Optional[str] = None
    school_name: str
    school_type: Optional[str] = None
    location: Optional[str] = None
    student_count: Optional[str] = None
    fsm_percentage: Optional[str] = None
    contact_name: Optional[str] = None
    contact_role: Optional[str] = None
    phone: Optional[str] = None
    created_at: str


class DirectoryEntry(BaseModel):
    id: str
    school_name: str


class DirectorySearchResponse(BaseModel):
    results: List[DirectoryEntry]
