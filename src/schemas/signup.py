"""Signup form schema definitions.

Field rules follow the public signup forms: every message here is shown
field by field before any account is created.
"""

import re
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from schemas.user import Role

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")

# Trimmed, required text of at most 200 characters
ShortText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]

# Options offered by the signup forms
INDUSTRIES: List[str] = [
    "Technology",
    "Financial Services",
    "Professional Services",
    "Consulting",
    "Healthcare",
    "Manufacturing",
    "Retail",
    "Energy",
    "Other",
]

COMPANY_SIZES: List[str] = [
    "1,000-5,000 employees",
    "5,000-10,000 employees",
    "10,000-25,000 employees",
    "25,000+ employees",
]

SCHOOL_TYPES: List[str] = [
    "State Comprehensive",
    "Academy",
    "Grammar School",
    "Free School",
    "Independent",
    "Other",
]

STUDENT_COUNTS: List[str] = ["Less than 500", "500-1,000", "1,000-1,500", "1,500+"]

FSM_RANGES: List[str] = ["Less than 15%", "15-30%", "30-45%", "45%+"]

CONTACT_ROLES: List[str] = [
    "Head Teacher",
    "Deputy Head",
    "Careers Advisor",
    "Head of Year",
    "STEM Coordinator",
    "Other",
]


def one_of(options: List[str]) -> AfterValidator:
    """Validator admitting only a value from ``options``."""

    def check(value: str) -> str:
        if value not in options:
            raise ValueError("Please select one of the listed options")
        return value

    return AfterValidator(check)


Industry = Annotated[str, one_of(INDUSTRIES)]
CompanySize = Annotated[str, one_of(COMPANY_SIZES)]
SchoolType = Annotated[str, one_of(SCHOOL_TYPES)]
StudentCount = Annotated[str, one_of(STUDENT_COUNTS)]
FsmRange = Annotated[str, one_of(FSM_RANGES)]
ContactRole = Annotated[str, one_of(CONTACT_ROLES)]


class _AccountForm(BaseModel):
    """Credential fields shared by all three signup forms."""

    email: EmailStr
    password: str
    confirm_password: str
    agree_terms: bool

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        if not PASSWORD_PATTERN.match(value):
            raise ValueError("Password must include uppercase, lowercase, and a number")
        return value

    @field_validator("agree_terms")
    @classmethod
    def check_terms(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must agree to the terms and conditions")
        return value

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class CorporateSignupRequest(_AccountForm):
    company_name: ShortText
    industry: Industry
    company_size: CompanySize


class SchoolSignupRequest(_AccountForm):
    school_name: ShortText
    school_type: SchoolType
    location: ShortText
    student_count: StudentCount
    fsm_percentage: FsmRange
    contact_name: ShortText
    contact_role: ContactRole
    phone: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value


class MentorSignupRequest(_AccountForm):
    full_name: ShortText
    job_title: ShortText
    background_info: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)
    ]
    school_name: Optional[str] = Field(
        default=None, max_length=200, description="School picked from the list or typed in."
    )
    new_school: bool = Field(
        default=False,
        description="True when school_name was typed in and is not in the corporate's list.",
    )

    @field_validator("school_name", mode="before")
    @classmethod
    def blank_school_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None


class SignupResponse(BaseModel):
    success: bool = True
    message: str
    user_id: str
    role: Role
    profile_id: str
    redirect_to: str
