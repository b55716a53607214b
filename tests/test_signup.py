"""Tests for the signup flows."""

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from core.exceptions import DuplicateEmailError, InvalidInvitationError, ProfileCreationError
from models.corporate_profile import CorporateProfileModel
from models.mentor_profile import MentorProfileModel
from models.pending_school import PendingSchoolModel
from models.school_directory import SchoolDirectoryModel
from models.school_profile import SchoolProfileModel
from models.user import UserModel
from schemas.notification import EmailType
from schemas.signup import CorporateSignupRequest, SchoolSignupRequest
from schemas.user import Role
from utils.role_resolver import RoleResolver
from utils.school_manager import SchoolManager
from utils.signup_manager import SignupManager


def _mentor(db, mentor_id):
    return db.query(MentorProfileModel).filter(MentorProfileModel.id == mentor_id).one()


def test_corporate_signup(db, make_corporate):
    response = make_corporate(email="HR@Acme.com", company_name="  Acme Ltd ")

    profile = db.query(CorporateProfileModel).filter(CorporateProfileModel.id == response.profile_id).one()
    assert profile.company_name == "Acme Ltd"
    assert profile.user_id == response.user_id
    assert response.role is Role.CORPORATE
    assert response.redirect_to == "/corporate-dashboard"
    assert response.message == "Welcome to Gen-Connect, Acme Ltd!"
    assert RoleResolver(db).resolve_role(response.user_id) is Role.CORPORATE


def test_corporate_signup_emails(db):
    request = CorporateSignupRequest(
        company_name="Acme Ltd",
        industry="Technology",
        company_size="25,000+ employees",
        email="hr@acme.com",
        password="Secret123",
        confirm_password="Secret123",
        agree_terms=True,
    )

    response, emails = SignupManager(db).signup_corporate(request)

    assert [e.type for e in emails] == [EmailType.CORPORATE_WELCOME]
    assert emails[0].email == "hr@acme.com"
    assert emails[0].data == {"companyName": "Acme Ltd", "corporateId": response.profile_id}


def test_mentor_signup_with_new_school(db, make_corporate, mentor_request):
    corporate = make_corporate()

    response, emails = SignupManager(db).signup_mentor(
        corporate.profile_id,
        mentor_request(school_name="Hilltop Academy", new_school=True),
    )

    mentor = _mentor(db, response.profile_id)
    pending = db.query(PendingSchoolModel).filter(PendingSchoolModel.id == mentor.pending_school_id).one()
    assert pending.school_name == "Hilltop Academy"
    assert pending.corporate_id == corporate.profile_id
    assert pending.created_by_mentor_id == mentor.id
    assert pending.invited_email is None
    assert pending.invited_at is None
    assert mentor.school_id is None
    assert mentor.company == "Acme Ltd"
    assert mentor.corporate_id == corporate.profile_id
    assert RoleResolver(db).resolve_role(response.user_id) is Role.MENTOR
    assert response.redirect_to == "/mentor-dashboard"
    assert db.query(SchoolDirectoryModel).filter(SchoolDirectoryModel.school_name == "Hilltop Academy").count() == 1

    assert [e.type for e in emails] == [EmailType.MENTOR_WELCOME, EmailType.NEW_SIGNUP_NOTIFICATION]
    assert emails[1].data == {
        "signupType": "mentor",
        "entityName": "Jo Rivers",
        "corporateId": corporate.profile_id,
    }


def test_mentor_signup_matches_registered_school(db, make_corporate, make_school, make_mentor):
    corporate = make_corporate()
    school = make_school(corporate.profile_id, school_name="Riverside High")

    response = make_mentor(corporate.profile_id, school_name="Riverside High")

    mentor = _mentor(db, response.profile_id)
    assert mentor.school_id == school.profile_id
    assert mentor.pending_school_id is None
    assert db.query(PendingSchoolModel).count() == 0


def test_mentor_signup_reuses_pending_school(db, make_corporate, make_mentor):
    corporate = make_corporate()
    first = make_mentor(corporate.profile_id, email="a@acme.com", school_name="Hilltop Academy", new_school=True)
    second = make_mentor(corporate.profile_id, email="b@acme.com", school_name="Hilltop Academy")

    assert db.query(PendingSchoolModel).count() == 1
    assert _mentor(db, first.profile_id).pending_school_id == _mentor(db, second.profile_id).pending_school_id


def test_pending_school_of_other_corporate_is_not_reused(db, make_corporate, make_mentor):
    acme = make_corporate(email="hr@acme.com", company_name="Acme Ltd")
    globex = make_corporate(email="hr@globex.com", company_name="Globex")
    make_mentor(acme.profile_id, email="a@acme.com", school_name="Hilltop Academy", new_school=True)

    response = make_mentor(globex.profile_id, email="b@globex.com", school_name="Hilltop Academy")

    pending = db.query(PendingSchoolModel).filter(
        PendingSchoolModel.id == _mentor(db, response.profile_id).pending_school_id
    ).one()
    assert pending.corporate_id == globex.profile_id
    assert db.query(PendingSchoolModel).count() == 2


def test_mentor_signup_without_school(db, make_corporate, make_mentor):
    corporate = make_corporate()

    response = make_mentor(corporate.profile_id, school_name="   ")

    mentor = _mentor(db, response.profile_id)
    assert mentor.school_id is None
    assert mentor.pending_school_id is None
    assert db.query(PendingSchoolModel).count() == 0


def test_directory_only_name_creates_pending_school(db, make_corporate, make_mentor):
    corporate = make_corporate()
    SchoolManager(db).upsert_directory("Oakfield School")

    response = make_mentor(corporate.profile_id, school_name="Oakfield School")

    mentor = _mentor(db, response.profile_id)
    assert mentor.pending_school_id is not None
    assert db.query(SchoolDirectoryModel).count() == 1


def test_duplicate_email_creates_nothing(db, make_corporate, make_mentor, mentor_request):
    corporate = make_corporate()
    make_mentor(corporate.profile_id, email="jo@acme.com")
    before = (db.query(UserModel).count(), db.query(MentorProfileModel).count())

    with pytest.raises(DuplicateEmailError, match="already registered"):
        SignupManager(db).signup_mentor(corporate.profile_id, mentor_request(email="jo@acme.com"))

    assert (db.query(UserModel).count(), db.query(MentorProfileModel).count()) == before


@pytest.mark.parametrize("corporate_id", [None, "unknown-corporate"])
def test_invalid_invitation_creates_no_user(db, mentor_request, corporate_id):
    with pytest.raises(InvalidInvitationError):
        SignupManager(db).signup_mentor(corporate_id, mentor_request())

    assert db.query(UserModel).count() == 0


def test_profile_insert_failure_leaves_identity(db, make_corporate, mentor_request, monkeypatch):
    corporate = make_corporate()
    original_add = db.add

    def add(instance, *args, **kwargs):
        if isinstance(instance, MentorProfileModel):
            raise OperationalError("INSERT", {}, Exception("disk full"))
        return original_add(instance, *args, **kwargs)

    monkeypatch.setattr(db, "add", add)

    with pytest.raises(ProfileCreationError, match="Failed to create mentor profile") as exc_info:
        SignupManager(db).signup_mentor(corporate.profile_id, mentor_request(email="jo@acme.com"))

    user = db.query(UserModel).filter(UserModel.email == "jo@acme.com").one()
    assert exc_info.value.user_id == user.user_id
    assert db.query(MentorProfileModel).count() == 0


def test_school_signup(db, make_corporate, make_school):
    corporate = make_corporate()

    response = make_school(corporate.profile_id, school_name="Riverside High")

    profile = db.query(SchoolProfileModel).filter(SchoolProfileModel.id == response.profile_id).one()
    assert profile.corporate_id == corporate.profile_id
    assert profile.phone == "+44 113 496 0000"
    assert response.role is Role.SCHOOL
    assert response.redirect_to == "/school-dashboard"


def test_school_signup_emails(db, make_corporate):
    corporate = make_corporate()
    request = SchoolSignupRequest(
        school_name="Riverside High",
        school_type="Academy",
        location="Leeds",
        student_count="500-1,000",
        fsm_percentage="30-45%",
        contact_name="Sam Patel",
        contact_role="Careers Advisor",
        phone="0113 496 0000",
        email="office@riverside.com",
        password="Secret123",
        confirm_password="Secret123",
        agree_terms=True,
    )

    _, emails = SignupManager(db).signup_school(corporate.profile_id, request)

    assert [e.type for e in emails] == [EmailType.SCHOOL_WELCOME, EmailType.NEW_SIGNUP_NOTIFICATION]
    assert emails[0].email == "office@riverside.com"
    assert emails[0].data == {"schoolName": "Riverside High"}
    assert emails[1].data["signupType"] == "school"
    assert emails[1].data["corporateId"] == corporate.profile_id


def test_weak_password_is_rejected():
    with pytest.raises(ValidationError, match="uppercase, lowercase, and a number"):
        CorporateSignupRequest(
            company_name="Acme Ltd",
            industry="Technology",
            company_size="25,000+ employees",
            email="hr@acme.com",
            password="alllowercase1",
            confirm_password="alllowercase1",
            agree_terms=True,
        )


def test_mismatched_passwords_are_rejected():
    with pytest.raises(ValidationError, match="Passwords do not match"):
        CorporateSignupRequest(
            company_name="Acme Ltd",
            industry="Technology",
            company_size="25,000+ employees",
            email="hr@acme.com",
            password="Secret123",
            confirm_password="Secret124",
            agree_terms=True,
        )


@pytest.mark.parametrize(
    "field,value",
    [("industry", "Aerospace"), ("company_size", "10 employees"), ("industry", "technology")],
)
def test_corporate_choices_must_come_from_option_lists(field, value):
    fields = {
        "company_name": "Acme Ltd",
        "industry": "Technology",
        "company_size": "25,000+ employees",
        "email": "hr@acme.com",
        "password": "Secret123",
        "confirm_password": "Secret123",
        "agree_terms": True,
        field: value,
    }

    with pytest.raises(ValidationError, match="Please select one of the listed options"):
        CorporateSignupRequest(**fields)


@pytest.mark.parametrize(
    "field", ["school_type", "student_count", "fsm_percentage", "contact_role"]
)
def test_school_choices_must_come_from_option_lists(field):
    fields = {
        "school_name": "Riverside High",
        "school_type": "Academy",
        "location": "Leeds",
        "student_count": "500-1,000",
        "fsm_percentage": "30-45%",
        "contact_name": "Sam Patel",
        "contact_role": "Careers Advisor",
        "phone": "0113 496 0000",
        "email": "office@riverside.com",
        "password": "Secret123",
        "confirm_password": "Secret123",
        "agree_terms": True,
        field: "Something else",
    }

    with pytest.raises(ValidationError, match=field):
        SchoolSignupRequest(**fields)


def test_mentor_school_name_is_capped(mentor_request):
    assert mentor_request(school_name="x" * 200).school_name == "x" * 200

    with pytest.raises(ValidationError, match="school_name"):
        mentor_request(school_name="x" * 201)


def test_reserved_email_domains_are_rejected():
    with pytest.raises(ValidationError, match="email"):
        CorporateSignupRequest(
            company_name="Acme Ltd",
            industry="Technology",
            company_size="25,000+ employees",
            email="hr@acme.test",
            password="Secret123",
            confirm_password="Secret123",
            agree_terms=True,
        )
