"""Tests for school management and mentor school assignment."""

import uuid
from datetime import datetime

import pytest
import pytz
from sqlalchemy.exc import IntegrityError

from core.exceptions import MentorNotFoundError, SchoolNotFoundError
from models.mentor_profile import MentorProfileModel
from models.pending_school import PendingSchoolModel
from schemas.notification import EmailType
from schemas.school import (
    NewSchoolChoice,
    PendingSchoolChoice,
    PendingSchoolLink,
    RegisteredSchoolChoice,
    RegisteredSchoolLink,
    Unassigned,
    link_from_columns,
)
from utils.school_manager import SchoolManager


@pytest.fixture
def schools(db):
    return SchoolManager(db)


@pytest.fixture
def corporate(make_corporate):
    return make_corporate()


def _mentor(db, mentor_id):
    db.expire_all()
    return db.query(MentorProfileModel).filter(MentorProfileModel.id == mentor_id).one()


def test_assign_pending_school_to_unassigned_mentor(db, schools, corporate, make_mentor):
    mentor = make_mentor(corporate.profile_id)
    pending = schools.create_pending_school(corporate.profile_id, "Hilltop Academy")

    response, emails = schools.assign_school(
        corporate.profile_id, mentor.profile_id, PendingSchoolChoice(kind="pending", id=pending.id)
    )

    stored = _mentor(db, mentor.profile_id)
    assert stored.pending_school_id == pending.id
    assert stored.school_id is None
    assert response.link == PendingSchoolLink(pending_school_id=pending.id)
    assert response.school_name == "Hilltop Academy"
    assert response.invite_sent is False
    assert emails == []


def test_reassignment_keeps_a_single_link(db, schools, corporate, make_school, make_mentor):
    mentor = make_mentor(corporate.profile_id)
    school = make_school(corporate.profile_id)
    pending = schools.create_pending_school(corporate.profile_id, "Hilltop Academy")

    schools.assign_school(
        corporate.profile_id, mentor.profile_id, RegisteredSchoolChoice(kind="registered", id=school.profile_id)
    )
    stored = _mentor(db, mentor.profile_id)
    assert (stored.school_id, stored.pending_school_id) == (school.profile_id, None)

    schools.assign_school(
        corporate.profile_id, mentor.profile_id, PendingSchoolChoice(kind="pending", id=pending.id)
    )
    stored = _mentor(db, mentor.profile_id)
    assert (stored.school_id, stored.pending_school_id) == (None, pending.id)

    schools.assign_school(
        corporate.profile_id, mentor.profile_id, RegisteredSchoolChoice(kind="registered", id=school.profile_id)
    )
    stored = _mentor(db, mentor.profile_id)
    assert (stored.school_id, stored.pending_school_id) == (school.profile_id, None)


def test_assign_new_school_with_invite(db, schools, corporate, make_mentor):
    mentor = make_mentor(corporate.profile_id)

    response, emails = schools.assign_school(
        corporate.profile_id,
        mentor.profile_id,
        NewSchoolChoice(kind="new", school_name=" Oakfield School ", invite_email="head@oakfield.com"),
    )

    pending = db.query(PendingSchoolModel).filter(PendingSchoolModel.school_name == "Oakfield School").one()
    assert pending.invited_email == "head@oakfield.com"
    assert pending.invited_at is not None
    assert pending.corporate_id == corporate.profile_id
    assert _mentor(db, mentor.profile_id).pending_school_id == pending.id
    assert response.invite_sent is True

    assert len(emails) == 1
    assert emails[0].type is EmailType.SCHOOL_INVITE
    assert emails[0].email == "head@oakfield.com"
    assert emails[0].data == {
        "schoolName": "Oakfield School",
        "inviteLink": f"https://genconnect.test/school-signup?corporate={corporate.profile_id}",
    }


def test_assign_new_school_without_invite(db, schools, corporate, make_mentor):
    mentor = make_mentor(corporate.profile_id)

    response, emails = schools.assign_school(
        corporate.profile_id, mentor.profile_id, NewSchoolChoice(kind="new", school_name="Oakfield School", invite_email="  ")
    )

    pending = db.query(PendingSchoolModel).one()
    assert pending.invited_email is None
    assert pending.invited_at is None
    assert response.invite_sent is False
    assert emails == []
    assert [entry.school_name for entry in schools.search_directory("oak")] == ["Oakfield School"]


def test_other_corporates_mentor_is_not_found(schools, make_corporate, make_mentor):
    acme = make_corporate(email="hr@acme.com")
    globex = make_corporate(email="hr@globex.com", company_name="Globex")
    mentor = make_mentor(acme.profile_id)
    pending = schools.create_pending_school(globex.profile_id, "Hilltop Academy")

    with pytest.raises(MentorNotFoundError):
        schools.assign_school(
            globex.profile_id, mentor.profile_id, PendingSchoolChoice(kind="pending", id=pending.id)
        )


def test_other_corporates_school_is_not_found(db, schools, make_corporate, make_school, make_mentor):
    acme = make_corporate(email="hr@acme.com")
    globex = make_corporate(email="hr@globex.com", company_name="Globex")
    mentor = make_mentor(acme.profile_id)
    school = make_school(globex.profile_id)
    foreign_pending = schools.create_pending_school(globex.profile_id, "Hilltop Academy")

    with pytest.raises(SchoolNotFoundError):
        schools.assign_school(
            acme.profile_id, mentor.profile_id, RegisteredSchoolChoice(kind="registered", id=school.profile_id)
        )
    with pytest.raises(SchoolNotFoundError):
        schools.assign_school(
            acme.profile_id, mentor.profile_id, PendingSchoolChoice(kind="pending", id=foreign_pending.id)
        )

    stored = _mentor(db, mentor.profile_id)
    assert link_from_columns(stored.school_id, stored.pending_school_id) == Unassigned()


def test_database_rejects_both_links(db, corporate, make_school):
    school = make_school(corporate.profile_id)
    pending = SchoolManager(db).create_pending_school(corporate.profile_id, "Hilltop Academy")
    now = datetime.now(pytz.utc).isoformat()

    db.add(
        MentorProfileModel(
            id=str(uuid.uuid4()),
            user_id=corporate.user_id,
            corporate_id=corporate.profile_id,
            full_name="Broken Row",
            school_id=school.profile_id,
            pending_school_id=pending.id,
            created_at=now,
            updated_at=now,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_link_from_columns():
    assert link_from_columns(None, None) == Unassigned()
    assert link_from_columns("s1", None) == RegisteredSchoolLink(school_id="s1")
    assert link_from_columns(None, "p1") == PendingSchoolLink(pending_school_id="p1")
    with pytest.raises(ValueError):
        link_from_columns("s1", "p1")


def test_links_write_exactly_one_column():
    assert Unassigned().to_columns() == {"school_id": None, "pending_school_id": None}
    assert RegisteredSchoolLink(school_id="s1").to_columns() == {"school_id": "s1", "pending_school_id": None}
    assert PendingSchoolLink(pending_school_id="p1").to_columns() == {"school_id": None, "pending_school_id": "p1"}


def test_list_school_options_order(schools, corporate, make_school):
    make_school(corporate.profile_id, school_name="Westgate College", email="a@westgate.com")
    make_school(corporate.profile_id, school_name="Ashby School", email="a@ashby.com")
    schools.create_pending_school(corporate.profile_id, "Zetland Academy")
    schools.create_pending_school(corporate.profile_id, "Beacon High")

    options = schools.list_school_options(corporate.profile_id)

    assert [(o.name, o.type) for o in options] == [
        ("Ashby School", "registered"),
        ("Westgate College", "registered"),
        ("Beacon High", "pending"),
        ("Zetland Academy", "pending"),
    ]


def test_list_school_options_is_scoped_to_corporate(schools, make_corporate):
    acme = make_corporate(email="hr@acme.com")
    globex = make_corporate(email="hr@globex.com", company_name="Globex")
    schools.create_pending_school(globex.profile_id, "Hilltop Academy")

    assert schools.list_school_options(acme.profile_id) == []


def test_search_directory(schools):
    for name in ["St Mary's School", "Marylebone Academy", "Riverside High", "100% Academy"]:
        schools.upsert_directory(name)
    schools.upsert_directory("Riverside High")

    assert [e.school_name for e in schools.search_directory("MARY")] == ["Marylebone Academy", "St Mary's School"]
    assert [e.school_name for e in schools.search_directory("%")] == ["100% Academy"]
    assert len(schools.search_directory("", limit=2)) == 2
    assert len(schools.search_directory()) == 4


def test_invite_pending_school(db, schools, corporate):
    pending = schools.create_pending_school(corporate.profile_id, "Hilltop Academy")

    updated, email = schools.invite_pending_school(corporate.profile_id, pending.id, "head@hilltop.com")

    assert updated.invited_email == "head@hilltop.com"
    assert updated.invited_at is not None
    assert email.type is EmailType.SCHOOL_INVITE
    assert email.data["schoolName"] == "Hilltop Academy"


def test_invite_pending_school_of_other_corporate(schools, make_corporate):
    acme = make_corporate(email="hr@acme.com")
    globex = make_corporate(email="hr@globex.com", company_name="Globex")
    pending = schools.create_pending_school(globex.profile_id, "Hilltop Academy")

    with pytest.raises(SchoolNotFoundError):
        schools.invite_pending_school(acme.profile_id, pending.id, "head@hilltop.com")


def test_failed_invite_is_rolled_back(db, schools, corporate, monkeypatch):
    from sqlalchemy.exc import OperationalError

    pending = schools.create_pending_school(corporate.profile_id, "Hilltop Academy")

    def failing_commit():
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(OperationalError):
        schools.invite_pending_school(corporate.profile_id, pending.id, "head@hilltop.com")
    monkeypatch.undo()

    stored = db.query(PendingSchoolModel).filter(PendingSchoolModel.id == pending.id).one()
    assert stored.invited_email is None
    assert stored.invited_at is None
